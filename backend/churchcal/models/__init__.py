"""ORM models: importing this package registers every table on Base.metadata."""
from churchcal.models.department import Department  # noqa: F401
from churchcal.models.user import User, UserRole  # noqa: F401
from churchcal.models.event_request import EventRequest, EventType, RequestStatus  # noqa: F401
from churchcal.models.audit_log import AuditLogEntry, AuditAction  # noqa: F401
from churchcal.models.notification import Notification, NotificationType  # noqa: F401
from churchcal.models.published_event import PublishedEvent  # noqa: F401
