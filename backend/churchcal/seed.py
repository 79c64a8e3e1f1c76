"""Load demo departments, users and one draft request.

Run with ``python -m churchcal.seed``. Re-running is safe: existing rows (matched by
department id or user email) are left alone.
"""
import logging
from datetime import timedelta

from churchcal.database import Base, SessionLocal, engine
import churchcal.models  # noqa: F401
from churchcal.models.department import Department
from churchcal.models.event_request import EventRequest
from churchcal.models.user import User, UserRole
from churchcal.services import calendar_service, request_service
from churchcal.services.identity import Actor

logger = logging.getLogger(__name__)

DEPARTMENTS = [
    ("dept-youth", "Youth Ministry", "Sarah Johnson", "youth@church.org", "555-0101", "#3B82F6"),
    ("dept-worship", "Worship & Arts", "Michael Chen", "worship@church.org", "555-0102", "#8B5CF6"),
    ("dept-children", "Children's Ministry", "Emily Davis", "children@church.org", "555-0103", "#EC4899"),
    ("dept-outreach", "Community Outreach", "James Wilson", "outreach@church.org", "555-0104", "#10B981"),
    ("dept-women", "Women's Ministry", "Grace Martinez", "women@church.org", "555-0105", "#F59E0B"),
    ("dept-men", "Men's Ministry", "Robert Thompson", "men@church.org", "555-0106", "#6B7280"),
]

USERS = [
    ("Super Admin", "superadmin@church.org", UserRole.superadmin, None),
    ("Admin User", "admin@church.org", UserRole.admin, None),
    ("Jane Admin", "admin2@church.org", UserRole.admin, None),
    ("Sarah Johnson", "youth.lead@church.org", UserRole.lead, "dept-youth"),
    ("Michael Chen", "worship.lead@church.org", UserRole.lead, "dept-worship"),
    ("Emily Davis", "children.lead@church.org", UserRole.lead, "dept-children"),
    ("James Wilson", "outreach.lead@church.org", UserRole.lead, "dept-outreach"),
    ("John Member", "member@church.org", UserRole.member, "dept-youth"),
    ("Mary Member", "member2@church.org", UserRole.member, "dept-worship"),
]


def seed(db) -> None:
    for dept_id, name, lead_name, lead_email, lead_phone, color in DEPARTMENTS:
        if db.query(Department).filter(Department.department_id == dept_id).first():
            continue
        db.add(Department(
            department_id=dept_id, name=name, lead_name=lead_name,
            lead_email=lead_email, lead_phone=lead_phone, color=color,
        ))
    db.commit()

    for name, email, role, dept_id in USERS:
        if db.query(User).filter(User.email == email).first():
            continue
        db.add(User(name=name, email=email, role=role, department_id=dept_id))
    db.commit()

    if db.query(EventRequest).count() == 0:
        lead = db.query(User).filter(User.email == "youth.lead@church.org").first()
        req = request_service.create_request(db, Actor.from_user(lead, ip_address="seed"), {
            "title": "Youth Summer Retreat",
            "event_type": "regional",
            "department_id": "dept-youth",
            "event_date": (calendar_service.today_local() + timedelta(days=30)).isoformat(),
            "start_time": "09:00",
            "end_time": "17:00",
            "location": "Camp Pinewood",
            "description": "Three-day retreat for high school students with worship and outdoor activities.",
            "expected_attendance": 60,
        })
        logger.info("Seeded draft request %s", req.request_number)

    logger.info(
        "Seed complete: %d departments, %d users",
        db.query(Department).count(), db.query(User).count(),
    )


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed(db)
    finally:
        db.close()


if __name__ == "__main__":
    main()
