"""Department directory API routes (public)."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from churchcal.database import get_db
from churchcal.models.department import Department
from churchcal.schemas.user import DepartmentOut

router = APIRouter()


@router.get("/", response_model=list[DepartmentOut])
def list_departments(db: Session = Depends(get_db)):
    """All departments with lead contact details."""
    return db.query(Department).order_by(Department.name).all()
