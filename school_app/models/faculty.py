# school_app/models/faculty.py
from typing import Optional, List
from beanie import Document, Insert, PydanticObjectId, before_event
from pydantic import BaseModel, Field, EmailStr
from pymongo import IndexModel, ASCENDING
from datetime import datetime

from school_app.core.identifiers import EntityType, assign_identifier
from .enum import EmploymentType, FacultyStatus


class Faculty(Document):
    """Staff member. ``employee_id`` (FAC001, FAC002, ...) comes from the counter store."""
    employee_id: Optional[str] = None
    first_name: str
    last_name: str
    email: EmailStr
    phone: str = Field(..., pattern=r"^[0-9]{10}$")
    department: str
    designation: str = "Teacher"
    subjects: List[str] = Field(default_factory=list)
    employment_type: EmploymentType = EmploymentType.PERMANENT
    joining_date: datetime = Field(default_factory=datetime.now)
    status: FacultyStatus = FacultyStatus.ACTIVE
    user_id: Optional[PydanticObjectId] = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    class Settings:
        name = "faculty"
        indexes = [
            IndexModel([("employee_id", ASCENDING)], name="faculty_employee_id_unique_index", unique=True, sparse=True),
            IndexModel([("email", ASCENDING)], name="faculty_email_unique_index", unique=True),
            IndexModel([("department", ASCENDING)], name="faculty_department_index"),
            IndexModel([("status", ASCENDING)], name="faculty_status_index"),
        ]

    @before_event(Insert)
    async def assign_employee_id(self):
        if self.employee_id:
            self.employee_id = self.employee_id.strip().upper()
            return
        await assign_identifier(self, EntityType.EMPLOYEE, None)

    # --- Pydantic Schemas ---
    class Create(BaseModel):
        employee_id: Optional[str] = Field(None, description="Only for imports; generated when omitted")
        first_name: str = Field(..., min_length=1, max_length=100)
        last_name: str = Field(..., min_length=1, max_length=100)
        email: EmailStr
        phone: str = Field(..., pattern=r"^[0-9]{10}$")
        department: str = Field(..., min_length=1)
        designation: str = "Teacher"
        subjects: List[str] = Field(default_factory=list)
        employment_type: EmploymentType = EmploymentType.PERMANENT
        joining_date: Optional[datetime] = None

    class Response(BaseModel):
        id: str = Field(..., alias="_id")
        employee_id: str
        first_name: str
        last_name: str
        email: EmailStr
        phone: str
        department: str
        designation: str
        subjects: List[str]
        employment_type: EmploymentType
        joining_date: datetime
        status: FacultyStatus
        user_id: Optional[str] = None
        created_at: datetime
        updated_at: datetime
        class Config: from_attributes=True; populate_by_name=True; use_enum_values=True
