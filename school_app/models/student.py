# school_app/models/student.py
from typing import Optional
from beanie import Document, Insert, PydanticObjectId, before_event
from pydantic import BaseModel, Field, EmailStr, field_validator
from pymongo import IndexModel, ASCENDING
from datetime import datetime

from school_app.core.identifiers import ACADEMIC_YEAR_PATTERN, EntityType, assign_identifier, validate_academic_year
from .enum import Gender, SchoolClass, StudentStatus, normalize_class_name


class Student(Document):
    """Student record. ``student_id`` is allocated from the counter store on insert."""
    student_id: Optional[str] = None
    roll_number: str = Field(..., min_length=1)
    class_name: SchoolClass
    section: str = Field(..., min_length=1, max_length=2)
    academic_year: str = Field(..., pattern=ACADEMIC_YEAR_PATTERN.pattern)

    first_name: str
    last_name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, pattern=r"^[0-9]{10}$")
    date_of_birth: Optional[datetime] = None
    gender: Optional[Gender] = None
    blood_group: Optional[str] = None

    admission_date: datetime
    admission_number: Optional[str] = None # Application number of the admission this student came from

    father_name: Optional[str] = None
    mother_name: Optional[str] = None
    guardian_phone: Optional[str] = Field(None, pattern=r"^[0-9]{10}$")

    user_id: Optional[PydanticObjectId] = None
    status: StudentStatus = Field(default=StudentStatus.ACTIVE)

    # --- Timestamps ---
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    class Settings:
        name = "students"
        keep_nulls = False # unset admission_number stays out of the sparse unique index
        indexes = [
            IndexModel([("student_id", ASCENDING)], name="student_id_unique_index", unique=True, sparse=True),
            IndexModel([("admission_number", ASCENDING)], name="student_admission_number_unique_index", unique=True, sparse=True),
            IndexModel([("class_name", ASCENDING), ("section", ASCENDING)], name="student_class_section_index"),
            IndexModel([("academic_year", ASCENDING)], name="student_academic_year_index"),
            IndexModel([("status", ASCENDING)], name="student_status_index"),
        ]

    @before_event(Insert)
    async def assign_student_id(self):
        if self.student_id:
            self.student_id = self.student_id.strip().upper()
            return
        await assign_identifier(self, EntityType.STUDENT, self.academic_year, academic_year=self.academic_year)

    # --- Pydantic Schemas for API ---
    class Create(BaseModel):
        student_id: Optional[str] = Field(None, description="Only for imports; generated when omitted")
        roll_number: str = Field(..., min_length=1)
        class_name: SchoolClass
        section: str = Field(..., min_length=1, max_length=2)
        academic_year: Optional[str] = Field(None, pattern=ACADEMIC_YEAR_PATTERN.pattern, description="Defaults to the current academic year")
        first_name: str = Field(..., min_length=1, max_length=100)
        last_name: Optional[str] = Field(None, max_length=100)
        email: Optional[EmailStr] = None
        phone: Optional[str] = Field(None, pattern=r"^[0-9]{10}$")
        date_of_birth: Optional[datetime] = None
        gender: Optional[Gender] = None
        blood_group: Optional[str] = None
        admission_date: datetime
        admission_number: Optional[str] = None
        father_name: Optional[str] = None
        mother_name: Optional[str] = None
        guardian_phone: Optional[str] = Field(None, pattern=r"^[0-9]{10}$")

        @field_validator("class_name", mode="before")
        @classmethod
        def normalize_class(cls, v):
            return normalize_class_name(v)

        @field_validator("section", mode="before")
        @classmethod
        def upper_section(cls, v):
            return v.strip().upper() if isinstance(v, str) else v

        @field_validator("academic_year")
        @classmethod
        def consecutive_years(cls, v):
            return validate_academic_year(v)

    class Update(BaseModel):
        # student_id / academic_year are fixed once allocated
        roll_number: Optional[str] = Field(None, min_length=1)
        class_name: Optional[SchoolClass] = None
        section: Optional[str] = Field(None, min_length=1, max_length=2)
        first_name: Optional[str] = Field(None, min_length=1, max_length=100)
        last_name: Optional[str] = Field(None, max_length=100)
        email: Optional[EmailStr] = None
        phone: Optional[str] = Field(None, pattern=r"^[0-9]{10}$")
        gender: Optional[Gender] = None
        blood_group: Optional[str] = None
        father_name: Optional[str] = None
        mother_name: Optional[str] = None
        guardian_phone: Optional[str] = Field(None, pattern=r"^[0-9]{10}$")
        status: Optional[StudentStatus] = None

        @field_validator("class_name", mode="before")
        @classmethod
        def normalize_class(cls, v):
            return normalize_class_name(v)

        @field_validator("section", mode="before")
        @classmethod
        def upper_section(cls, v):
            return v.strip().upper() if isinstance(v, str) else v

    class Response(BaseModel):
        id: str = Field(..., alias="_id")
        student_id: str
        roll_number: str
        class_name: SchoolClass
        section: str
        academic_year: str
        first_name: str
        last_name: Optional[str] = None
        email: Optional[EmailStr] = None
        phone: Optional[str] = None
        date_of_birth: Optional[datetime] = None
        gender: Optional[Gender] = None
        blood_group: Optional[str] = None
        admission_date: datetime
        admission_number: Optional[str] = None
        father_name: Optional[str] = None
        mother_name: Optional[str] = None
        guardian_phone: Optional[str] = None
        user_id: Optional[str] = None
        status: StudentStatus
        created_at: datetime
        updated_at: datetime

        class Config:
            from_attributes = True
            populate_by_name = True
            use_enum_values = True
