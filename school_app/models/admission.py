# school_app/models/admission.py
from typing import Optional, List
from beanie import Document, Insert, PydanticObjectId, before_event
from pydantic import BaseModel, Field, EmailStr, field_validator
from pymongo import IndexModel, ASCENDING, DESCENDING
from datetime import datetime

from school_app.core.identifiers import ACADEMIC_YEAR_PATTERN, EntityType, assign_identifier, month_scope, validate_academic_year
from .enum import AdmissionStatus, Gender, PaymentMethod, PaymentStatus, SchoolClass, normalize_class_name

# Documents every applicant has to upload; marksheet only above UKG
BASE_REQUIRED_DOCUMENTS = ["birth_certificate", "photograph"]
PRE_PRIMARY_CLASSES = {SchoolClass.NURSERY, SchoolClass.LKG, SchoolClass.UKG}


class Address(BaseModel):
    street: str
    city: str
    state: str
    pincode: str = Field(..., pattern=r"^[0-9]{6}$")
    country: str = "India"


class Admission(Document):
    """Admission application. ``application_number`` is allocated per submission month."""
    application_number: Optional[str] = None

    # --- Student info ---
    full_name: str = Field(..., max_length=100)
    date_of_birth: datetime
    gender: Gender
    applying_for_class: SchoolClass
    academic_year: str = Field(..., pattern=ACADEMIC_YEAR_PATTERN.pattern)
    previous_school: Optional[str] = None

    # --- Contact ---
    email: EmailStr
    phone: str = Field(..., pattern=r"^[0-9]{10}$")
    address: Optional[Address] = None
    father_name: str
    mother_name: str

    # --- Fee ---
    admission_fee: float = Field(default=5000, ge=0)
    payment_method: PaymentMethod = PaymentMethod.ONLINE
    fee_payment_status: PaymentStatus = PaymentStatus.PENDING
    fee_transaction_id: Optional[str] = None
    fee_paid_date: Optional[datetime] = None

    uploaded_documents: List[str] = Field(default_factory=list)

    # --- Processing ---
    status: AdmissionStatus = Field(default=AdmissionStatus.SUBMITTED)
    processed_by: Optional[PydanticObjectId] = None
    processed_date: Optional[datetime] = None
    remarks: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    class Settings:
        name = "admissions"
        indexes = [
            IndexModel([("application_number", ASCENDING)], name="admission_application_number_unique_index", unique=True, sparse=True),
            IndexModel([("status", ASCENDING)], name="admission_status_index"),
            IndexModel([("academic_year", ASCENDING)], name="admission_academic_year_index"),
            IndexModel([("email", ASCENDING)], name="admission_email_index"),
            IndexModel([("created_at", DESCENDING)], name="admission_created_at_index"),
        ]

    @before_event(Insert)
    async def assign_application_number(self):
        if self.application_number:
            self.application_number = self.application_number.strip().upper()
            return
        await assign_identifier(self, EntityType.ADMISSION, month_scope(self.created_at))

    def required_documents(self) -> List[str]:
        required = list(BASE_REQUIRED_DOCUMENTS)
        if self.applying_for_class not in PRE_PRIMARY_CLASSES:
            required.append("marksheet")
        return required

    def are_required_documents_uploaded(self) -> bool:
        return all(doc in self.uploaded_documents for doc in self.required_documents())

    def is_fee_paid(self) -> bool:
        return self.fee_payment_status == PaymentStatus.COMPLETED

    # --- Pydantic Schemas ---
    class Create(BaseModel):
        full_name: str = Field(..., min_length=1, max_length=100)
        date_of_birth: datetime
        gender: Gender
        applying_for_class: SchoolClass
        academic_year: str = Field(..., pattern=ACADEMIC_YEAR_PATTERN.pattern)
        previous_school: Optional[str] = None
        email: EmailStr
        phone: str = Field(..., pattern=r"^[0-9]{10}$")
        address: Optional[Address] = None
        father_name: str = Field(..., min_length=1)
        mother_name: str = Field(..., min_length=1)
        admission_fee: float = Field(default=5000, ge=0)
        payment_method: PaymentMethod = PaymentMethod.ONLINE
        uploaded_documents: List[str] = Field(default_factory=list)

        @field_validator("applying_for_class", mode="before")
        @classmethod
        def normalize_class(cls, v):
            return normalize_class_name(v)

        @field_validator("academic_year")
        @classmethod
        def consecutive_years(cls, v):
            return validate_academic_year(v)

    class StatusUpdate(BaseModel):
        status: AdmissionStatus
        remarks: Optional[str] = None

    class FeePaymentUpdate(BaseModel):
        payment_method: Optional[PaymentMethod] = None
        transaction_id: Optional[str] = None
        paid_date: Optional[datetime] = None

    class Response(BaseModel):
        id: str = Field(..., alias="_id")
        application_number: str
        full_name: str
        date_of_birth: datetime
        gender: Gender
        applying_for_class: SchoolClass
        academic_year: str
        previous_school: Optional[str] = None
        email: EmailStr
        phone: str
        address: Optional[Address] = None
        father_name: str
        mother_name: str
        admission_fee: float
        payment_method: PaymentMethod
        fee_payment_status: PaymentStatus
        fee_transaction_id: Optional[str] = None
        fee_paid_date: Optional[datetime] = None
        uploaded_documents: List[str]
        documents_complete: bool = False
        status: AdmissionStatus
        processed_by: Optional[str] = None
        processed_date: Optional[datetime] = None
        remarks: Optional[str] = None
        created_at: datetime
        updated_at: datetime

        class Config:
            from_attributes = True
            populate_by_name = True
            use_enum_values = True
