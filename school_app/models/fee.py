# school_app/models/fee.py
from typing import Optional
from beanie import Document, Insert, PydanticObjectId, before_event
from pydantic import BaseModel, Field, field_validator
from pymongo import IndexModel, ASCENDING, DESCENDING
from datetime import datetime

from school_app.core.identifiers import ACADEMIC_YEAR_PATTERN, EntityType, assign_identifier, validate_academic_year, year_scope
from .enum import (
    FeeDueStatus,
    PaymentMethod,
    PaymentSchedule,
    PaymentStatus,
    SchoolClass,
    normalize_class_name,
)


def _naive(moment: datetime) -> datetime:
    """Local naive datetime, the form stored documents come back in."""
    if moment.tzinfo is not None:
        return moment.astimezone().replace(tzinfo=None)
    return moment


class FeeComponents(BaseModel):
    tuition_fee: float = Field(..., ge=0)
    admission_fee: float = Field(default=0, ge=0)
    development_fee: float = Field(default=0, ge=0)
    exam_fee: float = Field(default=0, ge=0)
    library_fee: float = Field(default=0, ge=0)
    sports_fee: float = Field(default=0, ge=0)
    transport_fee: float = Field(default=0, ge=0)
    uniform_fee: float = Field(default=0, ge=0)
    books_fee: float = Field(default=0, ge=0)
    miscellaneous_fee: float = Field(default=0, ge=0)

    def total(self) -> float:
        return sum(self.model_dump().values())


class FeeStructure(Document):
    class_name: SchoolClass
    academic_year: str = Field(..., pattern=ACADEMIC_YEAR_PATTERN.pattern)
    components: FeeComponents
    payment_schedule: PaymentSchedule = PaymentSchedule.QUARTERLY
    is_active: bool = True
    created_by: Optional[PydanticObjectId] = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    class Settings:
        name = "fee_structures"
        indexes = [
            IndexModel([("class_name", ASCENDING), ("academic_year", ASCENDING)], name="fee_structure_class_year_index"),
        ]

    class Create(BaseModel):
        class_name: SchoolClass
        academic_year: str = Field(..., pattern=ACADEMIC_YEAR_PATTERN.pattern)
        components: FeeComponents
        payment_schedule: PaymentSchedule = PaymentSchedule.QUARTERLY

        @field_validator("class_name", mode="before")
        @classmethod
        def normalize_class(cls, v):
            return normalize_class_name(v)

        @field_validator("academic_year")
        @classmethod
        def consecutive_years(cls, v):
            return validate_academic_year(v)

    class Response(BaseModel):
        id: str = Field(..., alias="_id")
        class_name: SchoolClass
        academic_year: str
        components: FeeComponents
        total_amount: float
        payment_schedule: PaymentSchedule
        is_active: bool
        created_at: datetime
        updated_at: datetime
        class Config: from_attributes=True; populate_by_name=True; use_enum_values=True


class FeeDue(Document):
    """One installment a student owes against a fee structure."""
    student: PydanticObjectId
    fee_structure: PydanticObjectId
    academic_year: str
    installment_number: int = Field(..., ge=1)
    due_date: datetime
    amount: float = Field(..., ge=0)
    paid_amount: float = Field(default=0, ge=0)
    status: FeeDueStatus = FeeDueStatus.PENDING
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    class Settings:
        name = "fee_dues"
        indexes = [
            IndexModel([("student", ASCENDING), ("academic_year", ASCENDING)], name="fee_due_student_year_index"),
            IndexModel([("due_date", ASCENDING)], name="fee_due_due_date_index"),
            IndexModel([("status", ASCENDING)], name="fee_due_status_index"),
        ]

    @property
    def remaining_amount(self) -> float:
        return max(0.0, self.amount - self.paid_amount)

    def compute_status(self, now: Optional[datetime] = None) -> FeeDueStatus:
        now = _naive(now or datetime.now())
        if self.paid_amount >= self.amount:
            return FeeDueStatus.PAID
        if self.paid_amount > 0:
            return FeeDueStatus.PARTIAL
        if now > _naive(self.due_date):
            return FeeDueStatus.OVERDUE
        return FeeDueStatus.PENDING

    def refresh_status(self, now: Optional[datetime] = None) -> FeeDueStatus:
        self.status = self.compute_status(now)
        return self.status

    class Create(BaseModel):
        student_id: str
        fee_structure_id: str
        installment_number: int = Field(..., ge=1)
        due_date: datetime
        amount: float = Field(..., ge=0)

    class Response(BaseModel):
        id: str = Field(..., alias="_id")
        student: str
        fee_structure: str
        academic_year: str
        installment_number: int
        due_date: datetime
        amount: float
        paid_amount: float
        remaining_amount: float
        status: FeeDueStatus
        class Config: from_attributes=True; populate_by_name=True; use_enum_values=True


class FeeBreakdown(BaseModel):
    tuition_fee: float = 0
    admission_fee: float = 0
    exam_fee: float = 0
    transport_fee: float = 0
    miscellaneous_fee: float = 0
    late_fee: float = 0
    discount: float = 0


class FeePayment(Document):
    """A fee payment. ``receipt_number`` is allocated per calendar year of payment_date."""
    receipt_number: Optional[str] = None
    student: PydanticObjectId
    fee_structure: PydanticObjectId
    academic_year: str
    installment_number: int = Field(..., ge=1)
    amount: float = Field(..., ge=0)
    payment_method: PaymentMethod
    transaction_id: Optional[str] = None
    cheque_number: Optional[str] = None
    bank_name: Optional[str] = None
    payment_date: datetime = Field(default_factory=datetime.now)
    breakdown: FeeBreakdown = Field(default_factory=FeeBreakdown)
    status: PaymentStatus = PaymentStatus.COMPLETED
    remarks: Optional[str] = None
    processed_by: Optional[PydanticObjectId] = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    class Settings:
        name = "fee_payments"
        indexes = [
            IndexModel([("receipt_number", ASCENDING)], name="fee_payment_receipt_number_unique_index", unique=True, sparse=True),
            IndexModel([("student", ASCENDING), ("academic_year", ASCENDING)], name="fee_payment_student_year_index"),
            IndexModel([("payment_date", DESCENDING)], name="fee_payment_date_index"),
        ]

    @before_event(Insert)
    async def assign_receipt_number(self):
        if self.receipt_number:
            return
        await assign_identifier(self, EntityType.FEE_RECEIPT, year_scope(self.payment_date))

    class Create(BaseModel):
        student_id: str
        fee_structure_id: str
        installment_number: int = Field(..., ge=1)
        amount: float = Field(..., gt=0)
        payment_method: PaymentMethod
        transaction_id: Optional[str] = None
        cheque_number: Optional[str] = None
        bank_name: Optional[str] = None
        payment_date: Optional[datetime] = None
        breakdown: Optional[FeeBreakdown] = None
        remarks: Optional[str] = None

    class Response(BaseModel):
        id: str = Field(..., alias="_id")
        receipt_number: str
        student: str
        fee_structure: str
        academic_year: str
        installment_number: int
        amount: float
        payment_method: PaymentMethod
        transaction_id: Optional[str] = None
        cheque_number: Optional[str] = None
        bank_name: Optional[str] = None
        payment_date: datetime
        breakdown: FeeBreakdown
        status: PaymentStatus
        remarks: Optional[str] = None
        processed_by: Optional[str] = None
        created_at: datetime
        class Config: from_attributes=True; populate_by_name=True; use_enum_values=True
