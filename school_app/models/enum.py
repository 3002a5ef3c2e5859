# school_app/models/enum.py
from enum import Enum

class SchoolClass(str, Enum):
    NURSERY = "Nursery"
    LKG = "LKG"
    UKG = "UKG"
    CLASS_1 = "1"
    CLASS_2 = "2"
    CLASS_3 = "3"
    CLASS_4 = "4"
    CLASS_5 = "5"
    CLASS_6 = "6"
    CLASS_7 = "7"
    CLASS_8 = "8"
    CLASS_9 = "9"
    CLASS_10 = "10"
    CLASS_11 = "11"
    CLASS_12 = "12"

class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"

class StudentStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    TRANSFERRED = "transferred"
    GRADUATED = "graduated"
    SUSPENDED = "suspended"

class AdmissionStatus(str, Enum):
    SUBMITTED = "submitted"       # <-- Initial status of a public submission
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    WAITLISTED = "waitlisted"
    ADMITTED = "admitted"

class PaymentMethod(str, Enum):
    CASH = "cash"
    CHEQUE = "cheque"
    ONLINE = "online"
    BANK_TRANSFER = "bank_transfer"
    CARD = "card"

class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"

class FeeDueStatus(str, Enum):
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"
    OVERDUE = "overdue"

class PaymentSchedule(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    HALF_YEARLY = "half_yearly"
    YEARLY = "yearly"

class FacultyStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ON_LEAVE = "on_leave"
    TERMINATED = "terminated"
    RETIRED = "retired"

class EmploymentType(str, Enum):
    PERMANENT = "permanent"
    TEMPORARY = "temporary"
    CONTRACT = "contract"
    GUEST = "guest"


# Free-form class labels seen in forms ("5th", "NS") -> SchoolClass value
CLASS_ALIASES = {
    "NS": "Nursery", "NURSERY": "Nursery",
    "1ST": "1", "2ND": "2", "3RD": "3", "4TH": "4", "5TH": "5", "6TH": "6",
    "7TH": "7", "8TH": "8", "9TH": "9", "10TH": "10", "11TH": "11", "12TH": "12",
}

def normalize_class_name(value):
    if isinstance(value, str):
        cleaned = value.strip()
        return CLASS_ALIASES.get(cleaned.upper(), cleaned)
    return value
