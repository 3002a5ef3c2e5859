# school_app/models/user.py
from typing import Optional
from beanie import Document
from pydantic import BaseModel, Field, EmailStr
from pymongo import IndexModel, ASCENDING, DESCENDING
from enum import Enum
from datetime import datetime

class UserRole(str, Enum):
    ADMIN = "admin"
    FACULTY = "faculty"
    STUDENT = "student"

class User(Document):
    username: str
    email: Optional[EmailStr] = None
    full_name: Optional[str] = None
    hashed_password: str
    disabled: bool = Field(default=False) # False=active, True=disabled
    role: UserRole = Field(default=UserRole.STUDENT)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    class Settings:
        name = "users"
        keep_nulls = False # users without an email stay out of the sparse unique email index
        indexes = [
            IndexModel([("username", ASCENDING)], name="username_unique_index", unique=True),
            IndexModel([("email", ASCENDING)], name="email_unique_index", unique=True, sparse=True),
            IndexModel([("role", ASCENDING)], name="role_index"),
            IndexModel([("updated_at", DESCENDING)], name="user_updated_at_index"),
        ]

    # --- Pydantic Schemas ---
    class Response(BaseModel):
        id: str = Field(..., alias="_id")
        username: str
        email: Optional[EmailStr] = None
        full_name: Optional[str] = None
        disabled: bool
        role: UserRole
        created_at: datetime
        updated_at: datetime

        class Config:
            from_attributes = True
            populate_by_name = True
            use_enum_values = True


class Token(BaseModel):
    access_token: str
    token_type: str
