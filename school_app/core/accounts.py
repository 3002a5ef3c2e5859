# school_app/core/accounts.py
"""Login accounts that are created together with student and faculty records."""
from typing import Optional

from beanie import Document
from beanie.operators import Or
from fastapi import HTTPException, status
from loguru import logger

from school_app.core.security import get_password_hash
from school_app.models.user import User, UserRole


async def provision_user(email: str, full_name: Optional[str], role: UserRole, password: str) -> User:
    """Create an active login named after ``email``; 409 when that login already exists."""
    username = email.strip().lower()
    existing = await User.find_one(Or(User.username == username, User.email == username))
    if existing:
        logger.warning(f"Login for '{username}' already exists (role '{existing.role.value}').")
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"User with email '{username}' already exists.")

    user = User(
        username=username,
        email=username,
        full_name=full_name,
        hashed_password=get_password_hash(password),
        role=role,
    )
    await user.insert()
    logger.info(f"Provisioned {role.value} login '{username}'.")
    return user


async def insert_with_login(
    document: Document,
    email: str,
    full_name: Optional[str],
    role: UserRole,
    password: str,
) -> User:
    """
    Create the login first, link it through ``document.user_id`` and insert the document.
    If the insert fails the login is deleted again and the error is re-raised.
    """
    user = await provision_user(email, full_name, role, password)
    document.user_id = user.id
    try:
        await document.insert()
    except Exception:
        logger.warning(f"Rolling back login '{user.username}' after failed {type(document).__name__} insert.")
        await user.delete()
        raise
    return user
