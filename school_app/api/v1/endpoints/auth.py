# school_app/api/v1/endpoints/auth.py
from datetime import timedelta
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordRequestForm
from loguru import logger

from school_app.core.security import (
    create_access_token,
    verify_password,
    get_current_active_user,
)
from school_app.core.config import ACCESS_TOKEN_EXPIRE_MINUTES
from school_app.core.rate_limiter import limiter
from school_app.core.utils import validate_document_response
from school_app.models.user import Token, User

router = APIRouter(
    tags=["Authentication"]
)

# --- POST /token ---
@router.post("/token", response_model=Token)
@limiter.limit("20/minute")
async def login_for_access_token(request: Request, form_data: OAuth2PasswordRequestForm = Depends()):
    user = await User.find_one(User.username == form_data.username)
    if not user or not verify_password(form_data.password, user.hashed_password):
        logger.warning(f"Failed login attempt for username '{form_data.username}'.")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if user.disabled:
        raise HTTPException(status_code=400, detail="Inactive user")

    access_token = create_access_token(
        data={"sub": user.username, "role": user.role.value},
        expires_delta=timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    logger.info(f"User '{user.username}' logged in.")
    return {"access_token": access_token, "token_type": "bearer"}


# --- GET /me ---
@router.get("/me", response_model=User.Response)
async def read_users_me(current_user: User = Depends(get_current_active_user)):
    return validate_document_response(current_user, User.Response)
