# school_app/middleware/authentication.py
from typing import Optional, Set, Tuple, Callable, Awaitable

from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.security.utils import get_authorization_scheme_param
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp
from loguru import logger
from jose import JWTError, jwt

from school_app.core.config import SECRET_KEY, ALGORITHM


# Paths that never need a token
PUBLIC_PATHS: Set[str] = {
    "/",
    "/docs",
    "/openapi.json",
    "/redoc",
    "/api/v1/auth/token",
}

# Public only for the given method (admission forms are submitted anonymously)
PUBLIC_ENDPOINTS: Set[Tuple[str, str]] = {
    ("POST", "/api/v1/admissions"),
    ("POST", "/api/v1/admissions/"),
}

def is_public_path(path: str, method: str = "GET") -> bool:
    """Checks if the given path matches or starts with any public path prefix."""
    if path in PUBLIC_PATHS:
        return True
    if (method.upper(), path) in PUBLIC_ENDPOINTS:
        return True
    if path.startswith("/docs") or path.startswith("/redoc"):
        return True
    if path.startswith("/health"):
        return True
    return False

class AuthMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        path = request.url.path
        request_id = getattr(request.state, 'request_id', 'N/A')

        if request.method == "OPTIONS" or is_public_path(path, request.method):
            logger.debug(f"RID:{request_id} Public path accessed: {request.method} {path}. Skipping auth.")
            return await call_next(request)

        authorization: Optional[str] = request.headers.get("Authorization")
        scheme, token = get_authorization_scheme_param(authorization or "")
        if not authorization or scheme.lower() != "bearer" or not token:
            logger.warning(f"RID:{request_id} Auth failed: No valid Bearer token for protected path {path}.")
            return JSONResponse(
                 status_code=status.HTTP_401_UNAUTHORIZED,
                 content={"detail": "Not authenticated"},
                 headers={"WWW-Authenticate": "Bearer"},
            )

        try:
            payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
            username: Optional[str] = payload.get("sub")
            if username is None:
                raise JWTError("Username ('sub') missing in token payload.")
            request.state.username = username
            logger.debug(f"RID:{request_id} Auth successful for user '{username}' accessing protected path {path}.")
        except JWTError as e:
            logger.warning(f"RID:{request_id} Auth failed: Invalid token for path {path}. Error: {e}")
            return JSONResponse(
                 status_code=status.HTTP_401_UNAUTHORIZED,
                 content={"detail": f"Invalid token: {str(e)}"},
                 headers={"WWW-Authenticate": "Bearer"},
            )

        return await call_next(request)
