# school_app/api/v1/endpoints/faculty.py
from typing import List, Optional
from fastapi import APIRouter, Depends, status, Path, Body, Query
import logging
from datetime import datetime

from school_app.core.accounts import insert_with_login
from school_app.core.config import DEFAULT_FACULTY_PASSWORD
from school_app.core.security import require_admin, User
from school_app.core.utils import get_document_or_404, validate_document_response
from school_app.models.enum import FacultyStatus
from school_app.models.faculty import Faculty
from school_app.models.user import UserRole

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["Faculty"],
    dependencies=[Depends(require_admin)]
)

def validate_faculty_response(faculty_doc: Faculty) -> Faculty.Response:
    return validate_document_response(faculty_doc, Faculty.Response)


# --- POST / --- (employee_id FAC001, FAC002, ... from the counter store)
@router.post(
    "/",
    response_model=Faculty.Response,
    status_code=status.HTTP_201_CREATED,
)
async def create_faculty(
    faculty_in: Faculty.Create = Body(...),
    current_user: User = Depends(require_admin)
):
    faculty_data = faculty_in.model_dump()
    if not faculty_data.get("joining_date"):
        faculty_data["joining_date"] = datetime.now()

    faculty_obj = Faculty(**faculty_data)
    full_name = f"{faculty_obj.first_name} {faculty_obj.last_name}"
    await insert_with_login(faculty_obj, faculty_obj.email, full_name, UserRole.FACULTY, DEFAULT_FACULTY_PASSWORD)
    logger.info(f"Faculty '{faculty_obj.employee_id}' ({faculty_obj.email}) created by '{current_user.username}'.")
    return validate_faculty_response(faculty_obj)


# --- GET / ---
@router.get(
    "/",
    response_model=List[Faculty.Response],
)
async def read_faculty(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    department: Optional[str] = Query(None),
    status_filter: Optional[FacultyStatus] = Query(None, alias="status"),
):
    query_filters = {}
    if department: query_filters["department"] = department
    if status_filter: query_filters["status"] = status_filter.value

    docs = await Faculty.find(query_filters, skip=skip, limit=limit).sort("+employee_id").to_list()
    return [validate_faculty_response(doc) for doc in docs]


# --- GET /{faculty_id} ---
@router.get(
    "/{faculty_id}",
    response_model=Faculty.Response,
)
async def read_faculty_member(faculty_id: str = Path(..., description="Document ID of the faculty member")):
    faculty = await get_document_or_404(Faculty, faculty_id, "faculty member")
    return validate_faculty_response(faculty)
