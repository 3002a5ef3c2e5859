# school_app/api/v1/endpoints/students.py
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Path, Body, Query, Request
import logging
from datetime import datetime

from school_app.core.accounts import insert_with_login
from school_app.core.config import DEFAULT_STUDENT_PASSWORD
from school_app.core.identifiers import academic_year_for
from school_app.core.rate_limiter import limiter
from school_app.core.security import require_admin, User
from school_app.core.utils import get_document_or_404, validate_document_response
from school_app.models.enum import SchoolClass, StudentStatus, normalize_class_name
from school_app.models.student import Student
from school_app.models.user import UserRole

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["Students"],
    dependencies=[Depends(require_admin)]
)

async def get_student_or_404(student_id: str) -> Student:
    return await get_document_or_404(Student, student_id, "student")

def validate_student_response(student_doc: Student) -> Student.Response:
    return validate_document_response(student_doc, Student.Response)


# --- POST / --- (Create Student; student_id comes from the counter store)
@router.post(
    "/",
    response_model=Student.Response,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit("60/minute")
async def create_student(
    request: Request,
    student_in: Student.Create = Body(...),
    current_user: User = Depends(require_admin)
):
    """
    Create a student. Academic year defaults to the current one; ``student_id`` is
    generated (STU + yy + 4 digits) unless an imported value is supplied.
    With an email, a student login is created as well and removed again if the insert fails.
    """
    student_data = student_in.model_dump()
    if not student_data.get("academic_year"):
        student_data["academic_year"] = academic_year_for(datetime.now())

    student_obj = Student(**student_data)
    # DuplicateKeyError / SequenceAllocationError bubble up to the app handlers (409 / 503)
    if student_obj.email:
        full_name = " ".join(filter(None, [student_obj.first_name, student_obj.last_name]))
        await insert_with_login(student_obj, student_obj.email, full_name, UserRole.STUDENT, DEFAULT_STUDENT_PASSWORD)
    else:
        await student_obj.insert()
    logger.info(f"Student '{student_obj.student_id}' created by '{current_user.username}'.")

    created_student = await Student.get(student_obj.id)
    if not created_student:
        raise HTTPException(status_code=500, detail="Failed to retrieve created student.")
    return validate_student_response(created_student)


# --- GET / --- (List Students)
@router.get(
    "/",
    response_model=List[Student.Response],
)
async def read_students(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    class_name: Optional[str] = Query(None, description="Class, e.g. '5' or 'LKG'"),
    section: Optional[str] = Query(None),
    academic_year: Optional[str] = Query(None),
    status_filter: Optional[StudentStatus] = Query(None, alias="status"),
):
    """List students ordered by student_id."""
    query_filters = {}
    if class_name:
        normalized = normalize_class_name(class_name)
        try: query_filters["class_name"] = SchoolClass(normalized).value
        except ValueError: raise HTTPException(status_code=400, detail=f"Unknown class '{class_name}'.")
    if section: query_filters["section"] = section.strip().upper()
    if academic_year: query_filters["academic_year"] = academic_year
    if status_filter: query_filters["status"] = status_filter.value

    students_docs = await Student.find(query_filters, skip=skip, limit=limit).sort("+student_id").to_list()
    return [validate_student_response(doc) for doc in students_docs]


# --- GET /{student_id} ---
@router.get(
    "/{student_id}",
    response_model=Student.Response,
)
async def read_student(
    student_id: str = Path(..., description="Document ID of the student")
):
    student = await get_student_or_404(student_id)
    return validate_student_response(student)


# --- PUT /{student_id} ---
@router.put(
    "/{student_id}",
    response_model=Student.Response,
)
async def update_student(
    student_id: str = Path(...),
    student_in: Student.Update = Body(...),
    current_user: User = Depends(require_admin)
):
    """Update student details. student_id and academic_year are not updatable."""
    student_to_update = await get_student_or_404(student_id)
    # Explicit nulls are ignored; required fields can never be cleared
    update_data = student_in.model_dump(exclude_unset=True, exclude_none=True, mode="json")
    if not update_data:
        raise HTTPException(status_code=400, detail="No update data provided.")

    update_data["updated_at"] = datetime.now()
    await student_to_update.update({"$set": update_data})
    logger.info(f"Student '{student_to_update.student_id}' updated by '{current_user.username}'. Fields: {list(update_data.keys())}")

    updated_student = await Student.get(student_to_update.id)
    if not updated_student:
        raise HTTPException(status_code=404, detail="Student not found after update.")
    return validate_student_response(updated_student)


# --- DELETE /{student_id} --- (soft delete)
@router.delete(
    "/{student_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_student(
    student_id: str = Path(...),
    current_user: User = Depends(require_admin)
):
    """Mark a student inactive. The record and its student_id are kept."""
    student = await get_student_or_404(student_id)
    if student.status != StudentStatus.INACTIVE:
        student.status = StudentStatus.INACTIVE
        student.updated_at = datetime.now()
        await student.save()
        logger.info(f"Student '{student.student_id}' marked inactive by '{current_user.username}'.")
    else:
        logger.info(f"Student '{student.student_id}' is already inactive. No action taken.")
    return None
