# school_app/api/v1/endpoints/admissions.py
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Path, Body, Query, Request
from loguru import logger
from datetime import datetime

from school_app.core.rate_limiter import limiter
from school_app.core.security import require_admin, require_staff, User
from school_app.core.utils import get_document_or_404, validate_document_response
from school_app.models.admission import Admission
from school_app.models.enum import AdmissionStatus, PaymentStatus

router = APIRouter(
    tags=["Admissions"]
)

async def get_admission_or_404(admission_id: str) -> Admission:
    return await get_document_or_404(Admission, admission_id, "admission")

def validate_admission_response(admission_doc: Admission) -> Admission.Response:
    return validate_document_response(
        admission_doc,
        Admission.Response,
        extra={"documents_complete": admission_doc.are_required_documents_uploaded()},
    )


# --- POST / --- (Public admission form submission)
@router.post(
    "/",
    response_model=Admission.Response,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit("10/minute")
async def submit_admission(
    request: Request,
    admission_in: Admission.Create = Body(...),
):
    """Submit an application. The application number (ADM + yy + MM + 4 digits) is generated."""
    admission_obj = Admission(**admission_in.model_dump())
    await admission_obj.insert()
    logger.info(f"Admission '{admission_obj.application_number}' submitted for '{admission_obj.full_name}'.")

    created = await Admission.get(admission_obj.id)
    if not created:
        raise HTTPException(status_code=500, detail="Failed to retrieve submitted admission.")
    return validate_admission_response(created)


# --- GET / --- (Staff listing, newest first)
@router.get(
    "/",
    response_model=List[Admission.Response],
    dependencies=[Depends(require_staff)]
)
async def read_admissions(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    status_filter: Optional[AdmissionStatus] = Query(None, alias="status"),
    academic_year: Optional[str] = Query(None),
):
    query_filters = {}
    if status_filter: query_filters["status"] = status_filter.value
    if academic_year: query_filters["academic_year"] = academic_year

    docs = await Admission.find(query_filters, skip=skip, limit=limit).sort("-created_at").to_list()
    return [validate_admission_response(doc) for doc in docs]


# --- GET /{admission_id} ---
@router.get(
    "/{admission_id}",
    response_model=Admission.Response,
    dependencies=[Depends(require_staff)]
)
async def read_admission(admission_id: str = Path(...)):
    admission = await get_admission_or_404(admission_id)
    return validate_admission_response(admission)


# --- PUT /{admission_id}/fee-payment --- (Record the admission fee as paid)
@router.put(
    "/{admission_id}/fee-payment",
    response_model=Admission.Response,
)
async def record_admission_fee_payment(
    admission_id: str = Path(...),
    payment_in: Admission.FeePaymentUpdate = Body(...),
    current_user: User = Depends(require_admin)
):
    admission = await get_admission_or_404(admission_id)
    if admission.is_fee_paid():
        raise HTTPException(status_code=400, detail="Admission fee is already paid.")

    now = datetime.now()
    admission.fee_payment_status = PaymentStatus.COMPLETED
    if payment_in.payment_method:
        admission.payment_method = payment_in.payment_method
    admission.fee_transaction_id = payment_in.transaction_id
    admission.fee_paid_date = payment_in.paid_date or now
    admission.updated_at = now
    await admission.save()
    logger.info(f"Admission fee for '{admission.application_number}' marked paid by '{current_user.username}'.")
    return validate_admission_response(admission)


# --- PUT /{admission_id}/status --- (Approve / reject / waitlist)
@router.put(
    "/{admission_id}/status",
    response_model=Admission.Response,
)
async def update_admission_status(
    admission_id: str = Path(...),
    status_in: Admission.StatusUpdate = Body(...),
    current_user: User = Depends(require_admin)
):
    """
    Move an application to a new status, recording who processed it and when.
    Approval needs all required documents and a paid admission fee.
    """
    admission = await get_admission_or_404(admission_id)
    if admission.status == AdmissionStatus.ADMITTED and status_in.status != AdmissionStatus.ADMITTED:
        raise HTTPException(status_code=400, detail="Admitted applications cannot change status.")

    if status_in.status == AdmissionStatus.APPROVED:
        if admission.status in (AdmissionStatus.APPROVED, AdmissionStatus.ADMITTED):
            raise HTTPException(status_code=400, detail="Application is already approved/admitted.")
        if not admission.are_required_documents_uploaded():
            missing = [d for d in admission.required_documents() if d not in admission.uploaded_documents]
            raise HTTPException(status_code=400, detail=f"Required documents are not uploaded: {', '.join(missing)}.")
        if not admission.is_fee_paid():
            raise HTTPException(status_code=400, detail="Admission fee payment is pending. Cannot approve application.")

    now = datetime.now()
    admission.status = status_in.status
    admission.processed_by = current_user.id
    admission.processed_date = now
    if status_in.remarks:
        admission.remarks = status_in.remarks
    admission.updated_at = now
    await admission.save()
    logger.info(f"Admission '{admission.application_number}' set to '{admission.status.value}' by '{current_user.username}'.")
    return validate_admission_response(admission)
