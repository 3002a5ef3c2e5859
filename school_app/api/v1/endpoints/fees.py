# school_app/api/v1/endpoints/fees.py
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Path, Body, Request
from beanie.odm.operators.update.general import Inc, Set
from beanie.odm.queries.update import UpdateResponse
from loguru import logger
from datetime import datetime

from school_app.core.rate_limiter import limiter
from school_app.core.security import require_admin, User
from school_app.core.utils import get_document_or_404, validate_document_response
from school_app.models.fee import FeeDue, FeePayment, FeeStructure, FeeBreakdown
from school_app.models.student import Student

router = APIRouter(
    tags=["Fees"],
    dependencies=[Depends(require_admin)]
)

def validate_structure_response(doc: FeeStructure) -> FeeStructure.Response:
    return validate_document_response(doc, FeeStructure.Response, extra={"total_amount": doc.components.total()})

def validate_due_response(doc: FeeDue) -> FeeDue.Response:
    return validate_document_response(doc, FeeDue.Response, extra={"remaining_amount": doc.remaining_amount})

def validate_payment_response(doc: FeePayment) -> FeePayment.Response:
    return validate_document_response(doc, FeePayment.Response)


async def apply_payment_to_due(payment: FeePayment) -> Optional[FeeDue]:
    """
    Add ``payment.amount`` to the matching installment due with an atomic ``$inc``
    and recompute its status from the value that increment produced.
    """
    now = datetime.now()
    due = await FeeDue.find_one(
        FeeDue.student == payment.student,
        FeeDue.fee_structure == payment.fee_structure,
        FeeDue.installment_number == payment.installment_number,
        FeeDue.academic_year == payment.academic_year,
    ).update(
        Inc({FeeDue.paid_amount: payment.amount}),
        Set({FeeDue.updated_at: now}),
        response_type=UpdateResponse.NEW_DOCUMENT,
    )
    if not due:
        return None

    new_status = due.compute_status(now)
    if new_status != due.status:
        # Only if no later payment moved paid_amount on; that writer sets the status itself
        await FeeDue.find_one(
            FeeDue.id == due.id,
            FeeDue.paid_amount == due.paid_amount,
        ).update(Set({FeeDue.status: new_status}))
        due.status = new_status
    logger.debug(f"Fee due {due.id} now {due.status.value} (paid {due.paid_amount:.2f}/{due.amount:.2f}).")
    return due


# --- POST /structures ---
@router.post(
    "/structures",
    response_model=FeeStructure.Response,
    status_code=status.HTTP_201_CREATED,
)
async def create_fee_structure(
    structure_in: FeeStructure.Create = Body(...),
    current_user: User = Depends(require_admin)
):
    """Create the fee structure for a class and academic year (replaces the active one)."""
    previous = await FeeStructure.find(
        FeeStructure.class_name == structure_in.class_name,
        FeeStructure.academic_year == structure_in.academic_year,
        FeeStructure.is_active == True,
    ).to_list()
    for old in previous:
        old.is_active = False
        old.updated_at = datetime.now()
        await old.save()

    structure = FeeStructure(**structure_in.model_dump(), created_by=current_user.id)
    await structure.insert()
    logger.info(
        f"Fee structure for class {structure.class_name.value} ({structure.academic_year}) "
        f"created by '{current_user.username}', total {structure.components.total():.2f}."
    )
    return validate_structure_response(structure)


# --- POST /dues ---
@router.post(
    "/dues",
    response_model=FeeDue.Response,
    status_code=status.HTTP_201_CREATED,
)
async def create_fee_due(due_in: FeeDue.Create = Body(...)):
    student = await get_document_or_404(Student, due_in.student_id, "student")
    structure = await get_document_or_404(FeeStructure, due_in.fee_structure_id, "fee structure")

    due = FeeDue(
        student=student.id,
        fee_structure=structure.id,
        academic_year=structure.academic_year,
        installment_number=due_in.installment_number,
        due_date=due_in.due_date,
        amount=due_in.amount,
    )
    due.refresh_status()
    await due.insert()
    logger.info(f"Fee due #{due.installment_number} of {due.amount:.2f} created for student '{student.student_id}'.")
    return validate_due_response(due)


# --- POST /payments --- (receipt_number comes from the counter store)
@router.post(
    "/payments",
    response_model=FeePayment.Response,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit("60/minute")
async def record_payment(
    request: Request,
    payment_in: FeePayment.Create = Body(...),
    current_user: User = Depends(require_admin)
):
    """Record a fee payment and apply it to the matching installment due, if any."""
    student = await get_document_or_404(Student, payment_in.student_id, "student")
    structure = await get_document_or_404(FeeStructure, payment_in.fee_structure_id, "fee structure")

    payment_data = payment_in.model_dump(exclude={"student_id", "fee_structure_id", "payment_date", "breakdown"})
    payment = FeePayment(
        **payment_data,
        student=student.id,
        fee_structure=structure.id,
        academic_year=structure.academic_year,
        payment_date=payment_in.payment_date or datetime.now(),
        breakdown=payment_in.breakdown or FeeBreakdown(),
        processed_by=current_user.id,
    )
    await payment.insert()
    logger.info(f"Payment '{payment.receipt_number}' of {payment.amount:.2f} recorded for student '{student.student_id}'.")

    await apply_payment_to_due(payment)
    return validate_payment_response(payment)


# --- GET /students/{student_id}/payments ---
@router.get(
    "/students/{student_id}/payments",
    response_model=List[FeePayment.Response],
)
async def read_student_payments(student_id: str = Path(..., description="Document ID of the student")):
    student = await get_document_or_404(Student, student_id, "student")
    payments = await FeePayment.find(FeePayment.student == student.id).sort("-payment_date").to_list()
    return [validate_payment_response(p) for p in payments]


# --- GET /payments/{receipt_number} ---
@router.get(
    "/payments/{receipt_number}",
    response_model=FeePayment.Response,
)
async def read_receipt(receipt_number: str = Path(..., description="Receipt number, e.g. RCP2025000001")):
    payment = await FeePayment.find_one(FeePayment.receipt_number == receipt_number.strip().upper())
    if not payment:
        raise HTTPException(status_code=404, detail=f"Receipt '{receipt_number}' not found.")
    return validate_payment_response(payment)
