from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from lms_backend.core.database import get_db
from lms_backend.core.dependencies import get_current_staff_user, get_current_admin_user
from lms_backend.models.user_model import User
from lms_backend.schemas import payment_schema as schemas
from lms_backend.crud import payment_crud as crud

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Payments & Purchases"])

# --- Payments ---
@router.get("/payments", response_model=List[schemas.PaymentDisplay])
def list_payments(
    purchase_id: Optional[str] = Query(None, alias="purchaseId"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff_user)
):
    if not purchase_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="purchaseId is required")
    return crud.get_payments_for_purchase(db, purchase_id)

@router.post("/payments", response_model=schemas.PaymentRecordedResponse, status_code=status.HTTP_201_CREATED)
def record_installment(
    payment_in: schemas.PaymentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff_user)
):
    """
    Record one installment toward a student's purchase. The running total may
    never exceed the purchase price.
    """
    try:
        payment = crud.record_payment(db, payment_in, recorded_by=current_user.id)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    purchase = payment.purchase
    return schemas.PaymentRecordedResponse(
        payment=schemas.PaymentDisplay.model_validate(payment),
        total_paid=purchase.total_paid,
        remaining=max(0.0, purchase.effective_price - purchase.total_paid),
    )

# --- Purchases ---
@router.get("/purchases", response_model=List[schemas.PurchaseWithDetails])
def list_active_purchases(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff_user)
):
    return crud.get_active_purchases(db)

@router.patch("/purchases/{purchase_id}/course-price", response_model=schemas.PurchaseDisplay)
def update_purchase_price(
    purchase_id: str,
    price_in: schemas.CoursePriceUpdate,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin_user)
):
    purchase = crud.get_purchase_by_id(db, purchase_id)
    if purchase is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Purchase not found")
    try:
        return crud.update_course_price(db, purchase, price_in.course_price)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
