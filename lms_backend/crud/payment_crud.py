from sqlalchemy.orm import Session, selectinload
from sqlalchemy import func
from typing import List, Optional, Dict, Tuple
import logging

from lms_backend.models.enums import PurchaseStatus, UserRole
from lms_backend.models.user_model import User
from lms_backend.models.course_model import Course
from lms_backend.models.payment_model import Purchase, Payment
from lms_backend.schemas import payment_schema as schemas

logger = logging.getLogger(__name__)

# --- Purchases ---
def get_purchase_by_id(db: Session, purchase_id: str) -> Optional[Purchase]:
    logger.debug(f"Fetching purchase with ID: {purchase_id}")
    return db.query(Purchase).filter(Purchase.id == purchase_id).first()

def get_purchase_for(db: Session, user_id: str, course_id: str) -> Optional[Purchase]:
    return db.query(Purchase).filter(Purchase.user_id == user_id, Purchase.course_id == course_id).first()

def grant_course_access(db: Session, user_id: str, course: Course) -> Tuple[Purchase, bool]:
    """
    Gives a student an ACTIVE purchase of the course.
    Reactivates a cancelled purchase rather than creating a duplicate.
    Returns (purchase, created). Raises ValueError when already enrolled.
    """
    purchase = get_purchase_for(db, user_id, course.id)
    if purchase is not None and purchase.status == PurchaseStatus.ACTIVE:
        logger.warning(f"User {user_id} already enrolled in course {course.id}")
        raise ValueError("Already enrolled")

    created = purchase is None
    if created:
        purchase = Purchase(
            user_id=user_id,
            course_id=course.id,
            status=PurchaseStatus.ACTIVE,
            course_price=course.price,
            total_paid=0,
        )
        db.add(purchase)
    else:
        purchase.status = PurchaseStatus.ACTIVE

    db.commit()
    db.refresh(purchase)
    logger.info(f"{'Created' if created else 'Reactivated'} purchase {purchase.id} of course {course.id} for user {user_id}")
    return purchase, created

def enroll_in_free_course(db: Session, user_id: str, course: Course) -> Purchase:
    if not course.is_free or not course.is_published:
        raise ValueError("Only free published courses can be enrolled in directly")
    purchase, _ = grant_course_access(db, user_id, course)
    return purchase

def add_course_to_student(db: Session, student: User, course: Course) -> Tuple[Purchase, bool]:
    """Staff enrolment of a student in a published course, paid or free."""
    if student.role != UserRole.USER:
        raise ValueError("Courses can only be added to student accounts")
    if not course.is_published:
        raise ValueError("Course is not published")
    return grant_course_access(db, student.id, course)

def cancel_purchase(db: Session, user_id: str, course_id: str) -> Optional[Purchase]:
    """Cancels the student's ACTIVE purchase of a course. None when there is none."""
    purchase = get_purchase_for(db, user_id, course_id)
    if purchase is None or purchase.status != PurchaseStatus.ACTIVE:
        return None
    purchase.status = PurchaseStatus.CANCELLED
    db.commit()
    db.refresh(purchase)
    logger.info(f"Purchase {purchase.id} of course {course_id} by user {user_id} cancelled.")
    return purchase

def get_active_purchases(db: Session) -> List[Purchase]:
    return (
        db.query(Purchase)
        .options(selectinload(Purchase.user), selectinload(Purchase.course), selectinload(Purchase.payments))
        .filter(Purchase.status == PurchaseStatus.ACTIVE)
        .order_by(Purchase.created_at.desc())
        .all()
    )

def get_active_courses_for_user(db: Session, user_id: str) -> List[Course]:
    return (
        db.query(Course)
        .join(Purchase, Purchase.course_id == Course.id)
        .filter(Purchase.user_id == user_id, Purchase.status == PurchaseStatus.ACTIVE)
        .order_by(Purchase.created_at.desc())
        .all()
    )

def get_course_students(db: Session, course_id: str) -> List[Dict]:
    rows = (
        db.query(User, Purchase.created_at)
        .join(Purchase, Purchase.user_id == User.id)
        .filter(Purchase.course_id == course_id, Purchase.status == PurchaseStatus.ACTIVE)
        .order_by(Purchase.created_at.desc())
        .all()
    )
    return [
        {
            "id": user.id,
            "full_name": user.full_name,
            "phone_number": user.phone_number,
            "email": user.email,
            "role": user.role,
            "enrolled_at": enrolled_at,
        }
        for user, enrolled_at in rows
    ]

def update_course_price(db: Session, purchase: Purchase, course_price: Optional[float]) -> Purchase:
    """
    Sets the price agreed with one student. It can never drop below what they already paid.
    """
    if course_price is None:
        raise ValueError("Course price is required")
    if course_price < 0:
        raise ValueError("Course price must be a non-negative number")
    if course_price < (purchase.total_paid or 0):
        raise ValueError("Course price cannot be less than the amount already paid")

    purchase.course_price = course_price
    db.commit()
    db.refresh(purchase)
    logger.info(f"Purchase {purchase.id} course price set to {course_price}")
    return purchase

# --- Payments ---
def get_payments_for_purchase(db: Session, purchase_id: str) -> List[Payment]:
    return (
        db.query(Payment)
        .filter(Payment.purchase_id == purchase_id)
        .order_by(Payment.payment_number.asc())
        .all()
    )

def record_payment(db: Session, payment_in: schemas.PaymentCreate, recorded_by: str) -> Payment:
    """
    Records one installment against a purchase.
    The running total is checked against the purchase price so it can never exceed it;
    the payment row and the purchase total are committed together.
    """
    if payment_in.amount is None or payment_in.amount <= 0:
        raise ValueError("Payment amount must be greater than zero")

    purchase = get_purchase_by_id(db, payment_in.purchase_id)
    if purchase is None:
        raise LookupError("Purchase not found")

    price = purchase.effective_price
    new_total = (purchase.total_paid or 0) + payment_in.amount
    if new_total > price:
        logger.warning(
            f"Rejected payment of {payment_in.amount} on purchase {purchase.id}: "
            f"total {new_total} would exceed price {price}"
        )
        raise ValueError("Payment amount exceeds course price")

    last_number = db.query(func.max(Payment.payment_number)).filter(Payment.purchase_id == purchase.id).scalar()
    payment = Payment(
        purchase_id=purchase.id,
        amount=payment_in.amount,
        payment_number=(last_number or 0) + 1,
        notes=payment_in.notes,
        recorded_by=recorded_by,
    )
    purchase.total_paid = new_total
    db.add(payment)
    try:
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Error recording payment on purchase {purchase.id}: {e}", exc_info=True)
        raise
    db.refresh(payment)
    logger.info(f"Payment #{payment.payment_number} of {payment.amount} recorded on purchase {purchase.id} by {recorded_by}")
    return payment

# --- Reporting ---
def build_financial_report(db: Session, course: Course) -> Dict:
    purchases = (
        db.query(Purchase)
        .options(selectinload(Purchase.user), selectinload(Purchase.payments))
        .filter(Purchase.course_id == course.id, Purchase.status == PurchaseStatus.ACTIVE)
        .order_by(Purchase.created_at.asc())
        .all()
    )

    rows = []
    total_paid = 0.0
    total_remaining = 0.0
    total_expected = 0.0
    for purchase in purchases:
        price = purchase.effective_price
        paid = purchase.total_paid or 0.0
        remaining = max(0.0, price - paid)
        total_paid += paid
        total_remaining += remaining
        total_expected += price
        rows.append({
            "purchase_id": purchase.id,
            "user": purchase.user,
            "course_price": price,
            "student_total_paid": paid,
            "remaining": remaining,
            "is_fully_paid": remaining == 0,
            "payments": purchase.payments,
        })

    return {
        "course": course,
        "purchases": rows,
        "summary": {
            "total_students": len(rows),
            "total_paid": total_paid,
            "total_remaining": total_remaining,
            "total_expected": total_expected,
        },
    }
