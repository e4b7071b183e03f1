from sqlalchemy import func, or_
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
import logging
from typing import List, Optional, Dict, Any, Tuple, Union

from lms_backend.core.security import hash_password
from lms_backend.models.enums import UserRole, PurchaseStatus, BalanceTransactionType
from lms_backend.models.user_model import User, BalanceTransaction
from lms_backend.models.payment_model import Purchase
from lms_backend.schemas.user_schema import (
    UserRegisterRequest, AccountCreateRequest, UserProfileUpdate, StaffUserUpdate, AdminUserUpdate
)
from lms_backend.services import email_service

logger = logging.getLogger(__name__)


# Helper function to apply filters to a query
def _apply_user_filters(query, filters: Optional[Dict[str, Any]] = None):
    if not filters:
        return query

    if filters.get("role"):
        query = query.filter(User.role == filters["role"])
    if filters.get("search"):
        term = f"%{filters['search']}%"
        query = query.filter(or_(
            User.full_name.ilike(term),
            User.phone_number.ilike(term),
            User.email.ilike(term),
        ))
    return query

def get_user_by_id(db: Session, user_id: str) -> Optional[User]:
    """Fetches a user by their internal database ID."""
    logger.debug(f"Fetching user by ID: {user_id}")
    return db.query(User).filter(User.id == user_id).first()

def get_user_by_email(db: Session, email: str) -> Optional[User]:
    logger.debug(f"Fetching user by email: {email}")
    return db.query(User).filter(User.email == email).first()

def get_user_by_phone(db: Session, phone_number: str) -> Optional[User]:
    logger.debug(f"Fetching user by phone number: {phone_number}")
    return db.query(User).filter(User.phone_number == phone_number).first()

def get_user_by_firebase_uid(db: Session, firebase_uid: str) -> Optional[User]:
    logger.debug(f"Fetching user by Firebase UID: {firebase_uid}")
    return db.query(User).filter(User.firebase_uid == firebase_uid).first()

def _ensure_unique_contact(db: Session, phone_number: Optional[str], email: Optional[str], exclude_user_id: Optional[str] = None):
    if phone_number:
        existing = get_user_by_phone(db, phone_number)
        if existing and existing.id != exclude_user_id:
            raise ValueError("Phone number already exists")
    if email:
        existing = get_user_by_email(db, email)
        if existing and existing.id != exclude_user_id:
            raise ValueError("Email already exists")

def create_user(
    db: Session,
    user_in: Union[UserRegisterRequest, AccountCreateRequest],
    role: UserRole = UserRole.USER,
) -> User:
    """
    Creates a new account with a bcrypt password hash.
    Raises ValueError for mismatched passwords or a phone/email already in use.
    """
    logger.info(f"Attempting to create {role.value} account for phone: {user_in.phone_number}")

    if user_in.password != user_in.confirm_password:
        raise ValueError("Passwords do not match")
    phone_number = user_in.phone_number.strip()
    _ensure_unique_contact(db, phone_number, user_in.email)

    db_user = User(
        full_name=user_in.full_name.strip(),
        phone_number=phone_number,
        parent_phone_number=user_in.parent_phone_number,
        email=user_in.email,
        college=user_in.college,
        faculty=user_in.faculty,
        level=user_in.level,
        hashed_password=hash_password(user_in.password),
        role=role,
    )

    try:
        db.add(db_user)
        db.commit()
        db.refresh(db_user)
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Database integrity error during user creation for {user_in.phone_number}: {e}", exc_info=True)
        raise
    logger.info(f"User created successfully: {db_user.phone_number} (ID: {db_user.id}, role: {db_user.role.value})")

    try:
        email_service.send_templated_email(
            to_email=db_user.email,
            subject="Welcome to the platform!",
            html_template_name="welcome.html",
            context={"user_name": db_user.full_name, "phone_number": db_user.phone_number},
        )
    except Exception as e_mail_exc:
        # E-mail failures never block account creation
        logger.error(f"Failed to send welcome email to {db_user.email}: {e_mail_exc}", exc_info=True)

    return db_user

def link_firebase_uid(db: Session, user: User, firebase_uid: str) -> User:
    if user.firebase_uid != firebase_uid:
        logger.info(f"Linking Firebase UID {firebase_uid} to user {user.id}")
        user.firebase_uid = firebase_uid
        db.commit()
        db.refresh(user)
    return user

def get_users_with_active_course_counts(
    db: Session,
    filters: Optional[Dict[str, Any]] = None
) -> List[Tuple[User, int]]:
    """Users paired with the number of ACTIVE purchases they hold."""
    active_count = func.count(Purchase.id)
    query = (
        db.query(User, active_count)
        .outerjoin(Purchase, (Purchase.user_id == User.id) & (Purchase.status == PurchaseStatus.ACTIVE))
        .group_by(User.id)
    )
    query = _apply_user_filters(query, filters)
    return query.order_by(User.created_at.desc()).all()

def update_user(
    db: Session,
    db_user: User,
    data_in: Union[UserProfileUpdate, StaffUserUpdate, AdminUserUpdate]
) -> User:
    """
    Applies a partial update. Phone and email must stay unique (ValueError otherwise).
    Which fields are allowed is decided by the schema the caller passes in.
    """
    update_data = data_in.model_dump(exclude_unset=True)
    if update_data.get("phone_number"):
        update_data["phone_number"] = update_data["phone_number"].strip()
    logger.info(f"Updating user ID {db_user.id} with fields: {list(update_data.keys())}")

    _ensure_unique_contact(
        db,
        update_data.get("phone_number") if update_data.get("phone_number") != db_user.phone_number else None,
        update_data.get("email") if update_data.get("email") != db_user.email else None,
        exclude_user_id=db_user.id,
    )

    for field, value in update_data.items():
        if field in ("phone_number", "email", "full_name", "role") and value is None:
            continue # Required columns are never cleared by a partial update
        setattr(db_user, field, value)

    try:
        db.commit()
        db.refresh(db_user)
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Database integrity error during update for user {db_user.id}: {e}", exc_info=True)
        raise
    logger.info(f"User ID {db_user.id} updated successfully.")
    return db_user

def delete_user(db: Session, db_user: User) -> None:
    logger.info(f"Deleting user ID {db_user.id} ({db_user.phone_number})")
    db.delete(db_user)
    db.commit()

def set_user_balance(db: Session, db_user: User, new_balance: float, updated_by_role: str = "teacher") -> User:
    """
    Overwrites a user's balance and records the change as a DEPOSIT transaction.
    """
    if new_balance is None or new_balance < 0:
        raise ValueError("Balance must be a non-negative number")

    transaction = BalanceTransaction(
        user_id=db_user.id,
        amount=new_balance - (db_user.balance or 0),
        type=BalanceTransactionType.DEPOSIT,
        description=f"Balance updated by {updated_by_role} to {new_balance} EGP",
    )
    db_user.balance = new_balance
    db.add(transaction)
    db.commit()
    db.refresh(db_user)
    logger.info(f"Balance of user {db_user.id} set to {new_balance} by {updated_by_role}.")
    return db_user

def set_user_password(db: Session, db_user: User, new_password: str) -> User:
    db_user.hashed_password = hash_password(new_password)
    db.commit()
    db.refresh(db_user)
    logger.info(f"Password updated for user {db_user.id}.")
    return db_user
