from sqlalchemy import (
    Column, Integer, String, Text, Float, ForeignKey, TIMESTAMP,
    Enum as SAEnum, UniqueConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from lms_backend.core.database import Base, generate_uuid, utcnow
from lms_backend.models.enums import PurchaseStatus

class Purchase(Base):
    """A student's entitlement to a course. Installments are recorded as Payment rows."""
    __tablename__ = "purchases"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(String(36), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(SAEnum(PurchaseStatus, name="purchase_status_enum", values_callable=lambda obj: [e.value for e in obj]),
                    nullable=False, default=PurchaseStatus.ACTIVE, index=True)

    # Price agreed for this student; falls back to Course.price when null
    course_price = Column(Float, nullable=True)
    total_paid = Column(Float, nullable=False, default=0)

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(TIMESTAMP(timezone=True), default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="purchases")
    course = relationship("Course", back_populates="purchases")
    payments = relationship("Payment", back_populates="purchase", cascade="all, delete-orphan", order_by="Payment.payment_number")

    __table_args__ = (UniqueConstraint('user_id', 'course_id', name='uq_purchase_user_course'),)

    @property
    def effective_price(self) -> float:
        if self.course_price is not None:
            return self.course_price
        if self.course is not None and self.course.price is not None:
            return self.course.price
        return 0.0

    def __repr__(self):
        return f"<Purchase(id={self.id}, user_id={self.user_id}, course_id={self.course_id}, status='{self.status}')>"


class Payment(Base):
    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    purchase_id = Column(String(36), ForeignKey("purchases.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    payment_number = Column(Integer, nullable=False)
    notes = Column(Text, nullable=True)
    recorded_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(TIMESTAMP(timezone=True), default=func.now(), onupdate=func.now())

    purchase = relationship("Purchase", back_populates="payments")
    recorder = relationship("User", foreign_keys=[recorded_by])

    __table_args__ = (UniqueConstraint('purchase_id', 'payment_number', name='uq_payment_number'),)

    def __repr__(self):
        return f"<Payment(id={self.id}, purchase_id={self.purchase_id}, number={self.payment_number}, amount={self.amount})>"
