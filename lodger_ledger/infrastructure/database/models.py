"""SQLAlchemy ORM models for tenancies and their ledgers"""

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class TenancyRow(Base):
    """Lodger agreement; money columns hold whole pence"""

    __tablename__ = "tenancy"

    id = Column(String(36), primary_key=True)
    landlord_id = Column(Text, nullable=False, index=True)
    lodger_id = Column(Text, nullable=False, index=True)

    house_number = Column(Text, nullable=False)
    street = Column(Text, nullable=False)
    city = Column(Text, nullable=False)
    county = Column(Text, nullable=False, default="")
    postcode = Column(Text, nullable=False)
    room_description = Column(Text, nullable=False)

    start_date = Column(Date, nullable=False)
    initial_term_months = Column(Integer, nullable=False)
    monthly_rent_pence = Column(BigInteger, nullable=False)
    deposit_pence = Column(BigInteger, nullable=False, default=0)
    deposit_applicable = Column(Boolean, nullable=False, default=True)
    payment_type = Column(Text, nullable=False)
    payment_frequency = Column(Text, nullable=True)
    payment_day_of_month = Column(Integer, nullable=True)
    shared_areas = Column(JSON, nullable=False, default=list)

    end_date = Column(Date, nullable=True)
    status = Column(Text, nullable=False, default="draft", index=True)
    termination_date = Column(Date, nullable=True)
    expiry_reminder_for = Column(Date, nullable=True)
    integrity_hold = Column(Boolean, nullable=False, default=False)

    signature_text = Column(Text, nullable=True)
    signed_at = Column(DateTime(timezone=True), nullable=True)
    photo_id_path = Column(Text, nullable=True)
    date_of_birth = Column(Date, nullable=True)
    id_expiry = Column(Date, nullable=True)
    agreement_path = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=func.now())

    payments = relationship(
        "PaymentRecordRow",
        back_populates="tenancy",
        cascade="all, delete-orphan",
        order_by="PaymentRecordRow.payment_number",
    )
    notices = relationship("NoticeRow", back_populates="tenancy", cascade="all, delete-orphan")
    deductions = relationship("DeductionRow", back_populates="tenancy", cascade="all, delete-orphan")
    funds_pool = relationship("FundsPoolRow", back_populates="tenancy", uselist=False, cascade="all, delete-orphan")


class PaymentRecordRow(Base):
    """One scheduled rent payment"""

    __tablename__ = "payment_record"
    __table_args__ = (UniqueConstraint("tenancy_id", "payment_number", name="uq_payment_record_number"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenancy_id = Column(String(36), ForeignKey("tenancy.id", ondelete="CASCADE"), nullable=False, index=True)
    payment_number = Column(Integer, nullable=False)
    due_date = Column(Date, nullable=False)
    rent_due_pence = Column(BigInteger, nullable=False)
    rent_paid_pence = Column(BigInteger, nullable=False, default=0)
    status = Column(Text, nullable=False, default="pending")
    notes = Column(Text, nullable=True)

    submitted_amount_pence = Column(BigInteger, nullable=True)
    submitted_method = Column(Text, nullable=True)
    submitted_reference = Column(Text, nullable=True)
    submitted_notes = Column(Text, nullable=True)
    submitted_at = Column(DateTime(timezone=True), nullable=True)

    confirmed_amount_pence = Column(BigInteger, nullable=True)
    confirmed_method = Column(Text, nullable=True)
    confirmed_reference = Column(Text, nullable=True)
    confirmed_notes = Column(Text, nullable=True)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)

    tenancy = relationship("TenancyRow", back_populates="payments")


class NoticeRow(Base):
    """Standard termination, breach or extension offer; unused kind columns stay NULL"""

    __tablename__ = "notice"

    id = Column(String(36), primary_key=True)
    tenancy_id = Column(String(36), ForeignKey("tenancy.id", ondelete="CASCADE"), nullable=False, index=True)
    kind = Column(Text, nullable=False)
    issue_date = Column(Date, nullable=False)
    issued_by = Column(Text, nullable=False)
    issued_to = Column(Text, nullable=False)
    notes = Column(Text, nullable=True)
    letter_path = Column(Text, nullable=True)

    reason = Column(Text, nullable=True)
    sub_reason = Column(Text, nullable=True)
    notice_period_days = Column(Integer, nullable=True)
    effective_date = Column(Date, nullable=True)
    immediate = Column(Boolean, nullable=False, default=False)
    source_breach_id = Column(String(36), nullable=True)
    settlement_pence = Column(BigInteger, nullable=True)

    breach_type = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    remedy_deadline = Column(Date, nullable=True)
    breach_status = Column(Text, nullable=True)
    escalated_notice_id = Column(String(36), nullable=True)
    resolved_on = Column(Date, nullable=True)

    extension_months = Column(Integer, nullable=True)
    current_rent_pence = Column(BigInteger, nullable=True)
    new_monthly_rent_pence = Column(BigInteger, nullable=True)
    new_end_date = Column(Date, nullable=True)
    response_deadline = Column(Date, nullable=True, index=True)
    extension_status = Column(Text, nullable=True, index=True)
    responded_on = Column(Date, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    tenancy = relationship("TenancyRow", back_populates="notices")


class DeductionRow(Base):
    """Landlord deduction against deposit and advance rent"""

    __tablename__ = "deduction"

    id = Column(String(36), primary_key=True)
    tenancy_id = Column(String(36), ForeignKey("tenancy.id", ondelete="CASCADE"), nullable=False, index=True)
    deduction_type = Column(Text, nullable=False)
    description = Column(Text, nullable=False)
    total_pence = Column(BigInteger, nullable=False)
    from_deposit_pence = Column(BigInteger, nullable=False)
    from_advance_pence = Column(BigInteger, nullable=False)
    notes = Column(Text, nullable=True)
    statement_generated = Column(Boolean, nullable=False, default=False)
    statement_path = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=True)

    tenancy = relationship("TenancyRow", back_populates="deductions")


class FundsPoolRow(Base):
    """Deposit and advance rent held for a signed tenancy"""

    __tablename__ = "funds_pool"

    tenancy_id = Column(String(36), ForeignKey("tenancy.id", ondelete="CASCADE"), primary_key=True)
    original_deposit_pence = Column(BigInteger, nullable=False)
    original_advance_pence = Column(BigInteger, nullable=False)
    available_deposit_pence = Column(BigInteger, nullable=False)
    available_advance_pence = Column(BigInteger, nullable=False)

    tenancy = relationship("TenancyRow", back_populates="funds_pool")
