"""Pydantic schemas for API request/response validation"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from lodger_ledger.domain.lifecycle import TenancyLifecycle
from lodger_ledger.domain.models import Deduction, Notice, PaymentRecord
from lodger_ledger.domain.money import Money


def _amount(value: Optional[Money]) -> Optional[Decimal]:
    return None if value is None else value.amount


class AddressSchema(BaseModel):
    house_number: str = Field(..., min_length=1)
    street: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    county: str = ""
    postcode: str = Field(..., min_length=1)


class TenancyCreateRequest(BaseModel):
    """Request body for POST /v1/tenancies"""

    landlord_id: str = Field(..., min_length=1)
    lodger_id: str = Field(..., min_length=1)
    property_address: AddressSchema
    room_description: str = Field(..., min_length=1)
    start_date: date
    initial_term_months: int = Field(..., ge=1)
    monthly_rent: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    deposit_amount: Decimal = Field(Decimal("0.00"), ge=0, max_digits=12, decimal_places=2)
    deposit_applicable: bool = True
    payment_type: Literal["cycle", "calendar"] = "cycle"
    payment_frequency: Optional[str] = None
    payment_day_of_month: Optional[int] = Field(None, ge=1, le=31)
    shared_areas: List[str] = []


class SignRequest(BaseModel):
    signature_text: str = Field(..., min_length=1)
    photo_id_path: Optional[str] = None
    date_of_birth: Optional[date] = None
    id_expiry: Optional[date] = None


class TenancyResponse(BaseModel):
    id: str
    landlord_id: str
    lodger_id: str
    property_address: AddressSchema
    room_description: str
    status: str
    start_date: date
    end_date: Optional[date] = None
    termination_date: Optional[date] = None
    initial_term_months: int
    monthly_rent: Decimal
    deposit_amount: Decimal
    deposit_applicable: bool
    payment_type: str
    payment_frequency: Optional[str] = None
    payment_day_of_month: Optional[int] = None
    shared_areas: List[str]
    signed_at: Optional[datetime] = None
    agreement_path: Optional[str] = None
    integrity_hold: bool = False

    @classmethod
    def from_domain(cls, lifecycle: TenancyLifecycle, today: date) -> "TenancyResponse":
        t = lifecycle.tenancy
        a = t.property_address
        return cls(
            id=t.id,
            landlord_id=t.landlord_id,
            lodger_id=t.lodger_id,
            property_address=AddressSchema(
                house_number=a.house_number, street=a.street, city=a.city, county=a.county, postcode=a.postcode
            ),
            room_description=t.room_description,
            status=lifecycle.derive_status(today).value,
            start_date=t.start_date,
            end_date=t.end_date,
            termination_date=t.termination_date,
            initial_term_months=t.initial_term_months,
            monthly_rent=t.monthly_rent.amount,
            deposit_amount=t.deposit_amount.amount,
            deposit_applicable=t.deposit_applicable,
            payment_type=t.payment_type.value,
            payment_frequency=t.payment_frequency,
            payment_day_of_month=t.payment_day_of_month,
            shared_areas=sorted(t.shared_areas),
            signed_at=t.signature.signed_at if t.signature else None,
            agreement_path=t.agreement_path,
            integrity_hold=t.integrity_hold,
        )


class TenancyListResponse(BaseModel):
    user_id: str
    tenancies: List[TenancyResponse]


class PaymentSchema(BaseModel):
    """Single payment in a tenancy's schedule"""

    payment_number: int
    due_date: date
    rent_due: Decimal
    rent_paid: Decimal
    balance: Decimal
    status: str
    notes: Optional[str] = None
    submitted_amount: Optional[Decimal] = None
    submitted_method: Optional[str] = None
    submitted_reference: Optional[str] = None
    submitted_at: Optional[datetime] = None
    confirmed_amount: Optional[Decimal] = None
    confirmed_method: Optional[str] = None
    confirmed_reference: Optional[str] = None
    confirmed_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, record: PaymentRecord, today: date) -> "PaymentSchema":
        return cls(
            payment_number=record.payment_number,
            due_date=record.due_date,
            rent_due=record.rent_due.amount,
            rent_paid=record.rent_paid.amount,
            balance=record.balance.amount,
            status=record.effective_status(today).value,
            notes=record.notes,
            submitted_amount=_amount(record.submitted_amount),
            submitted_method=record.submitted_method,
            submitted_reference=record.submitted_reference,
            submitted_at=record.submitted_at,
            confirmed_amount=_amount(record.confirmed_amount),
            confirmed_method=record.confirmed_method,
            confirmed_reference=record.confirmed_reference,
            confirmed_at=record.confirmed_at,
        )


class PaymentListResponse(BaseModel):
    tenancy_id: str
    payments: List[PaymentSchema]


class PaymentActionRequest(BaseModel):
    """Body for submitting (lodger) or confirming (landlord) a payment"""

    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    method: Optional[str] = None
    reference: Optional[str] = None
    notes: Optional[str] = None


class PaymentSummaryResponse(BaseModel):
    tenancy_id: str
    total_due: Decimal
    total_paid: Decimal
    outstanding: Decimal
    payment_count: int
    confirmed_count: int
    submitted_count: int
    overdue_count: int


class RentARoomResponse(BaseModel):
    tenancy_id: str
    tax_year: str
    total_income: Decimal
    allowance: Decimal
    taxable_income: Decimal
    remaining_allowance: Decimal


class DeductionRequest(BaseModel):
    deduction_type: Literal["damage", "unpaid_rent", "cleaning", "other"]
    description: str = Field(..., min_length=1)
    total_amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    from_deposit: Decimal = Field(Decimal("0.00"), ge=0, max_digits=12, decimal_places=2)
    from_advance: Decimal = Field(Decimal("0.00"), ge=0, max_digits=12, decimal_places=2)
    notes: Optional[str] = None


class DeductionSchema(BaseModel):
    id: str
    deduction_type: str
    description: str
    total_amount: Decimal
    from_deposit: Decimal
    from_advance: Decimal
    notes: Optional[str] = None
    statement_generated: bool
    statement_path: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, d: Deduction) -> "DeductionSchema":
        return cls(
            id=d.id,
            deduction_type=d.deduction_type,
            description=d.description,
            total_amount=d.total_amount.amount,
            from_deposit=d.from_deposit.amount,
            from_advance=d.from_advance.amount,
            notes=d.notes,
            statement_generated=d.statement_generated,
            statement_path=d.statement_path,
            created_at=d.created_at,
        )


class FundsResponse(BaseModel):
    tenancy_id: str
    original_deposit: Decimal
    available_deposit: Decimal
    original_advance: Decimal
    available_advance: Decimal
    total_available: Decimal
    deductions: List[DeductionSchema]


class TerminationNoticeRequest(BaseModel):
    issued_by: str = Field(..., min_length=1)
    reason: Literal["breach", "end_term", "landlord_needs", "other"]
    sub_reason: Optional[str] = None
    notice_period_days: int
    notes: Optional[str] = None


class BreachNoticeRequest(BaseModel):
    issued_by: str = Field(..., min_length=1)
    breach_type: str
    description: str = Field(..., min_length=1)
    notes: Optional[str] = None


class RemedyRequest(BaseModel):
    notes: Optional[str] = None


class EscalateRequest(BaseModel):
    issued_by: str = Field(..., min_length=1)


class ExtensionOfferRequest(BaseModel):
    issued_by: str = Field(..., min_length=1)
    extension_months: int = Field(..., ge=1)
    new_monthly_rent: Optional[Decimal] = Field(None, gt=0, max_digits=12, decimal_places=2)
    notes: Optional[str] = None


class ExtensionResponseRequest(BaseModel):
    accept: bool


class NoticeSchema(BaseModel):
    """Notice of any kind; fields of other kinds are null"""

    id: str
    tenancy_id: str
    kind: str
    issue_date: date
    issued_by: str
    issued_to: str
    notes: Optional[str] = None
    letter_path: Optional[str] = None

    reason: Optional[str] = None
    sub_reason: Optional[str] = None
    notice_period_days: Optional[int] = None
    effective_date: Optional[date] = None
    immediate: bool = False
    source_breach_id: Optional[str] = None
    settlement_amount: Optional[Decimal] = None

    breach_type: Optional[str] = None
    description: Optional[str] = None
    remedy_deadline: Optional[date] = None
    breach_status: Optional[str] = None
    escalated_notice_id: Optional[str] = None

    extension_months: Optional[int] = None
    current_rent: Optional[Decimal] = None
    new_monthly_rent: Optional[Decimal] = None
    new_end_date: Optional[date] = None
    response_deadline: Optional[date] = None
    extension_status: Optional[str] = None

    @classmethod
    def from_domain(cls, n: Notice) -> "NoticeSchema":
        return cls(
            id=n.id,
            tenancy_id=n.tenancy_id,
            kind=n.kind.value,
            issue_date=n.issue_date,
            issued_by=n.issued_by,
            issued_to=n.issued_to,
            notes=n.notes,
            letter_path=n.letter_path,
            reason=n.reason,
            sub_reason=n.sub_reason,
            notice_period_days=n.notice_period_days,
            effective_date=n.effective_date,
            immediate=n.immediate,
            source_breach_id=n.source_breach_id,
            settlement_amount=_amount(n.settlement_amount),
            breach_type=n.breach_type,
            description=n.description,
            remedy_deadline=n.remedy_deadline,
            breach_status=n.breach_status.value if n.breach_status else None,
            escalated_notice_id=n.escalated_notice_id,
            extension_months=n.extension_months,
            current_rent=_amount(n.current_rent),
            new_monthly_rent=_amount(n.new_monthly_rent),
            new_end_date=n.new_end_date,
            response_deadline=n.response_deadline,
            extension_status=n.extension_status.value if n.extension_status else None,
        )


class NoticeListResponse(BaseModel):
    tenancy_id: str
    notices: List[NoticeSchema]


class SweepResponse(BaseModel):
    sweep: str
    checked: int
    changed: List[str]
    failed: List[str]
