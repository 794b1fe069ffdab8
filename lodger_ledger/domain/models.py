"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import FrozenSet, Optional

from lodger_ledger.domain.money import Money


class TenancyStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    EXTENDED = "extended"
    NOTICE_GIVEN = "notice_given"
    TERMINATED = "terminated"
    CANCELLED = "cancelled"


# Statuses that count against the landlord's open-tenancy limit
OPEN_STATUSES = frozenset({TenancyStatus.DRAFT, TenancyStatus.ACTIVE, TenancyStatus.EXTENDED})
# Signed and running; notices and extensions may be issued
LIVE_STATUSES = frozenset({TenancyStatus.ACTIVE, TenancyStatus.EXTENDED})
TERMINAL_STATUSES = frozenset({TenancyStatus.TERMINATED, TenancyStatus.CANCELLED})


class PaymentType(str, Enum):
    CYCLE = "cycle"
    CALENDAR = "calendar"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    OVERDUE = "overdue"  # derived at read time, never stored


class NoticeKind(str, Enum):
    STANDARD_TERMINATION = "standard_termination"
    BREACH = "breach"
    EXTENSION_OFFER = "extension_offer"


class BreachStatus(str, Enum):
    ACTIVE = "active"
    REMEDIED = "remedied"
    ESCALATED = "escalated"


class ExtensionStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    AUTO_ACCEPTED = "auto_accepted"


@dataclass(frozen=True)
class PropertyAddress:
    house_number: str
    street: str
    city: str
    county: str
    postcode: str

    def one_line(self) -> str:
        parts = [f"{self.house_number} {self.street}".strip(), self.city, self.county, self.postcode]
        return ", ".join(p for p in parts if p)


@dataclass(frozen=True)
class Signature:
    """Lodger's acceptance of the agreement; photo ID is an opaque storage path"""

    signature_text: str
    signed_at: datetime
    photo_id_path: Optional[str] = None
    date_of_birth: Optional[date] = None
    id_expiry: Optional[date] = None


@dataclass
class Tenancy:
    """Lodger agreement between one landlord and one lodger for a room"""

    id: str
    landlord_id: str
    lodger_id: str
    property_address: PropertyAddress
    room_description: str
    start_date: date
    initial_term_months: int
    monthly_rent: Money
    deposit_amount: Money
    deposit_applicable: bool
    payment_type: PaymentType
    payment_frequency: Optional[str] = None  # CYCLE only
    payment_day_of_month: Optional[int] = None  # CALENDAR only
    shared_areas: FrozenSet[str] = frozenset()
    end_date: Optional[date] = None
    status: TenancyStatus = TenancyStatus.DRAFT
    signature: Optional[Signature] = None
    agreement_path: Optional[str] = None
    termination_date: Optional[date] = None
    expiry_reminder_for: Optional[date] = None
    integrity_hold: bool = False
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class ScheduledPayment:
    """One entry of a generated rent schedule"""

    payment_number: int
    due_date: date
    rent_due: Money


@dataclass
class PaymentRecord:
    """Rent payment due for one period of a tenancy"""

    payment_number: int
    due_date: date
    rent_due: Money
    rent_paid: Money = field(default_factory=Money.zero)
    status: PaymentStatus = PaymentStatus.PENDING
    notes: Optional[str] = None

    # Lodger submission, awaiting landlord confirmation
    submitted_amount: Optional[Money] = None
    submitted_method: Optional[str] = None
    submitted_reference: Optional[str] = None
    submitted_notes: Optional[str] = None
    submitted_at: Optional[datetime] = None

    # Landlord confirmation
    confirmed_amount: Optional[Money] = None
    confirmed_method: Optional[str] = None
    confirmed_reference: Optional[str] = None
    confirmed_notes: Optional[str] = None
    confirmed_at: Optional[datetime] = None

    @property
    def balance(self) -> Money:
        """Positive = credit, negative = owed"""
        return self.rent_paid - self.rent_due

    def effective_status(self, today: date) -> PaymentStatus:
        if self.status == PaymentStatus.PENDING and self.due_date < today:
            return PaymentStatus.OVERDUE
        return self.status


@dataclass
class FundsPool:
    """Deposit and advance rent held against landlord deductions"""

    original_deposit: Money
    original_advance: Money
    available_deposit: Money
    available_advance: Money

    @classmethod
    def opening(cls, deposit: Money, advance: Money) -> "FundsPool":
        return cls(
            original_deposit=deposit,
            original_advance=advance,
            available_deposit=deposit,
            available_advance=advance,
        )


@dataclass
class Deduction:
    """Landlord deduction split across deposit and advance rent; immutable amounts"""

    id: str
    tenancy_id: str
    deduction_type: str  # damage | unpaid_rent | cleaning | other
    description: str
    total_amount: Money
    from_deposit: Money
    from_advance: Money
    notes: Optional[str] = None
    statement_generated: bool = False
    statement_path: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class FinalSettlement:
    """Money owed either way when a tenancy ends between due dates"""

    last_covered_date: date
    termination_date: date
    days: int  # past last_covered_date; negative when ending inside a paid period
    pro_rata: Money
    advance_credit: Money
    amount: Money  # positive = lodger owes, negative = refund to lodger

    @property
    def is_refund(self) -> bool:
        return self.amount.is_negative()


@dataclass
class Notice:
    """
    Notice attached to a tenancy. The three kinds share one record shape;
    only the fields of the notice's own kind are populated.
    """

    id: str
    tenancy_id: str
    kind: NoticeKind
    issue_date: date
    issued_by: str
    issued_to: str
    notes: Optional[str] = None
    letter_path: Optional[str] = None

    # STANDARD_TERMINATION
    reason: Optional[str] = None
    sub_reason: Optional[str] = None
    notice_period_days: Optional[int] = None
    effective_date: Optional[date] = None
    immediate: bool = False
    source_breach_id: Optional[str] = None
    settlement_amount: Optional[Money] = None

    # BREACH
    breach_type: Optional[str] = None
    description: Optional[str] = None
    remedy_deadline: Optional[date] = None
    breach_status: Optional[BreachStatus] = None
    escalated_notice_id: Optional[str] = None
    resolved_on: Optional[date] = None

    # EXTENSION_OFFER
    extension_months: Optional[int] = None
    current_rent: Optional[Money] = None
    new_monthly_rent: Optional[Money] = None
    new_end_date: Optional[date] = None
    response_deadline: Optional[date] = None
    extension_status: Optional[ExtensionStatus] = None
    responded_on: Optional[date] = None
