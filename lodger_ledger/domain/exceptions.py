"""Domain-specific exceptions"""

from decimal import Decimal


class DomainException(Exception):
    """Base exception for domain layer"""

    code = "domain_error"

    def to_dict(self) -> dict:
        return {"code": self.code, "detail": str(self)}


class ValidationError(DomainException):
    """Input is malformed (negative rent, unknown frequency, bad notice period)"""

    code = "validation_error"


class AllocationMismatchError(ValidationError):
    """Deduction split does not sum to the deduction total"""

    code = "allocation_mismatch"


class InvalidStateError(DomainException):
    """Operation is not legal in the current lifecycle state"""

    code = "invalid_state"


class AlreadyConfirmedError(InvalidStateError):
    """Payment was already confirmed by the landlord"""

    code = "already_confirmed"


class InsufficientFundsError(DomainException):
    """A fund pool cannot cover the requested deduction"""

    code = "insufficient_funds"

    def __init__(self, pool: str, available: Decimal, requested: Decimal):
        self.pool = pool
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient {pool} funds. Available: £{available}, Requested: £{requested}"
        )

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "detail": str(self),
            "pool": self.pool,
            "available": str(self.available),
            "requested": str(self.requested),
        }


class RentCapExceededError(DomainException):
    """Extension offer rent is above the pro-rated annual cap"""

    code = "rent_cap_exceeded"

    def __init__(self, proposed_rent: Decimal, maximum_rent: Decimal):
        self.proposed_rent = proposed_rent
        self.maximum_rent = maximum_rent
        super().__init__(
            f"Proposed rent £{proposed_rent} exceeds the maximum allowed £{maximum_rent}"
        )

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "detail": str(self),
            "proposed_rent": str(self.proposed_rent),
            "maximum_rent": str(self.maximum_rent),
        }


class CapacityExceededError(DomainException):
    """Landlord already has the maximum number of open tenancies"""

    code = "capacity_exceeded"


class NotFoundError(DomainException):
    """Tenancy, payment, notice or deduction does not exist"""

    code = "not_found"


class IntegrityViolation(DomainException):
    """
    Ledger inconsistency detected (e.g. a negative fund pool).

    Never raised by user error. The tenancy is put on hold and refuses
    further mutation until an operator clears it.
    """

    code = "integrity_violation"

    def __init__(self, tenancy_id: str, detail: str):
        self.tenancy_id = tenancy_id
        self.detail = detail
        super().__init__(f"Integrity violation on tenancy {tenancy_id}: {detail}")


class DocumentServiceError(DomainException):
    """Document generator unreachable or returned an unusable response"""

    code = "document_service_error"
