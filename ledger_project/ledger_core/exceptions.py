from django.core.exceptions import ValidationError


class LedgerError(ValidationError):
    """Base class for ledger rule violations.

    Subclasses Django's ValidationError so callers that already handle
    form/model validation keep working. ``kind`` doubles as the error code.
    """

    kind = "invalid"

    def __init__(self, message, code=None, params=None):
        super().__init__(message, code=code or self.kind, params=params)

    def __str__(self):
        return "; ".join(self.messages)


class ImbalancedVoucherError(LedgerError):
    """Raised when debits and credits of a voucher or template differ."""
    kind = "imbalanced_voucher"


class DuplicateVoucherNumberError(LedgerError):
    """Raised when a voucher number is reused within (business, type, year)."""
    kind = "duplicate_voucher_number"


class LockedPeriodError(LedgerError):
    """Raised when a locked financial year would be mutated."""
    kind = "locked_period"


class ConflictError(LedgerError):
    """Raised when a delete or edit is blocked by dependent rows."""
    kind = "conflict"


class CrossTenantError(LedgerError):
    """Raised when an entity belongs to a different business than the caller's."""
    kind = "cross_tenant"


class AlreadyReconciledError(LedgerError):
    """Raised when a journal entry is already linked to a reconciliation."""
    kind = "already_reconciled"


class NotFoundError(LedgerError):
    """Raised when a referenced id does not exist for the business."""
    kind = "not_found"
