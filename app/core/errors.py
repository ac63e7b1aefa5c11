# app/core/errors.py
"""
Domain errors raised by the ledger services.

Routes never catch these; the exception handler registered in app/main.py
turns them into JSON responses using ``status_code`` and ``code``.
"""
from typing import Optional


class LedgerError(Exception):
    status_code = 400
    code = "ledger_error"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code}


# ── validation ──────────────────────────────────────────────────────────────
class ValidationError(LedgerError):
    """Malformed input, reported against a single field."""
    status_code = 422
    code = "validation_error"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field

    def to_dict(self) -> dict:
        payload = super().to_dict()
        if self.field:
            payload["field"] = self.field
        return payload


class InvalidAmount(ValidationError):
    code = "invalid_amount"

    def __init__(self, message: str = "Amount must be greater than zero", field: str = "amount"):
        super().__init__(message, field)


# ── authorization ───────────────────────────────────────────────────────────
class NotAMember(LedgerError):
    status_code = 403
    code = "not_a_member"


class CrossScopeAccountReference(LedgerError):
    status_code = 403
    code = "cross_scope_account_reference"


class PermissionDenied(LedgerError):
    status_code = 403
    code = "permission_denied"


class AccessDenied(LedgerError):
    """Raised by the access gate; ``reason`` tells an expired trial apart."""
    status_code = 403
    code = "access_denied"

    TRIAL_EXPIRED = "trial_expired"
    SUBSCRIPTION_INACTIVE = "subscription_inactive"

    def __init__(self, reason: str, message: Optional[str] = None):
        super().__init__(message or f"Access denied: {reason}")
        self.reason = reason

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["reason"] = self.reason
        return payload


# ── lookups ─────────────────────────────────────────────────────────────────
class NotFound(LedgerError):
    status_code = 404
    code = "not_found"


class AccountNotFound(NotFound):
    code = "account_not_found"


class GoalNotFound(NotFound):
    code = "goal_not_found"


class TransactionNotFound(NotFound):
    code = "transaction_not_found"


class VaultNotFound(NotFound):
    code = "vault_not_found"


class InvitationNotFound(NotFound):
    code = "invitation_not_found"


class ReportNotFound(NotFound):
    code = "report_not_found"


# ── persistence ─────────────────────────────────────────────────────────────
class TransientLedgerError(LedgerError):
    """A balance mutation could not be committed after retrying."""
    status_code = 503
    code = "transient_error"
