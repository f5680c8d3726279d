"""Named settlement outcomes.

Every balance-affecting operation either commits its full write set or raises
one of these. The global error handler renders them as JSON with the HTTP
status carried on the class.
"""

from __future__ import annotations

from datetime import timedelta


class SettlementError(Exception):
    """Base class for all settlement failures."""

    code = "settlement_error"
    status_code = 400
    retryable = False
    default_message = "The operation could not be completed."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, object]:
        return {"detail": self.message, "code": self.code, "retryable": self.retryable}


class _WaitingError(SettlementError):
    """A failure that knows how long until the action becomes available."""

    def __init__(self, remaining: timedelta, message: str | None = None) -> None:
        self.remaining = remaining
        super().__init__(message)

    def to_dict(self) -> dict[str, object]:
        body = super().to_dict()
        body["remaining_seconds"] = int(self.remaining.total_seconds())
        return body


# --- Cooldowns ---


class CooldownActive(_WaitingError):
    code = "cooldown_active"
    status_code = 409
    default_message = "You have already checked in. Come back when the cooldown ends."


class SessionNotReady(_WaitingError):
    code = "session_not_ready"
    status_code = 409
    default_message = "Your mining session is still running."


class NoActiveSession(SessionNotReady):
    code = "no_active_session"
    default_message = "There is no mining session to claim."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(timedelta(0), message)


class SessionActive(SettlementError):
    code = "session_active"
    status_code = 409
    default_message = "A mining session is already in progress."


class AdBonusUnavailable(SettlementError):
    code = "ad_bonus_unavailable"
    status_code = 409
    default_message = "No ad bonus is available right now."


# --- Idempotency guards ---


class AlreadyCompleted(SettlementError):
    code = "already_completed"
    status_code = 409
    default_message = "You have already completed this task."


class AlreadyRedeemed(SettlementError):
    code = "already_redeemed"
    status_code = 409
    default_message = "You have already redeemed this code."


class AlreadyGranted(SettlementError):
    code = "already_granted"
    status_code = 409
    default_message = "This grant has already been applied."


# --- Input / precondition failures ---


class IncorrectVerificationCode(SettlementError):
    code = "incorrect_verification_code"
    status_code = 400
    retryable = True
    default_message = "The verification code is incorrect. Please try again."


class InsufficientBalance(SettlementError):
    code = "insufficient_balance"
    status_code = 400
    default_message = "You do not have enough verified funds to complete this transaction."


class AmountTooLow(SettlementError):
    code = "amount_too_low"
    status_code = 400
    default_message = "The amount is below the minimum allowed."


class InvalidAmount(SettlementError):
    code = "invalid_amount"
    status_code = 400
    default_message = "Please provide a valid amount."


class InvalidInput(SettlementError):
    code = "invalid_input"
    status_code = 400
    default_message = "Please fill out all required fields."


class SelfTransfer(SettlementError):
    code = "self_transfer"
    status_code = 400
    default_message = "You cannot send Fair to yourself."


class KycRequired(SettlementError):
    code = "kyc_required"
    status_code = 403
    default_message = "Please complete KYC verification to send tokens."


class InvalidRoleChange(SettlementError):
    code = "invalid_role_change"
    status_code = 409
    default_message = "This role change is not allowed."


# --- Lookups ---


class RecipientNotFound(SettlementError):
    code = "recipient_not_found"
    status_code = 404
    default_message = "Recipient not found."


class AccountNotFound(SettlementError):
    code = "account_not_found"
    status_code = 404
    default_message = "Account not found."


class CodeNotFound(SettlementError):
    code = "code_not_found"
    status_code = 404
    default_message = "Invalid or expired code."


class CodeExpired(SettlementError):
    code = "code_expired"
    status_code = 410
    default_message = "This code has expired."


class TaskNotFound(SettlementError):
    code = "task_not_found"
    status_code = 404
    default_message = "Task not found."


class KycRequestNotFound(SettlementError):
    code = "kyc_request_not_found"
    status_code = 404
    default_message = "No KYC request found for this user."


class KycNotPending(SettlementError):
    code = "kyc_not_pending"
    status_code = 409
    default_message = "This KYC request has already been reviewed."


class KycAlreadyApproved(SettlementError):
    code = "kyc_already_approved"
    status_code = 409
    default_message = "Your identity is already verified."


# --- Infrastructure ---


class StoreUnavailable(SettlementError):
    code = "store_unavailable"
    status_code = 503
    default_message = "The service is temporarily unavailable. Please try again."
