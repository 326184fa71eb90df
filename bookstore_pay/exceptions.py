"""Settlement error taxonomy.

Every error carries the HTTP status the API answers with. Only
``ConcurrencyConflict`` is transient; everything else is terminal and
retrying the same request cannot change the outcome.
"""


class SettlementError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class SignatureError(SettlementError):
    """Webhook signature did not verify against the shared secret."""

    status_code = 400


class ValidationError(SettlementError):
    """Intent metadata or request input is missing or malformed."""

    status_code = 400


class NotFoundError(SettlementError):
    status_code = 404


class InsufficientFunds(SettlementError):
    status_code = 400


class OutOfStock(SettlementError):
    status_code = 409


class ConcurrencyConflict(SettlementError):
    """Lock timeout, deadlock or serialization failure; safe to retry."""

    status_code = 409


class CheckoutFailed(SettlementError):
    status_code = 502
