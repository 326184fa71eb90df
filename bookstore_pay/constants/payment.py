from enum import Enum


class IntentKind(str, Enum):
    BOOK = "BOOK"
    RECHARGE = "RECHARGE"


class TransactionType(str, Enum):
    PAYMENT = "PAYMENT"
    RECHARGE = "RECHARGE"


class TransactionStatus(str, Enum):
    SUCCESS = "SUCCESS"


class RechargeStatus(str, Enum):
    SUCCESS = "SUCCESS"


class PaymentChannel(str, Enum):
    BANK_CARD = "BANK_CARD"
    WECHAT = "WECHAT"
    ALIPAY = "ALIPAY"


STRIPE_PROVIDER = "stripe"

# paid amount (cents) -> bonus credited on top (cents)
RECHARGE_BONUS_TIERS = {
    10000: 1000,
    20000: 3000,
    50000: 10000,
}

CHECKOUT_CURRENCY = "cny"
CHECKOUT_PAYMENT_METHODS = ["card", "wechat_pay", "alipay"]

SESSION_COMPLETED = "checkout.session.completed"
PAYMENT_SUCCEEDED = "payment_intent.succeeded"
PAYMENT_FAILED = "payment_intent.payment_failed"


class SettlementOutcome(str, Enum):
    SETTLED = "SETTLED"
    # paid at the provider but could not be applied; kept for follow-up
    REJECTED = "REJECTED"
