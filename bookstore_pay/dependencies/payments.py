from fastapi import Depends

from bookstore_pay.services.balance_service import BalancePurchaseEngine
from bookstore_pay.services.checkout_service import CheckoutSessionFactory
from bookstore_pay.services.settlement_service import SettlementEngine
from bookstore_pay.services.webhook_service import WebhookIngester


def get_settlement_engine() -> SettlementEngine:
    return SettlementEngine()


def get_checkout_factory() -> CheckoutSessionFactory:
    return CheckoutSessionFactory()


def get_balance_engine(engine: SettlementEngine = Depends(get_settlement_engine)) -> BalancePurchaseEngine:
    return BalancePurchaseEngine(engine)


def get_webhook_ingester(engine: SettlementEngine = Depends(get_settlement_engine)) -> WebhookIngester:
    return WebhookIngester(engine)
