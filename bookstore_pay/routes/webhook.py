import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse
from sqlmodel import Session
from starlette.concurrency import run_in_threadpool

from bookstore_pay.database import get_session
from bookstore_pay.dependencies.payments import get_webhook_ingester
from bookstore_pay.exceptions import SignatureError, ValidationError
from bookstore_pay.services.webhook_service import WebhookIngester

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(default=None, alias="Stripe-Signature"),
    session: Session = Depends(get_session),
    ingester: WebhookIngester = Depends(get_webhook_ingester),
):
    payload = await request.body()

    try:
        await run_in_threadpool(ingester.handle, session, payload, stripe_signature)
    except (SignatureError, ValidationError):
        raise
    except Exception:
        # provider will redeliver; settlement rolled back and is idempotent
        logger.exception("Webhook handler failed")
        return JSONResponse(status_code=500, content={"error": "Webhook handler failed"})

    return {"received": True}
