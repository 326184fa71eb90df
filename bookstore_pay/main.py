import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bookstore_pay.config import settings
from bookstore_pay.database import create_db_and_tables
from bookstore_pay.exceptions import SettlementError
from bookstore_pay.routes import health, payments, webhook

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Run DB creation ONLY in local
    if settings.env == "local":
        create_db_and_tables()
    yield

app = FastAPI(title="Bookstore Payments API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        settings.base_url,
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SettlementError)
async def settlement_error_handler(request: Request, exc: SettlementError):
    logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {type(exc).__name__}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


app.include_router(payments.router, prefix="/payments", tags=["Payments"])
app.include_router(webhook.router, prefix="/webhook", tags=["Webhooks"])
app.include_router(health.router, prefix="/health", tags=["Health"])


@app.get("/")
def root():
    return {
        "payment_endpoints": [
            "/payments/checkout/book", "/payments/checkout/recharge",
            "/payments/balance-purchase",
            "/payments/orders", "/payments/recharges", "/payments/transactions"
        ],
        "webhook_endpoints": [
            "/webhook/stripe"
        ],
        "health": [
            "/health/check"
        ]
    }
