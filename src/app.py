"""Storefront FastAPI application.

Serves checkout, payment collection, ERP bridge and shipping endpoints for
every bounded context from one process. Commands run synchronously inside
each request; event handlers run in the same process in development and
test, and in the Engine worker (``server.py``) in production.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shared.config import get_settings
from shared.db import setup_db
from shared.domain import init_domain
from shared.http import register_exception_handlers, register_request_context
from shared.logging import get_logger

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# PROTEAN_ENV selects the domain.toml overlay:
#   - "test"       → in-memory stores, handlers fire in the request
#   - "production" → postgresql + redis, handlers fire via the Engine
storefront = init_domain()
logger = get_logger(__name__)

from erp.api import erp_router  # noqa: E402
from fulfillment.api import shipping_router  # noqa: E402
from ordering.api import coupon_router, order_router  # noqa: E402
from payments.api import invoice_router, payment_router  # noqa: E402


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Production schemas are created with ``manage.py setup-db``
    if get_settings().app_env != "production":
        setup_db(storefront)
    logger.info("Storefront API started", environment=get_settings().app_env)
    yield


def create_app() -> FastAPI:
    app = FastAPI(
        title="Storefront API",
        description="Storefront settlement core: checkout, payments, ERP sync and shipping",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_request_context(app, storefront)
    register_exception_handlers(app)

    # -----------------------------------------------------------------------
    # Routers
    # -----------------------------------------------------------------------
    app.include_router(order_router)
    app.include_router(coupon_router)
    app.include_router(payment_router)
    app.include_router(invoice_router)
    app.include_router(erp_router)
    app.include_router(shipping_router)

    # -----------------------------------------------------------------------
    # Health
    # -----------------------------------------------------------------------
    @app.get("/health")
    async def health():
        try:
            outbox = storefront._get_outbox_repo("default").count_by_status()
        except Exception as exc:
            logger.error("Health check failed", error=str(exc))
            return JSONResponse(status_code=503, content={"status": "degraded", "database": "unreachable"})
        return JSONResponse(
            content={
                "status": "ok",
                "database": "ok",
                "environment": get_settings().app_env,
                "domain": storefront.name,
                "outbox": outbox,
            }
        )

    return app


app = create_app()
