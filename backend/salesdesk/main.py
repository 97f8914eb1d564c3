from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from salesdesk.core.config import settings
from salesdesk.core.logging_config import configure_logging
import salesdesk.models  # noqa: F401  # force model registration

from salesdesk.api.v1.sales import router as sales_router
from salesdesk.api.v1.payments import router as payments_router
from salesdesk.api.v1.reports import router as reports_router
from salesdesk.api.v1.notifications import router as notifications_router
from salesdesk.api.v1.tickets import router as tickets_router


def create_application() -> FastAPI:
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(title="SalesDesk API")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    def root():
        return {"status": "ok", "service": "salesdesk"}

    # Routers
    app.include_router(sales_router, prefix="/api/v1")
    app.include_router(payments_router, prefix="/api/v1")
    app.include_router(reports_router, prefix="/api/v1")
    app.include_router(notifications_router, prefix="/api/v1")
    app.include_router(tickets_router, prefix="/api/v1")

    return app


app = create_application()
