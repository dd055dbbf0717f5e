import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from orderdesk.core import settings
from orderdesk.core.errors import (
    InvalidInputError,
    InvalidTransitionError,
    NotFoundError,
    OrderDeskError,
    ValidationError,
    WorkerUnavailableError,
)
from orderdesk.routes import orders, pricing, workers

logger = logging.getLogger(__name__)

ERROR_STATUS: dict[type[OrderDeskError], int] = {
    ValidationError: 422,
    InvalidInputError: 422,
    NotFoundError: 404,
    InvalidTransitionError: 409,
    WorkerUnavailableError: 409,
}


def _status_for(exc: OrderDeskError) -> int:
    for error_type, status_code in ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return status_code
    return 400


def create_app() -> FastAPI:
    logging.basicConfig(
        level=settings.log_level(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    app = FastAPI(title="Order Desk Dispatch API", version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(OrderDeskError)
    async def order_desk_error_handler(request: Request, exc: OrderDeskError) -> JSONResponse:
        status_code = _status_for(exc)
        logger.warning("%s %s -> %s: %s", request.method, request.url.path, status_code, exc)
        return JSONResponse(
            status_code=status_code,
            content={"detail": str(exc), "error": type(exc).__name__},
        )

    app.include_router(orders.router, prefix="/api")
    app.include_router(workers.router, prefix="/api")
    app.include_router(pricing.router, prefix="/api")

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Provide a lightweight landing page for container checks."""
        return JSONResponse(
            {
                "message": "Order Desk Dispatch API",
                "docs": "/docs",
                "health": "/api/orders/summary",
            }
        )

    return app


app = create_app()
