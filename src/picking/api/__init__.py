"""Picking domain API package."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from picking.api.routes import order_router, picking_router, product_router
from picking.errors import ConflictError, NotFoundError

__all__ = ["product_router", "order_router", "picking_router", "register_error_handlers"]


async def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": exc.messages})


async def _conflict(request: Request, exc: ConflictError) -> JSONResponse:
    return JSONResponse(status_code=409, content={"error": exc.messages, **exc.details})


def register_error_handlers(app: FastAPI) -> None:
    """Protean's handlers, plus 404 for unknown resources and 409 for state conflicts."""
    register_exception_handlers(app)
    app.add_exception_handler(NotFoundError, _not_found)
    app.add_exception_handler(ConflictError, _conflict)
