"""Picking FastAPI application.

Web server that processes picking, ledger and issue resolution commands
synchronously via HTTP. Each request runs inside the picking domain context
with the request's tenant bound to the log context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the Protean config overlay.
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from picking.domain import picking
from picking.utils.logging import add_context, clear_context

picking.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Picking API",
    description="Order picking, stock ledger and issue resolution",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the picking domain context and bind the tenant for logging."""
    add_context(tenant_id=request.headers.get("x-tenant-id"), path=request.url.path)
    try:
        with picking.domain_context():
            return await call_next(request)
    finally:
        clear_context()


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from picking.api import (  # noqa: E402
    order_router,
    picking_router,
    product_router,
    register_error_handlers,
)

app.include_router(product_router)
app.include_router(order_router)
app.include_router(picking_router)
register_error_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": picking.name})
