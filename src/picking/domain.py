"""Picking bounded context: Order Picking, Stock Ledger and Issue Resolution.

Takes a confirmed sales order through warehouse picking, deducts stock through
an append-only movement ledger, and feeds missing/damaged/partial lines back
into the order for a human decision. A single domain keeps the ledger, the
picking job and the order inside one unit of work when a job is finished.
"""

from protean.domain import Domain

from picking.utils.logging import configure_logging, get_logger

# Configure logging for the application
configure_logging()

logger = get_logger(__name__)

picking = Domain(name="picking")
