"""Pick path: the order an operator walks the warehouse for a job.

Product locations are stored either as a JSON object with ``street``,
``building`` and ``apartment`` keys (Portuguese aliases ``rua``, ``predio``,
``apartamento``/``nivel`` are accepted) or as a dash-separated string such as
``A-01-3``. Stops are ordered by street, building, apartment and then sku;
missing location parts sort last.
"""

import json
from dataclasses import dataclass

from picking.catalogue.product import ProductStock, find_product
from picking.job.job import PickingJob, load_job

_ALIASES = {
    "street": ("street", "rua"),
    "building": ("building", "predio"),
    "apartment": ("apartment", "apartamento", "nivel"),
}


@dataclass(frozen=True)
class BinLocation:
    street: str | None = None
    building: str | None = None
    apartment: str | None = None

    def label(self) -> str:
        return "-".join(part for part in (self.street, self.building, self.apartment) if part)

    def sort_key(self) -> tuple:
        return tuple(_part_key(part) for part in (self.street, self.building, self.apartment))


@dataclass(frozen=True)
class PickStop:
    line_item_id: str
    product_id: str
    product_name: str | None
    sku: str | None
    quantity_requested: int
    status: str
    location: BinLocation


def _part_key(part: str | None) -> tuple:
    if not part:
        return (1, 0, "")
    if part.isdigit():
        return (0, int(part), part)
    return (0, 0, part.upper())


def parse_location(raw: str | None) -> BinLocation:
    """Read a stored bin location. Unparseable values become an empty location."""
    if not raw or not raw.strip():
        return BinLocation()

    text = raw.strip()
    if text[0] in "{[":
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            return BinLocation()
        if not isinstance(data, dict):
            return BinLocation()
        parts = {}
        for name, keys in _ALIASES.items():
            value = next((data[k] for k in keys if data.get(k) not in (None, "")), None)
            parts[name] = str(value).strip() if value is not None else None
        return BinLocation(**parts)

    pieces = [piece.strip() or None for piece in text.split("-", 2)]
    pieces += [None] * (3 - len(pieces))
    return BinLocation(street=pieces[0], building=pieces[1], apartment=pieces[2])


def pick_path(job: PickingJob, products: dict[str, ProductStock]) -> list[PickStop]:
    """Order a job's line items by bin location, then sku.

    ``products`` maps product id to its stock record; a line whose product is
    absent has no location and sorts last.
    """
    stops = []
    for item in job.line_items or []:
        product_id = item.deducted_product_id()
        product = products.get(product_id)
        stops.append(
            PickStop(
                line_item_id=str(item.id),
                product_id=product_id,
                product_name=product.name if product else item.product_name,
                sku=product.sku if product else item.sku,
                quantity_requested=item.quantity_requested,
                status=item.status,
                location=parse_location(product.location if product else None),
            )
        )
    return sorted(stops, key=lambda stop: (stop.location.sort_key(), stop.sku or ""))


def pick_path_for(tenant_id: str, job_id: str) -> list[PickStop]:
    job = load_job(tenant_id, job_id)
    products = {}
    for item in job.line_items or []:
        product_id = item.deducted_product_id()
        products[product_id] = find_product(tenant_id, product_id)
    return pick_path(job, products)
