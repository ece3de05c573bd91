"""Issue report: a finished job's discrepancies, grouped for a human decision.

Lines are grouped into three buckets: ``missing``, ``damaged`` and
``partial`` (shipped, but less than requested). Missing and damaged lines
carry interchangeable products that are active and in stock. The report is
stored as JSON on the order while it waits for resolution.
"""

import json
from dataclasses import asdict, dataclass, field

from picking.catalogue.product import find_interchangeable, find_product
from picking.errors import JobNotFinished
from picking.issues.decisions import ResolutionDecision
from picking.job.job import LineItemStatus, PickingJob, load_job


@dataclass(frozen=True)
class SubstituteCandidate:
    product_id: str
    name: str
    sku: str | None
    on_hand: int
    location: str | None = None


@dataclass(frozen=True)
class IssueLine:
    line_item_id: str
    order_line_id: str
    product_id: str
    product_name: str | None
    sku: str | None
    interchange_code: str | None
    status: str
    quantity_requested: int
    quantity_fulfilled: int
    notes: str | None = None
    substituted_product_id: str | None = None
    candidates: list[SubstituteCandidate] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict):
        candidates = [SubstituteCandidate(**c) for c in data.get("candidates", [])]
        return cls(**{**data, "candidates": candidates})


@dataclass(frozen=True)
class IssueReport:
    job_id: str
    order_id: str
    job_status: str
    missing: list[IssueLine] = field(default_factory=list)
    damaged: list[IssueLine] = field(default_factory=list)
    partial: list[IssueLine] = field(default_factory=list)

    def lines(self) -> list[IssueLine]:
        return [*self.missing, *self.damaged, *self.partial]

    def line(self, line_item_id: str) -> IssueLine | None:
        return next((line for line in self.lines() if line.line_item_id == str(line_item_id)), None)

    def has_issues(self) -> bool:
        return bool(self.missing or self.damaged or self.partial)

    def default_decisions(self) -> dict[str, ResolutionDecision]:
        """Suggested decisions: drop missing lines, swap damaged ones, ship partials as picked."""
        decisions = {}
        for line in self.missing:
            decisions[line.line_item_id] = ResolutionDecision.remove()
        for line in self.damaged:
            if line.candidates:
                decisions[line.line_item_id] = ResolutionDecision.substitute(line.candidates[0].product_id)
            else:
                decisions[line.line_item_id] = ResolutionDecision.keep()
        for line in self.partial:
            decisions[line.line_item_id] = ResolutionDecision.adjust_quantity(line.quantity_fulfilled)
        return decisions

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, payload: str):
        data = json.loads(payload)
        return cls(
            job_id=data["job_id"],
            order_id=data["order_id"],
            job_status=data["job_status"],
            missing=[IssueLine.from_dict(line) for line in data.get("missing", [])],
            damaged=[IssueLine.from_dict(line) for line in data.get("damaged", [])],
            partial=[IssueLine.from_dict(line) for line in data.get("partial", [])],
        )


def _candidates(tenant_id: str, product, on_hand: dict[str, int]) -> list[SubstituteCandidate]:
    candidates = []
    for p in find_interchangeable(tenant_id, product.interchange_code, str(product.product_id)):
        available = on_hand.get(str(p.product_id), p.on_hand or 0)
        if available > 0:
            candidates.append(
                SubstituteCandidate(
                    product_id=str(p.product_id),
                    name=p.name,
                    sku=p.sku,
                    on_hand=available,
                    location=p.location,
                )
            )
    return sorted(candidates, key=lambda c: (-c.on_hand, c.name))


def _issue_line(tenant_id: str, item, on_hand: dict[str, int] | None = None) -> IssueLine:
    product = find_product(tenant_id, str(item.product_id))
    candidates = _candidates(tenant_id, product, on_hand) if on_hand is not None else []
    return IssueLine(
        line_item_id=str(item.id),
        order_line_id=str(item.order_line_id),
        product_id=str(item.product_id),
        product_name=item.product_name or product.name,
        sku=item.sku or product.sku,
        interchange_code=product.interchange_code,
        status=item.status,
        quantity_requested=item.quantity_requested,
        quantity_fulfilled=item.quantity_fulfilled or 0,
        notes=item.notes,
        substituted_product_id=str(item.substituted_product_id) if item.substituted_product_id else None,
        candidates=candidates,
    )


def issue_report_for(job: PickingJob, on_hand: dict[str, int] | None = None) -> IssueReport:
    """Group a terminal job's line items into missing, damaged and partial buckets.

    ``on_hand`` overrides stored balances for products changed in the current
    unit of work, so candidates reflect stock after the job's deductions.
    """
    on_hand = on_hand or {}
    if not job.is_terminal():
        raise JobNotFinished(str(job.id), job.status)

    tenant_id = str(job.tenant_id)
    missing, damaged, partial = [], [], []
    for item in job.line_items or []:
        if item.status == LineItemStatus.MISSING.value:
            missing.append(_issue_line(tenant_id, item, on_hand))
        elif item.status == LineItemStatus.DAMAGED.value:
            damaged.append(_issue_line(tenant_id, item, on_hand))
        elif item.is_partial():
            partial.append(_issue_line(tenant_id, item))

    return IssueReport(
        job_id=str(job.id),
        order_id=str(job.order_id),
        job_status=job.status,
        missing=missing,
        damaged=damaged,
        partial=partial,
    )


def build_issue_report(tenant_id: str, job_id: str) -> IssueReport:
    return issue_report_for(load_job(tenant_id, job_id))
