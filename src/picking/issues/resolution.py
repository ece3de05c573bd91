"""Issue resolution: apply a human decision per reported line to the order.

Every decision is validated before the order is touched: the line must be in
the stored report and a substitute must be a known product. Lines without a
decision are kept as they are.
"""

import json

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, Text
from protean.utils.globals import current_domain

from picking.catalogue.product import find_product
from picking.domain import logger, picking
from picking.errors import NoActiveIssueReport, UnknownLineItem
from picking.issues.decisions import ResolutionDecision
from picking.issues.report import IssueReport
from picking.job.job import PickingJob, load_job
from picking.order.order import LineCorrection, ResolutionAction, SalesOrder, load_order
from picking.pricing import get_pricing


@picking.command(part_of="SalesOrder")
class ApplyResolution:
    """Resolve a pending issue report.

    ``decisions`` is a JSON object keyed by picking line item id, each value
    ``{"action": ..., "product_id": ..., "quantity": ...}``.
    """

    tenant_id = Identifier(required=True)
    order_id = Identifier(required=True)
    decisions = Text(required=True)
    operator_id = Identifier()


def parse_decisions(payload: str | dict) -> dict[str, ResolutionDecision]:
    raw = json.loads(payload) if isinstance(payload, str) else payload
    if not isinstance(raw, dict):
        raise ValidationError({"decisions": ["Decisions must map line item ids to actions"]})
    return {str(line_id): ResolutionDecision.from_dict(data or {}) for line_id, data in raw.items()}


def _correction_for(tenant_id: str, order: SalesOrder, order_line_id: str, decision: ResolutionDecision):
    if decision.action != ResolutionAction.SUBSTITUTE:
        return LineCorrection(
            order_line_id=order_line_id,
            action=decision.action,
            quantity=decision.quantity,
        )

    product = find_product(tenant_id, decision.product_id)
    original_line = order.line(order_line_id)
    price = get_pricing().price_substitution(product, original_line)
    return LineCorrection(
        order_line_id=order_line_id,
        action=ResolutionAction.SUBSTITUTE,
        product_id=str(product.product_id),
        product_name=product.name,
        sku=product.sku,
        unit_price=price.unit_price,
        discount=price.discount,
    )


@picking.command_handler(part_of=SalesOrder)
class IssueResolutionHandler:
    @handle(ApplyResolution)
    def apply_resolution(self, command):
        order = load_order(command.tenant_id, command.order_id)
        if not order.issue_report:
            raise NoActiveIssueReport(command.order_id)

        report = IssueReport.from_json(order.issue_report)
        decisions = parse_decisions(command.decisions)

        corrections = []
        for line_item_id, decision in decisions.items():
            line = report.line(line_item_id)
            if line is None:
                raise UnknownLineItem(line_item_id)
            if decision.action == ResolutionAction.KEEP:
                continue
            corrections.append(_correction_for(command.tenant_id, order, line.order_line_id, decision))

        job = load_job(command.tenant_id, report.job_id)
        order.resolve_issues(str(job.id), corrections)
        job.mark_resolved()

        current_domain.repository_for(SalesOrder).add(order)
        current_domain.repository_for(PickingJob).add(job)
        logger.info(
            "issues_resolved",
            tenant_id=command.tenant_id,
            order_id=command.order_id,
            job_id=str(job.id),
            corrections=len(corrections),
            lines_remaining=len(order.lines or []),
        )
        return order.status
