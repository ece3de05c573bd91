"""Pydantic request/response schemas for the Picking API."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

# --- Product / Ledger Request Schemas ---


class RegisterProductRequest(BaseModel):
    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "product_id": "prod-windshield-001",
                    "name": "Windshield Corolla 2020",
                    "sku": "PB-COR-20",
                    "interchange_code": "FY-1234",
                    "location": "A-01-3",
                    "unit_price": 890.0,
                    "initial_quantity": 12,
                }
            ]
        }
    }

    product_id: str = Field(..., max_length=255)
    name: str = Field(..., max_length=255)
    sku: str | None = Field(None, max_length=100)
    interchange_code: str | None = Field(None, max_length=100)
    location: str | None = Field(None, max_length=255)
    unit_price: float = 0.0
    initial_quantity: int = 0
    actor_id: str | None = None


class RecordMovementRequest(BaseModel):
    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "movement_type": "inbound_purchase",
                    "quantity": 10,
                    "actor_id": "user-007",
                    "reference_kind": "invoice",
                    "reference_id": "nfe-35210",
                    "reason": "Supplier delivery",
                }
            ]
        }
    }

    movement_type: str = Field(..., max_length=30)
    quantity: int
    actor_id: str | None = None
    reference_kind: str | None = Field(None, max_length=20)
    reference_id: str | None = None
    reason: str | None = Field(None, max_length=500)
    location_from: str | None = Field(None, max_length=255)
    location_to: str | None = Field(None, max_length=255)


class LegacyMovement(BaseModel):
    type: str
    quantity: int
    occurred_at: str
    reference_kind: str | None = None
    reference_id: str | None = None
    actor_id: str | None = None
    reason: str | None = None
    location_from: str | None = None
    location_to: str | None = None


class ImportLegacyHistoryRequest(BaseModel):
    movements: list[LegacyMovement]
    current_on_hand: int = Field(..., ge=0)
    actor_id: str | None = None


# --- Product / Ledger Response Schemas ---


class ProductIdResponse(BaseModel):
    product_id: str


class MovementIdResponse(BaseModel):
    movement_id: str


class ImportCountResponse(BaseModel):
    imported: int


class StockResponse(BaseModel):
    product_id: str
    name: str
    sku: str | None = None
    location: str | None = None
    is_active: bool = True
    on_hand: int


class MovementResponse(BaseModel):
    movement_id: str
    product_id: str
    movement_type: str
    quantity: int
    balance_before: int | None = None
    balance_after: int | None = None
    occurred_at: datetime
    sequence: int
    reference_kind: str | None = None
    reference_id: str | None = None
    actor_id: str | None = None
    reason: str | None = None


class BalanceRowResponse(BaseModel):
    movement_id: str
    movement_type: str
    quantity: int
    occurred_at: datetime
    sequence: int
    balance_before: int
    balance_after: int
    reconstructed: bool = False
    reference_kind: str | None = None
    reference_id: str | None = None
    actor_id: str | None = None


class BalanceReportResponse(BaseModel):
    product_id: str
    start: datetime | None = None
    end: datetime | None = None
    opening_balance: int
    closing_balance: int
    rows: list[BalanceRowResponse]
    total_inbound: int
    total_outbound: int
    total_adjustments: int
    inconsistent: bool
    warnings: list[str]


class ReplayCheckResponse(BaseModel):
    product_id: str
    on_hand: int
    replayed_balance: int
    entry_count: int
    mismatched_entries: list[str]
    consistent: bool


# --- Order Schemas ---


class OrderLineRequest(BaseModel):
    product_id: str
    quantity: int = Field(..., ge=1)
    unit_price: float | None = None
    discount: float = 0.0


class RegisterOrderRequest(BaseModel):
    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "customer_id": "cust-042",
                    "lines": [{"product_id": "prod-windshield-001", "quantity": 2}],
                    "discount": 0.0,
                }
            ]
        }
    }

    customer_id: str | None = None
    lines: list[OrderLineRequest] = Field(..., min_length=1)
    discount: float = 0.0


class ChangeLineQuantityRequest(BaseModel):
    quantity: int


class OrderIdResponse(BaseModel):
    order_id: str


class OrderLineResponse(BaseModel):
    line_id: str
    product_id: str
    product_name: str | None = None
    sku: str | None = None
    quantity: int
    unit_price: float
    discount: float
    total: float


class OrderResponse(BaseModel):
    order_id: str
    customer_id: str | None = None
    status: str
    active_job_id: str | None = None
    subtotal: float
    discount: float
    total: float
    lines: list[OrderLineResponse]
    created_at: datetime | None = None


# --- Issue Report / Resolution Schemas ---


class SubstituteCandidateResponse(BaseModel):
    product_id: str
    name: str
    sku: str | None = None
    on_hand: int
    location: str | None = None


class IssueLineResponse(BaseModel):
    line_item_id: str
    order_line_id: str
    product_id: str
    product_name: str | None = None
    sku: str | None = None
    interchange_code: str | None = None
    status: str
    quantity_requested: int
    quantity_fulfilled: int
    notes: str | None = None
    substituted_product_id: str | None = None
    candidates: list[SubstituteCandidateResponse] = []


class IssueReportResponse(BaseModel):
    job_id: str
    order_id: str
    job_status: str
    missing: list[IssueLineResponse]
    damaged: list[IssueLineResponse]
    partial: list[IssueLineResponse]


class DecisionRequest(BaseModel):
    action: str
    product_id: str | None = None
    quantity: int | None = None


class ResolutionRequest(BaseModel):
    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "decisions": {
                        "line-item-1": {"action": "remove"},
                        "line-item-2": {"action": "substitute", "product_id": "prod-windshield-002"},
                        "line-item-3": {"action": "adjust_quantity", "quantity": 1},
                    },
                    "operator_id": "supervisor-01",
                }
            ]
        }
    }

    decisions: dict[str, DecisionRequest]
    operator_id: str | None = None


# --- Picking Job Schemas ---


class StartPickingRequest(BaseModel):
    order_id: str
    operator_id: str


class OperatorRequest(BaseModel):
    operator_id: str | None = None


class FinishPickingRequest(BaseModel):
    operator_id: str


class LineOutcomeRequest(BaseModel):
    model_config = {
        "json_schema_extra": {
            "examples": [
                {"status": "fulfilled", "quantity": 2, "operator_id": "picker-07"},
                {"status": "damaged", "notes": "Cracked in the rack"},
            ]
        }
    }

    status: str = Field(..., max_length=20)
    quantity: int | None = None
    substitute_product_id: str | None = None
    notes: str | None = None
    operator_id: str | None = None


class JobIdResponse(BaseModel):
    job_id: str


class LineItemIdResponse(BaseModel):
    line_item_id: str


class LineItemResponse(BaseModel):
    line_item_id: str
    order_line_id: str
    product_id: str
    product_name: str | None = None
    sku: str | None = None
    quantity_requested: int
    quantity_fulfilled: int
    status: str
    substituted_product_id: str | None = None
    notes: str | None = None


class PickingJobResponse(BaseModel):
    job_id: str
    order_id: str
    operator_id: str
    status: str
    started_at: datetime | None = None
    paused_at: datetime | None = None
    finished_at: datetime | None = None
    finished_by: str | None = None
    resolved_at: datetime | None = None
    line_items: list[LineItemResponse]


class PickStopResponse(BaseModel):
    line_item_id: str
    product_id: str
    product_name: str | None = None
    sku: str | None = None
    quantity_requested: int
    status: str
    location: str


class PickingStatsResponse(BaseModel):
    total: int
    pending: int
    fulfilled: int
    partial: int
    substituted: int
    missing: int
    damaged: int


class PickingTimeRowResponse(BaseModel):
    job_id: str
    order_id: str
    operator_id: str
    status: str
    order_created_at: datetime | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None
    wait_minutes: float | None = None
    picking_minutes: float | None = None
    paused_minutes: float = 0.0
    total_minutes: float | None = None


class PickingTimesResponse(BaseModel):
    start: datetime | None = None
    end: datetime | None = None
    operator_id: str | None = None
    rows: list[PickingTimeRowResponse]
    total_jobs: int
    finished_jobs: int
    average_wait_minutes: float | None = None
    average_picking_minutes: float | None = None
    average_total_minutes: float | None = None


class StatusResponse(BaseModel):
    model_config = {"json_schema_extra": {"examples": [{"status": "ok"}]}}

    status: str = "ok"
