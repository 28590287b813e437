"""
Work order service: turning materials into a finished variant.

Create -> release -> start -> consume -> complete.

Consuming draws every material line from stock with FIFO
costing and records what each line cost. Completion adds labour
and overhead for the produced quantity and receives the output
as a new lot at

    (material + labour + overhead) / produced quantity

Work orders only draw unreserved stock, so production never
takes goods already allocated to sales orders.
"""

import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from back_office.exceptions import (
    AlreadyCancelledError,
    InvalidTransitionError,
    NotFoundError,
    StateConflictError,
)
from back_office.models.enums import (
    DocType,
    InventoryTransactionType,
    WorkOrderStatus,
)
from back_office.models.work_order import (
    WorkOrder,
    WorkOrderConsumption,
    WorkOrderMaterial,
)
from back_office.money import (
    add,
    divide,
    multiply,
    quantity,
    to_decimal,
    total,
    unit_cost,
)
from back_office.schemas.inventory import LotReceive, StockRequest
from back_office.schemas.work_order import (
    CompleteRequest,
    ConsumeRequest,
    WorkOrderCreate,
    WorkOrderFilter,
)
from back_office.services.inventory_service import InventoryService
from back_office.services.sequence_service import SequenceService

logger = logging.getLogger(__name__)

WORK_ORDER_REFERENCE = "WORK_ORDER"


def required_quantity(planned, per_unit, waste_pct) -> Decimal:
    """planned * per_unit, grossed up by the waste percentage."""
    base = multiply(planned, per_unit, 4)
    return divide(multiply(base, 100 + to_decimal(waste_pct), 4), 100, 4)


class WorkOrderService:

    def __init__(self, db: Session):
        self.db = db
        self.inventory = InventoryService(db)
        self.sequences = SequenceService(db)

    def create(
        self, request: WorkOrderCreate, branch_id: str, actor: str = "system"
    ) -> WorkOrder:
        planned = quantity(request.planned_quantity)
        work_order = WorkOrder(
            work_order_no=self.sequences.next_number(branch_id, DocType.WORK_ORDER),
            branch_id=branch_id,
            output_variant_id=request.output_variant_id,
            planned_quantity=planned,
            labor_cost_per_unit=unit_cost(request.labor_cost_per_unit),
            overhead_cost_per_unit=unit_cost(request.overhead_cost_per_unit),
            status=WorkOrderStatus.DRAFT,
            notes=request.notes,
            created_by=actor,
            materials=[
                WorkOrderMaterial(
                    variant_id=line.variant_id,
                    quantity_per_unit=quantity(line.quantity_per_unit),
                    waste_pct=line.waste_pct,
                    required_quantity=required_quantity(
                        planned, line.quantity_per_unit, line.waste_pct
                    ),
                )
                for line in request.materials
            ],
        )
        self.db.add(work_order)
        self.db.flush()
        logger.info(
            "Created work order %s: %s of %s",
            work_order.work_order_no, planned, request.output_variant_id,
        )
        return work_order

    def release(self, work_order_id: int, branch_id: str) -> WorkOrder:
        work_order = self._lock(work_order_id, branch_id)
        self._check_transition(work_order, WorkOrderStatus.RELEASED)
        work_order.status = WorkOrderStatus.RELEASED
        self.db.flush()
        logger.info("Released work order %s", work_order.work_order_no)
        return work_order

    def start(self, work_order_id: int, branch_id: str) -> WorkOrder:
        work_order = self._lock(work_order_id, branch_id)
        self._check_transition(work_order, WorkOrderStatus.IN_PROGRESS)
        work_order.status = WorkOrderStatus.IN_PROGRESS
        work_order.started_at = datetime.utcnow()
        self.db.flush()
        logger.info("Started work order %s", work_order.work_order_no)
        return work_order

    def consume(
        self, work_order_id: int, request: ConsumeRequest, branch_id: str
    ) -> WorkOrder:
        """
        Draw every material line from stock, oldest lots first.

        All lines are drawn or none: a shortfall on any line raises
        InsufficientStockError and the caller's rollback undoes the
        lines drawn before it.
        """
        work_order = self._lock(work_order_id, branch_id)
        if work_order.status != WorkOrderStatus.IN_PROGRESS:
            raise StateConflictError(
                f"Work order {work_order.work_order_no} is "
                f"{work_order.status.value}, not IN_PROGRESS"
            )
        if work_order.materials_consumed:
            raise StateConflictError(
                f"Materials for {work_order.work_order_no} are already consumed"
            )

        for line in work_order.materials:
            result = self.inventory.fulfill_fifo(
                StockRequest(
                    variant_id=line.variant_id,
                    warehouse_id=request.warehouse_id,
                    quantity=line.required_quantity,
                    reference_id=str(work_order.id),
                    reference_type=WORK_ORDER_REFERENCE,
                ),
                transaction_type=InventoryTransactionType.CONSUMPTION,
                consume_reservation=False,
            )
            work_order.consumptions.append(WorkOrderConsumption(
                variant_id=line.variant_id,
                warehouse_id=request.warehouse_id,
                quantity=result.quantity,
                unit_cost=divide(result.total_cost, result.quantity, 4),
                total_cost=result.total_cost,
            ))

        work_order.material_cost = total(c.total_cost for c in work_order.consumptions)
        work_order.materials_consumed = True
        self.db.flush()
        logger.info(
            "Consumed %d material line(s) for %s, cost %s",
            len(work_order.materials), work_order.work_order_no,
            work_order.material_cost,
        )
        return work_order

    def complete(
        self, work_order_id: int, request: CompleteRequest, branch_id: str
    ) -> WorkOrder:
        """Receive the output lot at the cost of goods manufactured."""
        work_order = self._lock(work_order_id, branch_id)
        self._check_transition(work_order, WorkOrderStatus.COMPLETED)
        if work_order.materials and not work_order.materials_consumed:
            raise StateConflictError(
                f"Consume materials for {work_order.work_order_no} before completing it"
            )

        produced = quantity(request.produced_quantity)
        labor = multiply(work_order.labor_cost_per_unit, produced)
        overhead = multiply(work_order.overhead_cost_per_unit, produced)
        total_cost = add(add(work_order.material_cost, labor), overhead)
        cost_per_unit = divide(total_cost, produced, 4)

        lot = self.inventory.receive(LotReceive(
            variant_id=work_order.output_variant_id,
            warehouse_id=request.warehouse_id,
            batch_no=f"PROD-{work_order.work_order_no}",
            quantity=produced,
            unit_cost=cost_per_unit,
            reference_id=str(work_order.id),
            reference_type=WORK_ORDER_REFERENCE,
            description=f"Produced under {work_order.work_order_no}",
        ), branch_id, transaction_type=InventoryTransactionType.PRODUCTION)

        work_order.status = WorkOrderStatus.COMPLETED
        work_order.produced_quantity = produced
        work_order.waste_quantity = quantity(request.waste_quantity)
        work_order.labor_cost = labor
        work_order.overhead_cost = overhead
        work_order.total_cost = total_cost
        work_order.unit_cost = cost_per_unit
        work_order.output_lot_id = lot.id
        work_order.completed_at = datetime.utcnow()
        self.db.flush()
        logger.info(
            "Completed work order %s: %s produced @ %s",
            work_order.work_order_no, produced, cost_per_unit,
        )
        return work_order

    def cancel(
        self, work_order_id: int, reason: str, branch_id: str
    ) -> WorkOrder:
        """Cancel before any material has left stock."""
        work_order = self._lock(work_order_id, branch_id)
        if work_order.is_cancelled:
            raise AlreadyCancelledError(
                f"Work order {work_order.work_order_no} is already cancelled"
            )
        self._check_transition(work_order, WorkOrderStatus.CANCELLED)
        if work_order.materials_consumed:
            raise StateConflictError(
                f"Materials for {work_order.work_order_no} have been consumed; "
                "complete it instead"
            )

        work_order.status = WorkOrderStatus.CANCELLED
        work_order.is_cancelled = True
        work_order.notes = f"{work_order.notes}\n{reason}" if work_order.notes else reason
        self.db.flush()
        logger.info("Cancelled work order %s: %s", work_order.work_order_no, reason)
        return work_order

    def get(self, work_order_id: int, branch_id: str) -> WorkOrder:
        work_order = self.db.get(WorkOrder, work_order_id)
        if not work_order or work_order.branch_id != branch_id:
            raise NotFoundError(f"Work order {work_order_id} not found")
        return work_order

    def list_work_orders(
        self, branch_id: str, filters: WorkOrderFilter | None = None
    ) -> list[WorkOrder]:
        filters = filters or WorkOrderFilter()
        query = select(WorkOrder).where(WorkOrder.branch_id == branch_id)
        if filters.status is not None:
            query = query.where(WorkOrder.status == filters.status)
        if not filters.include_cancelled:
            query = query.where(WorkOrder.is_cancelled.is_(False))

        work_orders = self.db.execute(
            query.order_by(WorkOrder.created_at.desc(), WorkOrder.id.desc())
            .limit(filters.limit)
        ).scalars().all()
        return list(work_orders)

    def _lock(self, work_order_id: int, branch_id: str) -> WorkOrder:
        work_order = self.db.execute(
            select(WorkOrder)
            .where(WorkOrder.id == work_order_id, WorkOrder.branch_id == branch_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if not work_order:
            raise NotFoundError(f"Work order {work_order_id} not found")
        return work_order

    def _check_transition(
        self, work_order: WorkOrder, to_status: WorkOrderStatus
    ) -> None:
        if not work_order.can_transition_to(to_status):
            raise InvalidTransitionError(work_order.status, to_status)
