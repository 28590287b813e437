"""
Tests for the WorkOrderService.

Tests cover:
- Material requirements grossed up for waste
- The create -> release -> start -> consume -> complete flow
- FIFO material cost and the cost of goods manufactured
- All-or-nothing consumption and reservation safety
- Cancellation rules
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from back_office.exceptions import (
    AlreadyCancelledError,
    InsufficientStockError,
    InvalidTransitionError,
    StateConflictError,
)
from back_office.models.enums import InventoryTransactionType, WorkOrderStatus
from back_office.schemas.inventory import LotReceive, StockRequest
from back_office.schemas.work_order import (
    CompleteRequest,
    ConsumeRequest,
    MaterialLine,
    WorkOrderCreate,
)
from back_office.services.inventory_service import InventoryService
from back_office.services.work_order_service import (
    WorkOrderService,
    required_quantity,
)

BRANCH = "branch-1"
WAREHOUSE = "wh-1"
YEAR = date.today().year


# --- Helpers ---

def stock_up(db, variant, qty, cost, received_at=None):
    InventoryService(db).receive(LotReceive(
        variant_id=variant,
        warehouse_id=WAREHOUSE,
        quantity=Decimal(qty),
        unit_cost=Decimal(cost),
        received_at=received_at,
    ), BRANCH)
    db.commit()


def create_work_order(db, materials=None, planned="5"):
    if materials is None:
        materials = [
            MaterialLine(variant_id="steel", quantity_per_unit=Decimal("3")),
            MaterialLine(
                variant_id="paint",
                quantity_per_unit=Decimal("2"),
                waste_pct=Decimal("10"),
            ),
        ]
    work_order = WorkOrderService(db).create(WorkOrderCreate(
        output_variant_id="cabinet",
        planned_quantity=Decimal(planned),
        labor_cost_per_unit=Decimal("3"),
        overhead_cost_per_unit=Decimal("1"),
        materials=materials,
    ), BRANCH, "planner")
    db.commit()
    return work_order


def start(db, work_order):
    service = WorkOrderService(db)
    service.release(work_order.id, BRANCH)
    service.start(work_order.id, BRANCH)
    db.commit()


def consume(db, work_order):
    result = WorkOrderService(db).consume(
        work_order.id, ConsumeRequest(warehouse_id=WAREHOUSE), BRANCH
    )
    db.commit()
    return result


def stock_materials(db):
    stock_up(db, "steel", "10", "7", received_at=datetime(2025, 2, 1))
    stock_up(db, "steel", "10", "5", received_at=datetime(2025, 1, 1))
    stock_up(db, "paint", "20", "2")


class TestRequiredQuantity:

    def test_without_waste(self):
        assert required_quantity(Decimal("5"), Decimal("3"), Decimal("0")) == Decimal("15.0000")

    def test_waste_grosses_up(self):
        assert required_quantity(Decimal("5"), Decimal("2"), Decimal("10")) == Decimal("11.0000")

    def test_fractional_quantities(self):
        assert required_quantity(
            Decimal("3"), Decimal("0.3333"), Decimal("2.5")
        ) == Decimal("1.0249")


class TestCreate:

    def test_numbered_and_sized(self, db_session):
        work_order = create_work_order(db_session)

        assert work_order.work_order_no == f"WRK-{YEAR}-0001"
        assert work_order.status == WorkOrderStatus.DRAFT
        assert [m.required_quantity for m in work_order.materials] == [
            Decimal("15"), Decimal("11"),
        ]


class TestLifecycle:

    def test_consume_before_start_rejected(self, db_session):
        stock_materials(db_session)
        work_order = create_work_order(db_session)

        with pytest.raises(StateConflictError, match="not IN_PROGRESS"):
            consume(db_session, work_order)

    def test_start_from_draft_rejected(self, db_session):
        work_order = create_work_order(db_session)

        with pytest.raises(InvalidTransitionError):
            WorkOrderService(db_session).start(work_order.id, BRANCH)

    def test_consume_costs_materials_fifo(self, db_session):
        stock_materials(db_session)
        work_order = create_work_order(db_session)
        start(db_session, work_order)

        consumed = consume(db_session, work_order)

        # steel: 10 @ 5 from the older lot, then 5 @ 7; paint: 11 @ 2
        assert consumed.material_cost == Decimal("107.00")
        assert consumed.materials_consumed is True
        steel, paint = consumed.consumptions
        assert (steel.quantity, steel.total_cost) == (Decimal("15"), Decimal("85.00"))
        assert steel.unit_cost == Decimal("5.6667")
        assert (paint.quantity, paint.total_cost) == (Decimal("11"), Decimal("22.00"))

        inventory = InventoryService(db_session)
        assert inventory.get_stock("steel", WAREHOUSE).quantity == Decimal("5")
        assert inventory.get_stock("paint", WAREHOUSE).quantity == Decimal("9")
        types = {t.transaction_type for t in inventory.list_transactions("steel")}
        assert InventoryTransactionType.CONSUMPTION in types

    def test_consume_twice_rejected(self, db_session):
        stock_materials(db_session)
        work_order = create_work_order(db_session)
        start(db_session, work_order)
        consume(db_session, work_order)

        with pytest.raises(StateConflictError, match="already consumed"):
            consume(db_session, work_order)

    def test_complete_receives_output_at_cogm(self, db_session):
        stock_materials(db_session)
        work_order = create_work_order(db_session)
        start(db_session, work_order)
        consume(db_session, work_order)

        completed = WorkOrderService(db_session).complete(
            work_order.id,
            CompleteRequest(
                warehouse_id=WAREHOUSE,
                produced_quantity=Decimal("4"),
                waste_quantity=Decimal("1"),
            ),
            BRANCH,
        )
        db_session.commit()

        # 107.00 material + 4 * 3 labour + 4 * 1 overhead = 123.00 over 4 units
        assert completed.status == WorkOrderStatus.COMPLETED
        assert completed.labor_cost == Decimal("12.00")
        assert completed.overhead_cost == Decimal("4.00")
        assert completed.total_cost == Decimal("123.00")
        assert completed.unit_cost == Decimal("30.7500")
        assert completed.waste_quantity == Decimal("1")

        lots = InventoryService(db_session).list_lots("cabinet", WAREHOUSE)
        assert len(lots) == 1
        assert lots[0].id == completed.output_lot_id
        assert lots[0].batch_no == f"PROD-WRK-{YEAR}-0001"
        assert lots[0].quantity == Decimal("4")
        assert lots[0].unit_cost == Decimal("30.75")
        check = InventoryService(db_session).verify_stock("cabinet", WAREHOUSE)
        assert check.matches is True

    def test_complete_before_consume_rejected(self, db_session):
        work_order = create_work_order(db_session)
        start(db_session, work_order)

        with pytest.raises(StateConflictError, match="Consume materials"):
            WorkOrderService(db_session).complete(
                work_order.id,
                CompleteRequest(warehouse_id=WAREHOUSE, produced_quantity=Decimal("5")),
                BRANCH,
            )

    def test_order_without_materials_costs_labour_only(self, db_session):
        work_order = create_work_order(db_session, materials=[], planned="2")
        start(db_session, work_order)

        completed = WorkOrderService(db_session).complete(
            work_order.id,
            CompleteRequest(warehouse_id=WAREHOUSE, produced_quantity=Decimal("2")),
            BRANCH,
        )

        assert completed.total_cost == Decimal("8.00")
        assert completed.unit_cost == Decimal("4.0000")


class TestConsumptionSafety:

    def test_shortfall_on_any_line_moves_nothing(self, db_session):
        stock_up(db_session, "steel", "20", "5")
        stock_up(db_session, "paint", "5", "2")
        work_order = create_work_order(db_session)
        start(db_session, work_order)

        with pytest.raises(InsufficientStockError):
            consume(db_session, work_order)
        db_session.rollback()

        inventory = InventoryService(db_session)
        assert inventory.get_stock("steel", WAREHOUSE).quantity == Decimal("20")
        assert inventory.verify_stock("steel", WAREHOUSE).matches is True
        reloaded = WorkOrderService(db_session).get(work_order.id, BRANCH)
        assert reloaded.materials_consumed is False
        assert reloaded.consumptions == []

    def test_reserved_stock_is_not_consumed(self, db_session):
        stock_up(db_session, "steel", "20", "5")
        stock_up(db_session, "paint", "20", "2")
        InventoryService(db_session).allocate(StockRequest(
            variant_id="steel",
            warehouse_id=WAREHOUSE,
            quantity=Decimal("10"),
            reference_type="ORDER",
        ))
        db_session.commit()
        work_order = create_work_order(db_session)
        start(db_session, work_order)

        with pytest.raises(InsufficientStockError) as exc_info:
            consume(db_session, work_order)
        db_session.rollback()

        assert exc_info.value.unmet_quantity == Decimal("5")
        stock = InventoryService(db_session).get_stock("steel", WAREHOUSE)
        assert stock.reserved_quantity == Decimal("10")


class TestCancel:

    def test_cancel_released_order(self, db_session):
        work_order = create_work_order(db_session)
        WorkOrderService(db_session).release(work_order.id, BRANCH)

        cancelled = WorkOrderService(db_session).cancel(
            work_order.id, "Customer withdrew", BRANCH
        )
        db_session.commit()

        assert cancelled.status == WorkOrderStatus.CANCELLED
        assert cancelled.is_cancelled is True
        assert "Customer withdrew" in cancelled.notes
        with pytest.raises(AlreadyCancelledError):
            WorkOrderService(db_session).cancel(work_order.id, "again", BRANCH)

    def test_cancel_after_consumption_rejected(self, db_session):
        stock_materials(db_session)
        work_order = create_work_order(db_session)
        start(db_session, work_order)
        consume(db_session, work_order)

        with pytest.raises(StateConflictError, match="complete it instead"):
            WorkOrderService(db_session).cancel(work_order.id, "Too late", BRANCH)

    def test_completed_order_cannot_be_cancelled(self, db_session):
        work_order = create_work_order(db_session, materials=[])
        start(db_session, work_order)
        WorkOrderService(db_session).complete(
            work_order.id,
            CompleteRequest(warehouse_id=WAREHOUSE, produced_quantity=Decimal("5")),
            BRANCH,
        )
        db_session.commit()

        with pytest.raises(InvalidTransitionError):
            WorkOrderService(db_session).cancel(work_order.id, "No", BRANCH)
