"""
Race tests for stock and balance updates.

Each worker gets its own session and commits through
unit_of_work(), the way concurrent requests would. A barrier
lines the workers up so their reads overlap before any of them
writes.

Tests cover:
- Concurrent FIFO fulfilments never overdraw a lot
- Concurrent allocations never reserve past the available quantity
- Concurrent postings keep the cached balance equal to the ledger
"""

from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from threading import Barrier

from back_office.exceptions import InsufficientStockError
from back_office.models.base import unit_of_work
from back_office.models.enums import AccountType, LedgerEntryType
from back_office.schemas.account import AccountCreate
from back_office.schemas.inventory import LotReceive, StockRequest
from back_office.schemas.ledger import LedgerEntryCreate
from back_office.services.account_service import AccountService
from back_office.services.inventory_service import InventoryService
from back_office.services.ledger_service import LedgerService

BRANCH = "branch-1"
VARIANT = "variant-1"
WAREHOUSE = "wh-1"
WORKERS = 4


def seed_lot(session_factory, qty, cost="5"):
    session = session_factory()
    try:
        with unit_of_work(session):
            InventoryService(session).receive(LotReceive(
                variant_id=VARIANT,
                warehouse_id=WAREHOUSE,
                quantity=Decimal(qty),
                unit_cost=Decimal(cost),
            ), BRANCH)
    finally:
        session.close()


def stock_request(qty):
    return StockRequest(
        variant_id=VARIANT,
        warehouse_id=WAREHOUSE,
        quantity=Decimal(qty),
        reference_type="ORDER",
    )


def run_workers(task, count=WORKERS):
    barrier = Barrier(count)

    def worker(index):
        barrier.wait()
        return task(index)

    with ThreadPoolExecutor(max_workers=count) as pool:
        return list(pool.map(worker, range(count)))


class TestStockRaces:

    def test_concurrent_fulfilments_never_overdraw(self, session_factory):
        seed_lot(session_factory, "10")

        def fulfil(_):
            session = session_factory()
            try:
                with unit_of_work(session):
                    result = InventoryService(session).fulfill_fifo(stock_request("3"))
                return result.quantity
            except InsufficientStockError:
                return Decimal("0")
            finally:
                session.close()

        consumed = run_workers(fulfil)

        assert sum(consumed) <= Decimal("10")
        assert any(qty > 0 for qty in consumed)

        session = session_factory()
        try:
            service = InventoryService(session)
            check = service.verify_stock(VARIANT, WAREHOUSE)
            assert check.matches is True
            assert check.stock_quantity == Decimal("10") - sum(consumed)
            sales = [
                t for t in service.list_transactions(VARIANT)
                if t.transaction_type.value == "SALE"
            ]
            assert sum(t.quantity for t in sales) == sum(consumed)
        finally:
            session.close()

    def test_concurrent_allocations_of_the_last_units(self, session_factory):
        seed_lot(session_factory, "5")

        def reserve(_):
            session = session_factory()
            try:
                with unit_of_work(session):
                    InventoryService(session).allocate(stock_request("2"))
                return True
            except InsufficientStockError:
                return False
            finally:
                session.close()

        outcomes = run_workers(reserve, count=5)

        assert outcomes.count(True) == 2

        session = session_factory()
        try:
            stock = InventoryService(session).get_stock(VARIANT, WAREHOUSE)
            assert stock.reserved_quantity == Decimal("4")
            assert stock.reserved_quantity <= stock.quantity
        finally:
            session.close()


class TestBalanceRaces:

    def test_concurrent_postings_to_one_account(self, session_factory):
        session = session_factory()
        try:
            with unit_of_work(session):
                account = AccountService(session).create_account(AccountCreate(
                    code="C100",
                    name="Busy Customer",
                    account_type=AccountType.CUSTOMER,
                ), BRANCH)
            account_id = account.id
        finally:
            session.close()

        def post(_):
            worker_session = session_factory()
            try:
                numbers = []
                for _ in range(5):
                    with unit_of_work(worker_session):
                        entry = LedgerService(worker_session).record(LedgerEntryCreate(
                            account_id=account_id,
                            entry_type=LedgerEntryType.ADJUSTMENT,
                            debit=Decimal("10.00"),
                            description="Concurrent adjustment",
                        ), BRANCH, "worker")
                        numbers.append(entry.entry_no)
                return numbers
            finally:
                worker_session.close()

        batches = run_workers(post)

        numbers = [n for batch in batches for n in batch]
        assert len(set(numbers)) == WORKERS * 5

        session = session_factory()
        try:
            check = AccountService(session).verify_balance(account_id, BRANCH)
            assert check.matches is True
            assert check.cached_balance == Decimal("200.00")
        finally:
            session.close()
