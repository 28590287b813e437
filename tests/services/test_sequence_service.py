"""
Tests for the document sequencer.

Tests cover:
- Number formatting and zero padding
- Independent counters per branch, type and year
- Custom prefixes
- Rollback of the caller's transaction undoes the increment
- No duplicates under concurrent allocation
"""

from concurrent.futures import ThreadPoolExecutor

import pytest

from back_office.exceptions import InvalidInputError
from back_office.models.base import unit_of_work
from back_office.models.enums import DocType
from back_office.services.sequence_service import SequenceService, format_number

BRANCH = "branch-1"


class TestFormatNumber:

    def test_pads_to_width(self):
        assert format_number("ORD", 2025, 7, 4) == "ORD-2025-0007"
        assert format_number("INV", 2025, 42, 5) == "INV-2025-00042"

    def test_value_wider_than_pad_is_not_truncated(self):
        assert format_number("ORD", 2025, 12345, 4) == "ORD-2025-12345"


class TestNextNumber:

    def test_numbers_increase_from_one(self, db_session):
        service = SequenceService(db_session)

        assert service.next_number(BRANCH, DocType.ORDER, 2025) == "ORD-2025-0001"
        assert service.next_number(BRANCH, DocType.ORDER, 2025) == "ORD-2025-0002"
        assert service.next_number(BRANCH, DocType.INVOICE, 2025) == "INV-2025-00001"

    def test_branches_have_separate_counters(self, db_session):
        service = SequenceService(db_session)

        service.next_number(BRANCH, DocType.ORDER, 2025)
        service.next_number(BRANCH, DocType.ORDER, 2025)

        assert service.next_number("branch-2", DocType.ORDER, 2025) == "ORD-2025-0001"

    def test_new_year_restarts_the_counter(self, db_session):
        service = SequenceService(db_session)

        service.next_number(BRANCH, DocType.WAYBILL, 2025)
        service.next_number(BRANCH, DocType.WAYBILL, 2025)

        assert service.next_number(BRANCH, DocType.WAYBILL, 2026) == "WBL-2026-0001"
        assert service.current_value(BRANCH, DocType.WAYBILL, 2025) == 2

    def test_current_value_is_zero_before_first_use(self, db_session):
        service = SequenceService(db_session)
        assert service.current_value(BRANCH, DocType.RETURN, 2025) == 0


class TestCustomPrefix:

    def test_custom_prefix_keeps_its_own_counter(self, db_session):
        service = SequenceService(db_session)

        service.next_number(BRANCH, DocType.INVOICE, 2025)
        number = service.next_custom_number(BRANCH, DocType.INVOICE, "exp", 2025)

        assert number == "EXP-2025-00001"
        assert service.current_value(BRANCH, DocType.INVOICE, 2025) == 1

    @pytest.mark.parametrize("prefix", ["", "A-B", "TOOLONGPREFIX"])
    def test_invalid_prefix_rejected(self, db_session, prefix):
        service = SequenceService(db_session)
        with pytest.raises(InvalidInputError):
            service.next_custom_number(BRANCH, DocType.INVOICE, prefix, 2025)


class TestTransactionality:

    def test_rollback_undoes_the_increment(self, db_session):
        service = SequenceService(db_session)

        with pytest.raises(RuntimeError):
            with unit_of_work(db_session):
                service.next_number(BRANCH, DocType.ORDER, 2025)
                raise RuntimeError("operation failed after allocating")

        assert service.current_value(BRANCH, DocType.ORDER, 2025) == 0
        assert service.next_number(BRANCH, DocType.ORDER, 2025) == "ORD-2025-0001"

    def test_concurrent_allocations_never_repeat(self, session_factory):
        def allocate(_):
            session = session_factory()
            try:
                numbers = []
                for _ in range(5):
                    with unit_of_work(session):
                        numbers.append(
                            SequenceService(session).next_number(
                                BRANCH, DocType.LEDGER, 2025
                            )
                        )
                return numbers
            finally:
                session.close()

        with ThreadPoolExecutor(max_workers=4) as pool:
            batches = list(pool.map(allocate, range(4)))

        numbers = [n for batch in batches for n in batch]
        assert len(numbers) == 20
        assert len(set(numbers)) == 20

        session = session_factory()
        try:
            assert SequenceService(session).current_value(
                BRANCH, DocType.LEDGER, 2025
            ) == 20
        finally:
            session.close()
