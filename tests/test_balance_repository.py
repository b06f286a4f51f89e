"""
Tests for BalanceRepository and the transaction queries it wraps.
"""

import pytest
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy import select, func

from projections.balances.engine import calculate_daily_balances
from projections.balances.models import DailyBalance
from projections.balances.repository import UPSERT_BATCH_SIZE, BalanceRepository
from projections.balances.triggers import horizon_end, recalculate_after_change
from projections.balances.types import AnchorBalance, DailyBalancePoint
from projections.data.events.models import CertaintyLevel, EventType, ProjectedEvent
from projections.data.transactions import queries


async def count_balances(db):
    result = await db.execute(select(func.count(DailyBalance.id)))
    return result.scalar_one()


# =============================================================================
# Transaction queries
# =============================================================================

class TestTransactionQueries:

    @pytest.mark.asyncio
    async def test_last_row_of_day_wins_by_sequence(self, db, bank_account, make_transaction):
        db.add_all([
            make_transaction(bank_account.id, date(2025, 1, 10), "480", sequence=1),
            make_transaction(bank_account.id, date(2025, 1, 10), "500", sequence=0),
            make_transaction(bank_account.id, date(2025, 1, 10), "455", sequence=2),
        ])
        await db.flush()

        anchor = await queries.get_last_transaction_balance_on_or_before(
            db, bank_account.id, date(2025, 1, 31)
        )
        assert anchor == AnchorBalance(balance=Decimal("455"), date=date(2025, 1, 10))

    @pytest.mark.asyncio
    async def test_no_anchor_before_history(self, db, bank_account, make_transaction):
        db.add(make_transaction(bank_account.id, date(2025, 1, 10), "500"))
        await db.flush()

        assert await queries.get_last_transaction_balance_on_or_before(
            db, bank_account.id, date(2025, 1, 9)
        ) is None

    @pytest.mark.asyncio
    async def test_coverage(self, db, bank_account, make_transaction):
        db.add_all([
            make_transaction(bank_account.id, date(2025, 1, 3), "100"),
            make_transaction(bank_account.id, date(2025, 2, 14), "200"),
        ])
        await db.flush()

        coverage = await queries.get_transaction_coverage(db, bank_account.id)
        assert coverage.earliest_date == date(2025, 1, 3)
        assert coverage.latest_covered_date == date(2025, 2, 14)
        assert coverage.transaction_count == 2

    @pytest.mark.asyncio
    async def test_coverage_without_history(self, db, bank_account):
        coverage = await queries.get_transaction_coverage(db, bank_account.id)
        assert coverage.latest_covered_date is None
        assert coverage.transaction_count == 0

    @pytest.mark.asyncio
    async def test_balance_history_uses_closing_balance(self, db, bank_account, make_transaction):
        db.add_all([
            make_transaction(bank_account.id, date(2025, 1, 1), "100", sequence=0),
            make_transaction(bank_account.id, date(2025, 1, 1), "90", sequence=1),
            make_transaction(bank_account.id, date(2025, 1, 4), "300"),
        ])
        await db.flush()

        history = await queries.get_balance_history(db, bank_account.id, date(2025, 1, 1), date(2025, 1, 31))
        assert history == [
            AnchorBalance(balance=Decimal("90"), date=date(2025, 1, 1)),
            AnchorBalance(balance=Decimal("300"), date=date(2025, 1, 4)),
        ]


# =============================================================================
# Cache writes
# =============================================================================

class TestBatchUpsert:

    @pytest.mark.asyncio
    async def test_upsert_overwrites_existing_rows(self, db, bank_account):
        repo = BalanceRepository(db)
        day = date(2025, 1, 1)

        await repo.batch_upsert_daily_balances(bank_account.id, [DailyBalancePoint(day, Decimal("10"))])
        await repo.batch_upsert_daily_balances(bank_account.id, [DailyBalancePoint(day, Decimal("25"))])

        rows = await repo.get_daily_balances(bank_account.id, day, day)
        assert len(rows) == 1
        assert Decimal(rows[0].expected_balance) == Decimal("25")

    @pytest.mark.asyncio
    async def test_large_batches_are_chunked(self, db, bank_account):
        start = date(2025, 1, 1)
        points = [
            DailyBalancePoint(start + timedelta(days=i), Decimal(i))
            for i in range(UPSERT_BATCH_SIZE * 2 + 7)
        ]

        written = await BalanceRepository(db).batch_upsert_daily_balances(bank_account.id, points)

        assert written == len(points)
        assert await count_balances(db) == len(points)

    @pytest.mark.asyncio
    async def test_empty_batch(self, db, bank_account):
        assert await BalanceRepository(db).batch_upsert_daily_balances(bank_account.id, []) == 0

    @pytest.mark.asyncio
    async def test_calculation_is_idempotent(self, db, bank_account, make_transaction):
        db.add(make_transaction(bank_account.id, date(2025, 1, 10), "500"))
        db.add(ProjectedEvent(
            name="Rent",
            value=Decimal("50"),
            type=EventType.EXPENSE,
            certainty=CertaintyLevel.CERTAIN,
            date=date(2025, 1, 12),
            bank_account_id=bank_account.id,
        ))
        await db.flush()
        repo = BalanceRepository(db)

        await calculate_daily_balances(repo, date(2025, 1, 10), date(2025, 1, 20), bank_account.id)
        first = [(r.date, Decimal(r.expected_balance)) for r in await repo.get_daily_balances(
            bank_account.id, date(2025, 1, 10), date(2025, 1, 20)
        )]
        await calculate_daily_balances(repo, date(2025, 1, 10), date(2025, 1, 20), bank_account.id)
        second = [(r.date, Decimal(r.expected_balance)) for r in await repo.get_daily_balances(
            bank_account.id, date(2025, 1, 10), date(2025, 1, 20)
        )]

        assert first == second
        assert len(first) == 11
        assert first[-1] == (date(2025, 1, 20), Decimal("450"))

    @pytest.mark.asyncio
    async def test_delete_daily_balances(self, db, bank_account):
        repo = BalanceRepository(db)
        await repo.batch_upsert_daily_balances(
            bank_account.id, [DailyBalancePoint(date(2025, 1, 1), Decimal("1"))]
        )
        assert await repo.delete_daily_balances(bank_account.id) == 1
        assert await count_balances(db) == 0


# =============================================================================
# Recompute triggers
# =============================================================================

class TestTriggers:

    def test_horizon_end_defaults_to_six_months(self):
        assert horizon_end(date(2025, 1, 31)) == date(2025, 7, 31)
        assert horizon_end(date(2025, 1, 31), months=1) == date(2025, 2, 28)

    @pytest.mark.asyncio
    async def test_recalculate_after_change_covers_horizon(self, db, bank_account):
        days = await recalculate_after_change(db, bank_account.id, date(2025, 1, 1))
        assert days == (date(2025, 7, 1) - date(2025, 1, 1)).days + 1
        assert await count_balances(db) == days

    @pytest.mark.asyncio
    async def test_recalculate_after_change_orders_dates(self, db, bank_account):
        days = await recalculate_after_change(db, bank_account.id, date(2025, 1, 10), date(2025, 1, 1))
        assert days == 10
