"""SQLAlchemy-backed persistence interface used by the balance engine."""
from datetime import date
from typing import List, Optional, Sequence

from sqlalchemy import select, delete, func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from projections.balances.models import DailyBalance
from projections.balances.types import AnchorBalance, DailyBalancePoint, TransactionCoverage
from projections.data.base import generate_id
from projections.data.events.models import ProjectedEvent
from projections.data.transactions import queries as transaction_queries

# Keeps each multi-row INSERT below SQLite's bound-parameter limit
UPSERT_BATCH_SIZE = 150


class BalanceRepository:
    """
    Persistence interface for the balance engine.

    Usage:
        repo = BalanceRepository(db)
        await calculate_daily_balances(repo, start, end, account_id)

    Writes are flushed, never committed: the caller owns the transaction.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    # ==========================================================================
    # Engine interface
    # ==========================================================================

    async def get_projected_events(
        self,
        bank_account_id: str,
        start_date: date,
        end_date: date,
    ) -> List[ProjectedEvent]:
        """All projected events of an account dated within a range."""
        result = await self.db.execute(
            select(ProjectedEvent)
            .where(
                ProjectedEvent.bank_account_id == bank_account_id,
                ProjectedEvent.date >= start_date,
                ProjectedEvent.date <= end_date,
            )
            .order_by(ProjectedEvent.date, ProjectedEvent.created_at)
        )
        return list(result.scalars().all())

    async def get_last_transaction_balance_on_or_before(
        self,
        bank_account_id: str,
        on_or_before: date,
    ) -> Optional[AnchorBalance]:
        return await transaction_queries.get_last_transaction_balance_on_or_before(
            self.db, bank_account_id, on_or_before
        )

    async def batch_upsert_daily_balances(
        self,
        bank_account_id: str,
        rows: Sequence[DailyBalancePoint],
    ) -> int:
        """
        Insert or overwrite cached balances keyed by (date, bank_account_id).

        Returns:
            Number of rows written
        """
        if not rows:
            return 0

        insert = self._dialect_insert()
        for offset in range(0, len(rows), UPSERT_BATCH_SIZE):
            chunk = rows[offset:offset + UPSERT_BATCH_SIZE]
            stmt = insert(DailyBalance).values([
                {
                    "id": generate_id("bal"),
                    "date": point.date,
                    "bank_account_id": bank_account_id,
                    "expected_balance": point.expected_balance,
                }
                for point in chunk
            ])
            stmt = stmt.on_conflict_do_update(
                index_elements=["date", "bank_account_id"],
                set_={
                    "expected_balance": stmt.excluded.expected_balance,
                    "updated_at": func.now(),
                },
            )
            await self.db.execute(stmt)

        return len(rows)

    # ==========================================================================
    # Read paths
    # ==========================================================================

    async def get_daily_balances(
        self,
        bank_account_id: str,
        start_date: date,
        end_date: date,
    ) -> List[DailyBalance]:
        """Cached balances of an account within a range."""
        result = await self.db.execute(
            select(DailyBalance)
            .where(
                DailyBalance.bank_account_id == bank_account_id,
                DailyBalance.date >= start_date,
                DailyBalance.date <= end_date,
            )
            .order_by(DailyBalance.date)
            # Upserts bypass the identity map
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_transaction_coverage(self, bank_account_id: str) -> TransactionCoverage:
        return await transaction_queries.get_transaction_coverage(self.db, bank_account_id)

    async def delete_daily_balances(self, bank_account_id: str) -> int:
        """Drop the whole cache of an account."""
        result = await self.db.execute(
            delete(DailyBalance).where(DailyBalance.bank_account_id == bank_account_id)
        )
        return result.rowcount or 0

    # ==========================================================================
    # Helpers
    # ==========================================================================

    def _dialect_insert(self):
        """Pick the INSERT construct that supports ON CONFLICT for this backend."""
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert
        if dialect == "sqlite":
            return sqlite.insert
        raise NotImplementedError(f"Daily balance upsert is not supported on {dialect}")
