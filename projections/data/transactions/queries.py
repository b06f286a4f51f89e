"""Read queries over imported transaction history."""
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from projections.balances.types import AnchorBalance, TransactionCoverage
from projections.data.transactions.models import TransactionRecord


async def get_last_transaction_balance_on_or_before(
    db: AsyncSession,
    bank_account_id: str,
    on_or_before: date,
) -> Optional[AnchorBalance]:
    """Closing balance of the latest statement row dated on or before a day."""
    result = await db.execute(
        select(TransactionRecord.balance, TransactionRecord.transaction_date)
        .where(
            TransactionRecord.bank_account_id == bank_account_id,
            TransactionRecord.transaction_date <= on_or_before,
        )
        .order_by(
            TransactionRecord.transaction_date.desc(),
            TransactionRecord.sequence.desc(),
            TransactionRecord.created_at.desc(),
        )
        .limit(1)
    )
    row = result.first()
    if row is None:
        return None
    return AnchorBalance(balance=Decimal(row.balance), date=row.transaction_date)


async def get_transaction_coverage(db: AsyncSession, bank_account_id: str) -> TransactionCoverage:
    """Earliest and latest transaction dates for an account."""
    result = await db.execute(
        select(
            func.min(TransactionRecord.transaction_date),
            func.max(TransactionRecord.transaction_date),
            func.count(TransactionRecord.id),
        ).where(TransactionRecord.bank_account_id == bank_account_id)
    )
    earliest, latest, count = result.one()
    return TransactionCoverage(
        earliest_date=earliest,
        latest_covered_date=latest,
        transaction_count=count or 0,
    )


async def get_balance_history(
    db: AsyncSession,
    bank_account_id: str,
    start_date: date,
    end_date: date,
) -> List[AnchorBalance]:
    """
    Closing balance of every day with transactions in a range.

    Rows are walked in statement order; the last row of each day wins.
    """
    result = await db.execute(
        select(TransactionRecord.transaction_date, TransactionRecord.balance)
        .where(
            TransactionRecord.bank_account_id == bank_account_id,
            TransactionRecord.transaction_date >= start_date,
            TransactionRecord.transaction_date <= end_date,
        )
        .order_by(
            TransactionRecord.transaction_date,
            TransactionRecord.sequence,
            TransactionRecord.created_at,
        )
    )

    closing: Dict[date, Decimal] = {}
    for row in result:
        closing[row.transaction_date] = Decimal(row.balance)

    return [AnchorBalance(balance=balance, date=day) for day, balance in sorted(closing.items())]


async def get_transaction_stats(db: AsyncSession, bank_account_id: str) -> Dict[str, Any]:
    """Count and totals of debits/credits for an account."""
    result = await db.execute(
        select(
            func.count(TransactionRecord.id),
            func.coalesce(func.sum(TransactionRecord.debit_amount), 0),
            func.coalesce(func.sum(TransactionRecord.credit_amount), 0),
        ).where(TransactionRecord.bank_account_id == bank_account_id)
    )
    count, total_debits, total_credits = result.one()
    return {
        "total_transactions": count or 0,
        "total_debits": Decimal(str(total_debits)),
        "total_credits": Decimal(str(total_credits)),
    }
