"""Recompute-on-write hooks called by the mutating data routes."""
from datetime import date
from typing import Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy.ext.asyncio import AsyncSession

from projections.balances.engine import recalculate_balances_from
from projections.balances.repository import BalanceRepository
from projections.config import settings


def horizon_end(from_date: date, months: Optional[int] = None) -> date:
    """End of the lookahead window that starts at ``from_date``."""
    if months is None:
        months = settings.RECALCULATION_HORIZON_MONTHS
    return from_date + relativedelta(months=months)


async def recalculate_after_change(
    db: AsyncSession,
    bank_account_id: str,
    from_date: date,
    to_date: Optional[date] = None,
) -> int:
    """
    Refresh the cached balances an edit may have affected.

    Without ``to_date`` the configured lookahead horizon from ``from_date``
    is used. Returns the number of days rewritten.
    """
    end_date = to_date if to_date is not None else horizon_end(from_date)
    if end_date < from_date:
        from_date, end_date = end_date, from_date

    points = await recalculate_balances_from(
        BalanceRepository(db), from_date, end_date, bank_account_id
    )
    return len(points)
