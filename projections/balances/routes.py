"""
Balance API routes.

- calculate: recompute and cache a range
- compute: what-if projection anchored at a chosen date, never cached
- daily: read the cache
- preview-day: one day on top of a supplied balance
"""
from datetime import date
from typing import List, Optional, Set

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from projections.balances import engine
from projections.balances.repository import BalanceRepository
from projections.balances.schemas import (
    CalculateBalancesRequest,
    CalculateBalancesResponse,
    ComputeBalancesRequest,
    ComputeBalancesResponse,
    ComputedBalance,
    DailyBalanceResponse,
    PreviewDayRequest,
    PreviewDayResponse,
)
from projections.database import get_db
from projections.data.bank_accounts.models import BankAccount
from projections.data.decision_paths.models import ScenarioSet
from projections.data.events.schemas import ProjectedEventResponse

router = APIRouter()


async def _require_account(db: AsyncSession, bank_account_id: str) -> None:
    if not await db.get(BankAccount, bank_account_id):
        raise HTTPException(status_code=404, detail="Bank account not found")


def _as_filter(ids: Optional[List[str]]) -> Optional[Set[str]]:
    return set(ids) if ids is not None else None


@router.post("/calculate", response_model=CalculateBalancesResponse)
async def calculate_balances(
    data: CalculateBalancesRequest,
    db: AsyncSession = Depends(get_db)
):
    """Recalculate cached daily balances for a range."""
    await _require_account(db, data.bank_account_id)

    points = await engine.calculate_daily_balances(
        BalanceRepository(db),
        data.start_date,
        data.end_date,
        data.bank_account_id,
        _as_filter(data.enabled_decision_path_ids),
    )

    return CalculateBalancesResponse(
        bank_account_id=data.bank_account_id,
        start_date=data.start_date,
        end_date=data.end_date,
        days_calculated=len(points),
        message=(
            f"Balances calculated successfully from {data.start_date.isoformat()} "
            f"to {data.end_date.isoformat()}"
        ),
    )


@router.post("/compute", response_model=ComputeBalancesResponse)
async def compute_balances(
    data: ComputeBalancesRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Compute daily balances on the fly without storing them.

    Days up to the last transaction are tagged "true", later days
    "projected".
    """
    await _require_account(db, data.bank_account_id)

    enabled_ids = _as_filter(data.enabled_decision_path_ids)
    if data.scenario_set_id:
        scenario_set = await db.get(ScenarioSet, data.scenario_set_id)
        if not scenario_set:
            raise HTTPException(status_code=404, detail="Scenario set not found")
        enabled_ids = scenario_set.enabled_decision_path_ids

    repo = BalanceRepository(db)
    starting = await engine.resolve_starting_balance(
        repo, data.start_date, data.bank_account_id, data.use_true_balance_from_date
    )
    coverage = await repo.get_transaction_coverage(data.bank_account_id)

    points = await engine.compute_balances_on_the_fly(
        repo,
        data.start_date,
        data.end_date,
        data.bank_account_id,
        data.use_true_balance_from_date,
        enabled_ids,
        coverage.latest_covered_date,
    )

    return ComputeBalancesResponse(
        starting_balance=starting.balance,
        starting_date=starting.date,
        balances=[
            ComputedBalance(
                date=point.date,
                expected_balance=point.expected_balance,
                event_count=point.event_count,
                balance_type=point.balance_type,
            )
            for point in points
        ],
        days_computed=len(points),
    )


@router.get("/daily", response_model=List[DailyBalanceResponse])
async def get_daily_balances(
    bank_account_id: str = Query(...),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    on_date: Optional[date] = Query(None, alias="date"),
    db: AsyncSession = Depends(get_db)
):
    """Cached daily balances for a range, or for a single ``date``."""
    if on_date:
        start_date = end_date = on_date
    if not start_date or not end_date:
        raise HTTPException(status_code=400, detail="Provide either date or start_date and end_date")
    if start_date > end_date:
        raise HTTPException(status_code=400, detail="start_date must be on or before end_date")

    balances = await BalanceRepository(db).get_daily_balances(bank_account_id, start_date, end_date)
    if on_date and not balances:
        raise HTTPException(status_code=404, detail="Daily balance not found for this date and bank account")
    return balances


@router.post("/preview-day", response_model=PreviewDayResponse)
async def preview_day(
    data: PreviewDayRequest,
    db: AsyncSession = Depends(get_db)
):
    """Expected balance of one day given the previous day's balance."""
    preview = await engine.calculate_balance_for_day(
        BalanceRepository(db),
        data.date,
        data.previous_balance,
        data.bank_account_id,
        _as_filter(data.enabled_decision_path_ids),
    )
    return PreviewDayResponse(
        expected_balance=preview.expected_balance,
        events=[ProjectedEventResponse.model_validate(event) for event in preview.events],
    )
