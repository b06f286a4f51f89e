"""
Balance Projection Engine.

Computes the expected end-of-day balance of a bank account over a date
range by anchoring on the latest real transaction balance and replaying
projected events forward one day at a time.

Two callers share one replay:
- cached calculation: results are upserted into ``daily_balances``
  (triggered after every event, rule or transaction change)
- on-the-fly computation: results are returned only, classified as
  "true" (inside transaction coverage) or "projected" (what-if previews)

The engine never talks to the database directly. It is handed a repository
exposing ``get_projected_events``,
``get_last_transaction_balance_on_or_before`` and
``batch_upsert_daily_balances``.
"""
import logging
from collections import defaultdict
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Set

from projections.balances.types import (
    AnchorBalance,
    BalanceType,
    DailyBalancePoint,
    DayPreview,
)
from projections.data.events.models import CertaintyLevel, EventType
from projections.errors import InvalidDateRangeError

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def _to_day(value) -> date:
    """Normalise a date or datetime to its calendar day."""
    if isinstance(value, datetime):
        return value.date()
    return value


def _iter_days(start: date, end: date) -> Iterable[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


# =============================================================================
# Event filtering
# =============================================================================

def event_contributes(event, enabled_decision_path_ids: Optional[Set[str]] = None) -> bool:
    """
    Decide whether an event takes part in a projection run.

    UNLIKELY events never count. When a decision-path filter is given, an
    event tagged with a path outside the filter is skipped; untagged events
    always count.
    """
    if event.certainty == CertaintyLevel.UNLIKELY:
        return False
    if enabled_decision_path_ids is not None and event.decision_path_id:
        return event.decision_path_id in enabled_decision_path_ids
    return True


def signed_value(event) -> Decimal:
    """+value for INCOMING, -value for EXPENSE."""
    value = Decimal(event.value)
    return value if event.type == EventType.INCOMING else -value


# =============================================================================
# Starting balance
# =============================================================================

async def resolve_starting_balance(
    repo,
    start_date: date,
    bank_account_id: str,
    anchor_override_date: Optional[date] = None,
) -> AnchorBalance:
    """
    Find the balance and date to start the forward replay from.

    Looks up the latest transaction balance on or before the override date
    (or ``start_date`` when no override is given). An account with no
    history at all starts from zero on ``start_date``.
    """
    start_date = _to_day(start_date)
    effective_date = _to_day(anchor_override_date) if anchor_override_date else start_date

    anchor = await repo.get_last_transaction_balance_on_or_before(bank_account_id, effective_date)
    if anchor is None:
        logger.debug(f"No transaction history for {bank_account_id}; starting from zero on {start_date}")
        return AnchorBalance(balance=ZERO, date=start_date)

    logger.debug(f"Anchoring {bank_account_id} on {anchor.balance} at {anchor.date}")
    return AnchorBalance(balance=Decimal(anchor.balance), date=_to_day(anchor.date))


# =============================================================================
# Forward replay
# =============================================================================

async def replay_balances(
    repo,
    start_date: date,
    end_date: date,
    bank_account_id: str,
    enabled_decision_path_ids: Optional[Set[str]] = None,
    anchor_override_date: Optional[date] = None,
    classify: bool = False,
    transaction_coverage_end_date: Optional[date] = None,
) -> List[DailyBalancePoint]:
    """
    Replay events day by day from the anchor through ``end_date``.

    The walk may begin before ``start_date`` (when the anchor is older) so
    that events between the anchor and the requested start are folded into
    the running balance; only days inside ``[start_date, end_date]`` are
    returned.

    Args:
        repo: Persistence interface
        start_date: First day to return (inclusive)
        end_date: Last day to return (inclusive)
        bank_account_id: Account to project
        enabled_decision_path_ids: Optional decision-path filter
        anchor_override_date: Force the anchor lookup to this date
        classify: Tag each day as "true"/"projected"
        transaction_coverage_end_date: Last day covered by real transactions

    Returns:
        One DailyBalancePoint per requested day, ascending
    """
    start = _to_day(start_date)
    end = _to_day(end_date)
    if start > end:
        raise InvalidDateRangeError(start, end)

    anchor = await resolve_starting_balance(repo, start, bank_account_id, anchor_override_date)
    window_start = min(anchor.date, start)

    events = await repo.get_projected_events(bank_account_id, window_start, end)

    events_by_day: Dict[date, list] = defaultdict(list)
    for event in events:
        events_by_day[_to_day(event.date)].append(event)

    coverage_end = _to_day(transaction_coverage_end_date) if transaction_coverage_end_date else None

    current_balance = anchor.balance
    points: List[DailyBalancePoint] = []

    for day in _iter_days(window_start, end):
        day_impact = ZERO
        event_count = 0

        for event in events_by_day.get(day, ()):
            if not event_contributes(event, enabled_decision_path_ids):
                continue
            day_impact += signed_value(event)
            event_count += 1

        day_balance = current_balance + day_impact
        current_balance = day_balance

        if day < start:
            continue

        point = DailyBalancePoint(
            date=day,
            expected_balance=day_balance,
            event_count=event_count,
        )
        if classify:
            is_true = coverage_end is not None and day <= coverage_end
            point.balance_type = BalanceType.TRUE if is_true else BalanceType.PROJECTED
        points.append(point)

    return points


# =============================================================================
# Public entry points
# =============================================================================

async def calculate_daily_balances(
    repo,
    start_date: date,
    end_date: date,
    bank_account_id: str,
    enabled_decision_path_ids: Optional[Set[str]] = None,
) -> List[DailyBalancePoint]:
    """
    Calculate daily balances and upsert them into the cache.

    Every call fully overwrites the cached rows of the range, so repeating
    it with unchanged inputs leaves the cache unchanged.
    """
    points = await replay_balances(
        repo,
        start_date,
        end_date,
        bank_account_id,
        enabled_decision_path_ids=enabled_decision_path_ids,
    )
    await repo.batch_upsert_daily_balances(bank_account_id, points)

    logger.info(
        f"Cached {len(points)} daily balances for {bank_account_id} "
        f"({_to_day(start_date)} to {_to_day(end_date)})"
    )
    return points


async def recalculate_balances_from(
    repo,
    from_date: date,
    to_date: date,
    bank_account_id: str,
    enabled_decision_path_ids: Optional[Set[str]] = None,
) -> List[DailyBalancePoint]:
    """Recalculate cached balances after events, rules or transactions changed."""
    return await calculate_daily_balances(
        repo, from_date, to_date, bank_account_id, enabled_decision_path_ids
    )


async def compute_balances_on_the_fly(
    repo,
    start_date: date,
    end_date: date,
    bank_account_id: str,
    use_true_balance_from_date: date,
    enabled_decision_path_ids: Optional[Set[str]] = None,
    transaction_coverage_end_date: Optional[date] = None,
) -> List[DailyBalancePoint]:
    """
    Compute balances without touching the cache.

    The caller picks which point of transaction history to anchor on through
    ``use_true_balance_from_date``, which lets two projections anchored at
    different known-good dates be compared side by side.
    """
    return await replay_balances(
        repo,
        start_date,
        end_date,
        bank_account_id,
        enabled_decision_path_ids=enabled_decision_path_ids,
        anchor_override_date=use_true_balance_from_date,
        classify=True,
        transaction_coverage_end_date=transaction_coverage_end_date,
    )


async def calculate_balance_for_day(
    repo,
    day: date,
    previous_balance: Decimal,
    bank_account_id: str,
    enabled_decision_path_ids: Optional[Set[str]] = None,
) -> DayPreview:
    """Apply one day's contributing events to ``previous_balance``."""
    day = _to_day(day)
    events = await repo.get_projected_events(bank_account_id, day, day)

    relevant = [e for e in events if event_contributes(e, enabled_decision_path_ids)]
    balance = Decimal(previous_balance) + sum((signed_value(e) for e in relevant), ZERO)

    return DayPreview(expected_balance=balance, events=relevant)
