"""
Tests for the Balance Projection Engine.

The engine only talks to its repository, so these tests run against an
in-memory fake instead of a database.
"""

import pytest
from datetime import date, timedelta
from decimal import Decimal
from types import SimpleNamespace

from projections.balances import engine
from projections.balances.types import AnchorBalance, BalanceType
from projections.data.events.models import CertaintyLevel, EventType
from projections.errors import InvalidDateRangeError


# =============================================================================
# Fixtures
# =============================================================================

class FakeRepository:
    """In-memory stand-in for BalanceRepository."""

    def __init__(self, events=None, transactions=None):
        self.events = list(events or [])
        # (date, balance) in statement order
        self.transactions = list(transactions or [])
        self.upserts = []
        self.cache = {}

    async def get_projected_events(self, bank_account_id, start_date, end_date):
        return [
            e for e in self.events
            if e.bank_account_id == bank_account_id and start_date <= e.date <= end_date
        ]

    async def get_last_transaction_balance_on_or_before(self, bank_account_id, on_or_before):
        candidates = [t for t in self.transactions if t[0] <= on_or_before]
        if not candidates:
            return None
        # Stable sort keeps statement order for same-day rows
        day, balance = sorted(candidates, key=lambda t: t[0])[-1]
        return AnchorBalance(balance=Decimal(balance), date=day)

    async def batch_upsert_daily_balances(self, bank_account_id, rows):
        self.upserts.append(list(rows))
        for row in rows:
            self.cache[(row.date, bank_account_id)] = row.expected_balance
        return len(rows)


def make_event(day, value, event_type=EventType.EXPENSE, certainty=CertaintyLevel.CERTAIN,
               decision_path_id=None, bank_account_id="acct_1"):
    return SimpleNamespace(
        date=day,
        value=Decimal(value),
        type=event_type,
        certainty=certainty,
        decision_path_id=decision_path_id,
        bank_account_id=bank_account_id,
    )


def balances_of(points):
    return [p.expected_balance for p in points]


@pytest.fixture
def example_repo():
    """Anchor 500 on 2025-01-10 with a mix of events."""
    return FakeRepository(
        events=[
            make_event(date(2025, 1, 12), "50"),
            make_event(date(2025, 1, 15), "200", EventType.INCOMING, CertaintyLevel.LIKELY),
            make_event(date(2025, 1, 15), "30", certainty=CertaintyLevel.UNLIKELY),
        ],
        transactions=[(date(2025, 1, 10), "500")],
    )


# =============================================================================
# Unit Tests - Event filtering
# =============================================================================

class TestEventContributes:
    """Tests for which events take part in a run."""

    def test_unlikely_never_counts(self):
        event = make_event(date(2025, 1, 1), "10", certainty=CertaintyLevel.UNLIKELY)
        assert engine.event_contributes(event) is False
        assert engine.event_contributes(event, set()) is False

    def test_untagged_event_counts_with_any_filter(self):
        event = make_event(date(2025, 1, 1), "10")
        assert engine.event_contributes(event, {"path_a"}) is True
        assert engine.event_contributes(event, set()) is True

    def test_tagged_event_needs_enabled_path(self):
        event = make_event(date(2025, 1, 1), "10", decision_path_id="path_a")
        assert engine.event_contributes(event) is True
        assert engine.event_contributes(event, {"path_a"}) is True
        assert engine.event_contributes(event, {"path_b"}) is False

    def test_signed_value(self):
        assert engine.signed_value(make_event(date(2025, 1, 1), "10", EventType.INCOMING)) == Decimal("10")
        assert engine.signed_value(make_event(date(2025, 1, 1), "10", EventType.EXPENSE)) == Decimal("-10")


# =============================================================================
# Unit Tests - Starting balance
# =============================================================================

class TestResolveStartingBalance:
    """Tests for anchor resolution."""

    @pytest.mark.asyncio
    async def test_no_history_starts_from_zero(self):
        anchor = await engine.resolve_starting_balance(FakeRepository(), date(2025, 3, 1), "acct_1")
        assert anchor == AnchorBalance(balance=Decimal("0"), date=date(2025, 3, 1))

    @pytest.mark.asyncio
    async def test_uses_latest_transaction_on_or_before(self):
        repo = FakeRepository(transactions=[
            (date(2025, 1, 5), "100"),
            (date(2025, 1, 20), "300"),
            (date(2025, 2, 1), "900"),
        ])
        anchor = await engine.resolve_starting_balance(repo, date(2025, 1, 25), "acct_1")
        assert anchor == AnchorBalance(balance=Decimal("300"), date=date(2025, 1, 20))

    @pytest.mark.asyncio
    async def test_override_date_moves_the_anchor(self):
        repo = FakeRepository(transactions=[
            (date(2025, 1, 5), "100"),
            (date(2025, 1, 20), "300"),
        ])
        anchor = await engine.resolve_starting_balance(
            repo, date(2025, 1, 25), "acct_1", anchor_override_date=date(2025, 1, 10)
        )
        assert anchor == AnchorBalance(balance=Decimal("100"), date=date(2025, 1, 5))


# =============================================================================
# Unit Tests - Forward replay
# =============================================================================

class TestReplay:
    """Tests for the day-by-day replay."""

    @pytest.mark.asyncio
    async def test_worked_example(self, example_repo):
        points = await engine.replay_balances(
            example_repo, date(2025, 1, 10), date(2025, 1, 16), "acct_1"
        )

        assert [p.date for p in points] == [date(2025, 1, 10) + timedelta(days=i) for i in range(7)]
        assert balances_of(points) == [
            Decimal(v) for v in ("500", "500", "450", "450", "450", "650", "650")
        ]

    @pytest.mark.asyncio
    async def test_replay_is_deterministic(self, example_repo):
        first = await engine.replay_balances(example_repo, date(2025, 1, 10), date(2025, 1, 16), "acct_1")
        second = await engine.replay_balances(example_repo, date(2025, 1, 10), date(2025, 1, 16), "acct_1")
        assert first == second

    @pytest.mark.asyncio
    async def test_anchor_balance_holds_without_events(self):
        repo = FakeRepository(transactions=[(date(2025, 1, 1), "1234.56")])
        points = await engine.replay_balances(repo, date(2025, 1, 1), date(2025, 1, 31), "acct_1")
        assert set(balances_of(points)) == {Decimal("1234.56")}

    @pytest.mark.asyncio
    async def test_events_between_anchor_and_start_are_folded_in(self):
        repo = FakeRepository(
            events=[make_event(date(2025, 1, 5), "100", EventType.INCOMING)],
            transactions=[(date(2025, 1, 1), "1000")],
        )
        points = await engine.replay_balances(repo, date(2025, 1, 10), date(2025, 1, 11), "acct_1")

        assert [p.date for p in points] == [date(2025, 1, 10), date(2025, 1, 11)]
        assert balances_of(points) == [Decimal("1100"), Decimal("1100")]

    @pytest.mark.asyncio
    async def test_cold_start(self):
        repo = FakeRepository(events=[make_event(date(2025, 1, 1), "100", EventType.INCOMING)])
        points = await engine.replay_balances(repo, date(2025, 1, 1), date(2025, 1, 5), "acct_1")
        assert set(balances_of(points)) == {Decimal("100")}

    @pytest.mark.asyncio
    async def test_decision_path_filter(self):
        repo = FakeRepository(events=[
            make_event(date(2025, 1, 2), "100", EventType.INCOMING),
            make_event(date(2025, 1, 2), "40", decision_path_id="path_car"),
            make_event(date(2025, 1, 3), "10", decision_path_id="path_holiday"),
        ])

        everything = await engine.replay_balances(repo, date(2025, 1, 1), date(2025, 1, 3), "acct_1")
        car_only = await engine.replay_balances(
            repo, date(2025, 1, 1), date(2025, 1, 3), "acct_1", enabled_decision_path_ids={"path_car"}
        )
        nothing = await engine.replay_balances(
            repo, date(2025, 1, 1), date(2025, 1, 3), "acct_1", enabled_decision_path_ids=set()
        )

        assert balances_of(everything) == [Decimal("0"), Decimal("60"), Decimal("50")]
        assert balances_of(car_only) == [Decimal("0"), Decimal("60"), Decimal("60")]
        assert balances_of(nothing) == [Decimal("0"), Decimal("100"), Decimal("100")]

    @pytest.mark.asyncio
    async def test_other_accounts_are_ignored(self):
        repo = FakeRepository(events=[
            make_event(date(2025, 1, 1), "100", EventType.INCOMING, bank_account_id="acct_2"),
        ])
        points = await engine.replay_balances(repo, date(2025, 1, 1), date(2025, 1, 2), "acct_1")
        assert balances_of(points) == [Decimal("0"), Decimal("0")]

    @pytest.mark.asyncio
    async def test_event_count_only_counts_contributing_events(self, example_repo):
        points = await engine.replay_balances(example_repo, date(2025, 1, 15), date(2025, 1, 15), "acct_1")
        assert points[0].event_count == 1

    @pytest.mark.asyncio
    async def test_reversed_range_rejected(self):
        with pytest.raises(InvalidDateRangeError):
            await engine.replay_balances(FakeRepository(), date(2025, 2, 1), date(2025, 1, 1), "acct_1")

    @pytest.mark.asyncio
    async def test_arithmetic_is_exact(self):
        repo = FakeRepository(events=[
            make_event(date(2025, 1, 1), "0.10", EventType.INCOMING),
            make_event(date(2025, 1, 1), "0.20", EventType.INCOMING),
        ])
        points = await engine.replay_balances(repo, date(2025, 1, 1), date(2025, 1, 1), "acct_1")
        assert points[0].expected_balance == Decimal("0.30")


# =============================================================================
# Unit Tests - Cached calculation
# =============================================================================

class TestCalculateDailyBalances:
    """Tests for the cache-writing entry points."""

    @pytest.mark.asyncio
    async def test_upserts_requested_range_only(self, example_repo):
        points = await engine.calculate_daily_balances(
            example_repo, date(2025, 1, 12), date(2025, 1, 16), "acct_1"
        )

        assert len(points) == 5
        assert len(example_repo.upserts) == 1
        assert min(d for d, _ in example_repo.cache) == date(2025, 1, 12)
        assert example_repo.cache[(date(2025, 1, 16), "acct_1")] == Decimal("650")

    @pytest.mark.asyncio
    async def test_repeating_leaves_cache_unchanged(self, example_repo):
        await engine.calculate_daily_balances(example_repo, date(2025, 1, 10), date(2025, 1, 16), "acct_1")
        snapshot = dict(example_repo.cache)

        await engine.recalculate_balances_from(example_repo, date(2025, 1, 10), date(2025, 1, 16), "acct_1")

        assert example_repo.cache == snapshot

    @pytest.mark.asyncio
    async def test_cached_points_are_unclassified(self, example_repo):
        points = await engine.calculate_daily_balances(
            example_repo, date(2025, 1, 10), date(2025, 1, 11), "acct_1"
        )
        assert all(p.balance_type is None for p in points)


# =============================================================================
# Unit Tests - On-the-fly computation
# =============================================================================

class TestComputeOnTheFly:
    """Tests for what-if projections."""

    @pytest.mark.asyncio
    async def test_never_writes(self, example_repo):
        await engine.compute_balances_on_the_fly(
            example_repo, date(2025, 1, 10), date(2025, 1, 16), "acct_1",
            use_true_balance_from_date=date(2025, 1, 10),
        )
        assert example_repo.upserts == []

    @pytest.mark.asyncio
    async def test_classifies_days_against_coverage(self, example_repo):
        points = await engine.compute_balances_on_the_fly(
            example_repo, date(2025, 1, 10), date(2025, 1, 14), "acct_1",
            use_true_balance_from_date=date(2025, 1, 10),
            transaction_coverage_end_date=date(2025, 1, 12),
        )

        assert [p.balance_type for p in points] == [
            BalanceType.TRUE, BalanceType.TRUE, BalanceType.TRUE,
            BalanceType.PROJECTED, BalanceType.PROJECTED,
        ]

    @pytest.mark.asyncio
    async def test_everything_projected_without_coverage(self, example_repo):
        points = await engine.compute_balances_on_the_fly(
            example_repo, date(2025, 1, 10), date(2025, 1, 11), "acct_1",
            use_true_balance_from_date=date(2025, 1, 10),
        )
        assert {p.balance_type for p in points} == {BalanceType.PROJECTED}

    @pytest.mark.asyncio
    async def test_anchor_date_changes_the_projection(self):
        repo = FakeRepository(transactions=[
            (date(2025, 1, 1), "100"),
            (date(2025, 1, 5), "400"),
        ])

        early = await engine.compute_balances_on_the_fly(
            repo, date(2025, 1, 6), date(2025, 1, 6), "acct_1", use_true_balance_from_date=date(2025, 1, 2)
        )
        late = await engine.compute_balances_on_the_fly(
            repo, date(2025, 1, 6), date(2025, 1, 6), "acct_1", use_true_balance_from_date=date(2025, 1, 5)
        )

        assert early[0].expected_balance == Decimal("100")
        assert late[0].expected_balance == Decimal("400")


# =============================================================================
# Unit Tests - Single-day preview
# =============================================================================

class TestCalculateBalanceForDay:

    @pytest.mark.asyncio
    async def test_applies_only_that_days_events(self, example_repo):
        preview = await engine.calculate_balance_for_day(
            example_repo, date(2025, 1, 15), Decimal("450"), "acct_1"
        )

        assert preview.expected_balance == Decimal("650")
        assert len(preview.events) == 1
        assert preview.events[0].type == EventType.INCOMING

    @pytest.mark.asyncio
    async def test_quiet_day_keeps_balance(self, example_repo):
        preview = await engine.calculate_balance_for_day(
            example_repo, date(2025, 1, 20), Decimal("650"), "acct_1"
        )
        assert preview.expected_balance == Decimal("650")
        assert preview.events == []
