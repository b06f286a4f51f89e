"""
Balance Engine Types - plain data passed between the engine and its callers.

Nothing here touches the database; the repository converts rows into these.
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional


class BalanceType(str, Enum):
    """Whether a day is backed by real transactions or only projected."""
    TRUE = "true"
    PROJECTED = "projected"


@dataclass(frozen=True)
class AnchorBalance:
    """Known-true balance the forward replay starts from."""
    balance: Decimal
    date: date


@dataclass
class DailyBalancePoint:
    """Expected balance at the end of one day."""
    date: date
    expected_balance: Decimal
    event_count: int = 0
    balance_type: Optional[BalanceType] = None


@dataclass
class DayPreview:
    """Result of previewing a single day on top of a given balance."""
    expected_balance: Decimal
    events: List[Any] = field(default_factory=list)


@dataclass(frozen=True)
class TransactionCoverage:
    """Date span covered by imported transactions for an account."""
    earliest_date: Optional[date]
    latest_covered_date: Optional[date]
    transaction_count: int = 0
