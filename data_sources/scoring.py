"""
Data Sources - Scoring Policy.

============================================================
SCORING MODEL
============================================================

A domain's ranking heuristics live in a declarative table:

    ScoringPolicy([
        ScoringRule("free", 2, lambda rec, ctx: rec.payload.price.free),
        ScoringRule("soon", 2, within_hours(72)),
    ])

- Each rule adds its points when its predicate holds
- Predicates see only the record and the ScoringContext
  (reference time), so scores are deterministic
- Weights are policy, not algorithm: replace the table freely

============================================================
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, Optional

from data_sources.models import DomainRecord


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoringContext:
    """Inputs to a scoring rule besides the record itself."""
    reference_time: datetime


Predicate = Callable[[DomainRecord, ScoringContext], bool]


@dataclass(frozen=True)
class ScoringRule:
    """Adds points when predicate(record, context) is true."""
    name: str
    points: float
    predicate: Predicate

    def apply(self, record: DomainRecord, context: ScoringContext) -> float:
        try:
            return self.points if self.predicate(record, context) else 0.0
        except (AttributeError, TypeError, ValueError) as e:
            # Rule does not apply to this payload shape
            logger.debug(f"Scoring rule '{self.name}' skipped for {record.identity_key}: {e}")
            return 0.0


@dataclass(frozen=True)
class CountingRule:
    """Adds points_each for every match counted by counter(record)."""
    name: str
    points_each: float
    counter: Callable[[DomainRecord], int]

    def apply(self, record: DomainRecord, context: ScoringContext) -> float:
        try:
            return self.points_each * self.counter(record)
        except (AttributeError, TypeError, ValueError) as e:
            logger.debug(f"Scoring rule '{self.name}' skipped for {record.identity_key}: {e}")
            return 0.0


@dataclass(frozen=True)
class ScoringPolicy:
    """Ordered rule table summed into one score, optionally capped."""
    rules: tuple[Any, ...] = field(default_factory=tuple)
    max_score: Optional[float] = None

    def __init__(self, rules: Iterable[Any] = (), max_score: Optional[float] = None) -> None:
        object.__setattr__(self, "rules", tuple(rules))
        object.__setattr__(self, "max_score", max_score)

    def points(self, record: DomainRecord, context: ScoringContext) -> float:
        """Policy points for a record (excluding its base score)."""
        return sum(rule.apply(record, context) for rule in self.rules)

    def score(self, record: DomainRecord, context: ScoringContext) -> float:
        """Base score plus policy points, capped at max_score."""
        total = record.score + self.points(record, context)
        if self.max_score is not None:
            total = min(total, self.max_score)
        return round(total, 6)

    def explain(self, record: DomainRecord, context: ScoringContext) -> dict[str, float]:
        """Per-rule contribution, for diagnostics."""
        return {rule.name: rule.apply(record, context) for rule in self.rules}


EMPTY_POLICY = ScoringPolicy()


# =============================================================
# REUSABLE PREDICATES
# =============================================================


def within_hours(hours: float, attribute: str = "timestamp") -> Predicate:
    """True when the record's time lies between now and now + hours."""
    window = timedelta(hours=hours)

    def predicate(record: DomainRecord, context: ScoringContext) -> bool:
        when = getattr(record, attribute)
        if when is None:
            return False
        return timedelta(0) <= when - context.reference_time <= window

    return predicate


def keyword_counter(keywords: Iterable[str], text_of: Callable[[DomainRecord], str]) -> Callable[[DomainRecord], int]:
    """Counts how many distinct keywords occur in text_of(record)."""
    lowered = tuple(k.lower() for k in keywords)

    def counter(record: DomainRecord) -> int:
        text = text_of(record).lower()
        return sum(1 for keyword in lowered if keyword in text)

    return counter
