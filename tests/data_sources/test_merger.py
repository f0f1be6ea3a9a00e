"""
Tests for the record merger and scoring policies.

Tests cover:
- Deduplication by identity key, priority order wins
- Ordering: score desc, recency, first-seen
- Failed adapter results contribute no records
- min_score and record filters
- Policy rules: predicates, counters, caps, within_hours
"""

from datetime import timedelta

import pytest

from conftest import NOW, make_record
from data_sources.merger import RecordMerger
from data_sources.models import AdapterResult, ErrorInfo, ErrorKind
from data_sources.scoring import (
    CountingRule,
    ScoringContext,
    ScoringPolicy,
    ScoringRule,
    keyword_counter,
    within_hours,
)


def ok(source, *records):
    return AdapterResult.success(source, list(records))


def failed(source, kind=ErrorKind.HTTP):
    return AdapterResult.failure(source, ErrorInfo(kind=kind, message="boom", source_name=source))


@pytest.fixture
def merger(clock):
    return RecordMerger(clock=clock)


# =============================================================
# TEST: Deduplication and ordering
# =============================================================

class TestMergeOrdering:
    """Dedup and deterministic order."""

    def test_priority_dedup_and_score_order(self, merger):
        """A, B (duplicate of A) and C: higher score first, A's copy kept."""
        results = [
            ok("A", make_record("x1", "A", score=0)),
            ok("B", make_record("x1", "B", score=0)),
            ok("C", make_record("x2", "C", score=5)),
        ]

        merged = merger.merge(results)

        assert [(r.identity_key, r.source_name, r.score) for r in merged] == [
            ("x2", "C", 5.0),
            ("x1", "A", 0.0),
        ]

    def test_duplicate_within_one_source_collapses(self, merger):
        """Repeated keys from one adapter keep the first occurrence."""
        merged = merger.merge([ok("A", make_record("x", "A", score=1), make_record("x", "A", score=9))])
        assert len(merged) == 1
        assert merged[0].score == 1

    def test_newest_first_tie_break(self, clock):
        """Equal scores: more recent timestamp first by default."""
        old = make_record("old", timestamp=NOW - timedelta(hours=2))
        new = make_record("new", timestamp=NOW - timedelta(hours=1))
        merged = RecordMerger(clock=clock).merge([ok("A", old, new)])
        assert [r.identity_key for r in merged] == ["new", "old"]

    def test_soonest_first_tie_break(self, clock):
        """newest_first=False orders ascending (upcoming events)."""
        later = make_record("later", timestamp=NOW + timedelta(days=2))
        sooner = make_record("sooner", timestamp=NOW + timedelta(days=1))
        merged = RecordMerger(newest_first=False, clock=clock).merge([ok("A", later, sooner)])
        assert [r.identity_key for r in merged] == ["sooner", "later"]

    def test_first_seen_breaks_remaining_ties(self, merger):
        """No score or timestamp difference: priority, then source order."""
        merged = merger.merge([
            ok("A", make_record("a1"), make_record("a2")),
            ok("B", make_record("b1")),
        ])
        assert [r.identity_key for r in merged] == ["a1", "a2", "b1"]

    def test_merge_is_deterministic(self, merger):
        """Same input, same output."""
        results = [
            ok("A", make_record("x", score=1), make_record("y", score=3)),
            ok("B", make_record("z", score=2), make_record("x", score=7)),
        ]
        assert merger.merge(results) == merger.merge(results)


# =============================================================
# TEST: Failures and filters
# =============================================================

class TestMergeFailuresAndFilters:
    """Partial input and filtering."""

    def test_failed_results_contribute_nothing(self, merger):
        """One success among failures yields exactly its records."""
        results = [
            failed("A"),
            ok("B", make_record("b1", "B"), make_record("b2", "B")),
            failed("C", ErrorKind.TIMEOUT),
        ]
        merged = merger.merge(results)
        assert {r.identity_key for r in merged} == {"b1", "b2"}
        assert [f.source_name for f in merger.failures(results)] == ["A", "C"]

    def test_all_failed_yields_empty(self, merger):
        """The merger never invents data."""
        assert merger.merge([failed("A"), failed("B")]) == []
        assert merger.merge([]) == []

    def test_min_score_drops_low_records(self, clock):
        """Records scoring below min_score are removed."""
        merger = RecordMerger(min_score=0.3, clock=clock)
        merged = merger.merge([ok("A", make_record("low", score=0.2), make_record("high", score=0.3))])
        assert [r.identity_key for r in merged] == ["high"]

    def test_record_filter(self, clock):
        """record_filter=False removes a record."""
        merger = RecordMerger(record_filter=lambda r: r.identity_key != "drop", clock=clock)
        merged = merger.merge([ok("A", make_record("keep"), make_record("drop"))])
        assert [r.identity_key for r in merged] == ["keep"]


# =============================================================
# TEST: Scoring policy
# =============================================================

class TestScoringPolicy:
    """Rule tables."""

    def test_rules_add_points(self, clock):
        """Matching predicates add their points to the base score."""
        policy = ScoringPolicy([
            ScoringRule("big", 2, lambda r, ctx: r.payload["size"] > 5),
            ScoringRule("red", 1, lambda r, ctx: r.payload["color"] == "red"),
        ])
        record = make_record("x", score=0.5, payload={"size": 7, "color": "blue"})
        context = ScoringContext(reference_time=clock.now())
        assert policy.score(record, context) == 2.5
        assert policy.explain(record, context) == {"big": 2, "red": 0.0}

    def test_rule_errors_score_zero(self, clock):
        """A rule that does not fit the payload shape contributes nothing."""
        policy = ScoringPolicy([ScoringRule("attr", 3, lambda r, ctx: r.payload.missing)])
        assert policy.score(make_record("x", payload={"a": 1}), ScoringContext(clock.now())) == 0

    def test_counting_rule_and_cap(self, clock):
        """Keyword counts add per match; max_score caps the total."""
        counter = keyword_counter(["aloha", "maui", "surf"], lambda r: r.payload["text"])
        policy = ScoringPolicy([CountingRule("kw", 0.4, counter)], max_score=1.0)
        context = ScoringContext(clock.now())

        assert policy.score(make_record("a", payload={"text": "Aloha from Maui"}), context) == 0.8
        assert policy.score(make_record("b", payload={"text": "Aloha Maui surf"}), context) == 1.0

    def test_within_hours(self, clock):
        """within_hours matches from now up to now + window."""
        predicate = within_hours(72)
        context = ScoringContext(clock.now())
        assert predicate(make_record("a", timestamp=NOW + timedelta(hours=71)), context)
        assert not predicate(make_record("b", timestamp=NOW + timedelta(hours=73)), context)
        assert not predicate(make_record("c", timestamp=NOW - timedelta(hours=1)), context)
        assert not predicate(make_record("d"), context)

    def test_merger_applies_policy_before_sorting(self, clock):
        """Policy points change the merged order."""
        policy = ScoringPolicy([ScoringRule("boost", 10, lambda r, ctx: r.identity_key == "b")])
        merged = RecordMerger(policy=policy, clock=clock).merge([
            ok("A", make_record("a", score=5), make_record("b", score=0)),
        ])
        assert [(r.identity_key, r.score) for r in merged] == [("b", 10.0), ("a", 5.0)]
