from collections.abc import Mapping, Sequence
from typing import Any

import pytest

from spendwise.classification import Decision
from spendwise.classifier import ChunkClassification, ClassificationContext
from spendwise.classify import CHUNK_SIZE, classify, iter_classify, load_context
from spendwise.models import GroundingSource, Transaction, UserRule

# ---- Fakes -------------------------------------------------------------------


class FakeClassifier:
    """Answer every item as Shopping; fail chunks listed in ``fail_on``."""

    def __init__(
        self,
        *,
        fail_on: Sequence[int] = (),
        sources: tuple[GroundingSource, ...] = (),
        drop_ids: Sequence[str] = (),
        discretionary: bool | None = False,
    ) -> None:
        self.fail_on = set(fail_on)
        self.sources = sources
        self.drop_ids = set(drop_ids)
        self.discretionary = discretionary
        self.calls: list[tuple[list[Mapping[str, Any]], ClassificationContext]] = []

    def classify_chunk(self, items, context):
        idx = len(self.calls)
        self.calls.append((list(items), context))
        if idx in self.fail_on:
            raise RuntimeError(f"boom on chunk {idx}")
        decisions = {
            str(item["id"]): Decision(category="Shopping", discretionary=self.discretionary)
            for item in items
            if item["id"] not in self.drop_ids
        }
        return ChunkClassification(decisions=decisions, sources=self.sources)


class FakePreferences:
    def __init__(self) -> None:
        self.rule_reads = 0
        self.setting_reads = 0

    def get_user_rules(self, user_id: str) -> list[UserRule]:
        self.rule_reads += 1
        return [UserRule(merchant_pattern="ACME", preferred_category="Travel")]

    def get_category_settings(self, user_id: str) -> dict[str, bool]:
        self.setting_reads += 1
        return {"Travel": True}


def _txs(n: int) -> list[Transaction]:
    return [
        Transaction(
            id=f"t{i}",
            date="2024-02-10",
            description=f"Merchant {i}",
            amount=-(i + 1) - 0.5,
        )
        for i in range(n)
    ]


# ---- Completeness and fallback -----------------------------------------------


@pytest.mark.parametrize("n", [1, 3, 49, 50, 51, 120])
def test_every_input_id_appears_exactly_once(n):
    clf = FakeClassifier(fail_on=[1])
    out = classify(_txs(n), "u1", classifier=clf)
    assert len(out) == n
    assert sorted(t.id for t in out) == sorted(f"t{i}" for i in range(n))


def test_failed_chunk_falls_back_to_other_and_later_chunks_still_run():
    txs = _txs(9)
    clf = FakeClassifier(fail_on=[0], sources=(GroundingSource(title="A", uri="https://a"),))
    out = classify(txs, "u1", classifier=clf, chunk_size=3)

    by_id = {t.id: t for t in out}
    for i in range(3):
        tx = by_id[f"t{i}"]
        assert tx.category == "Other"
        assert tx.discretionary is None
        assert tx.grounding_sources is None
    for i in range(3, 9):
        tx = by_id[f"t{i}"]
        assert tx.category == "Shopping"
        assert tx.grounding_sources == (GroundingSource(title="A", uri="https://a"),)
    assert len(clf.calls) == 3


def test_unmatched_id_defaults_to_other():
    out = classify(_txs(3), "u1", classifier=FakeClassifier(drop_ids=["t1"]))
    by_id = {t.id: t for t in out}
    assert by_id["t1"].category == "Other"
    assert by_id["t1"].grounding_sources is None
    assert by_id["t0"].category == "Shopping"


def test_missing_discretionary_flag_defaults_true_and_no_sources_left_unset():
    out = classify(_txs(2), "u1", classifier=FakeClassifier(discretionary=None))
    assert all(t.discretionary is True for t in out)
    assert all(t.grounding_sources is None for t in out)


def test_amount_sign_is_preserved():
    tx = Transaction(id="x", date="2024-01-01", description="Shop", amount=-42.50)
    (out,) = classify([tx], "u1", classifier=FakeClassifier())
    assert out.amount == -42.50


def test_only_id_description_amount_reach_the_classifier():
    clf = FakeClassifier()
    classify(_txs(2), "u1", classifier=clf)
    items, _ctx = clf.calls[0]
    assert all(set(item) == {"id", "description", "amount"} for item in items)


# ---- Progress ----------------------------------------------------------------


def test_progress_is_monotonic_and_ends_at_100_even_with_failures():
    seen: list[tuple[int, int]] = []
    classify(
        _txs(7),
        "u1",
        classifier=FakeClassifier(fail_on=[1, 2]),
        chunk_size=3,
        on_progress=lambda pct, chunk: seen.append((pct, len(chunk))),
    )
    assert seen == [(43, 3), (86, 3), (100, 1)]


def test_progress_uses_half_up_rounding():
    # 1/8 = 12.5% rounds up to 13.
    events = list(iter_classify(_txs(8), "u1", classifier=FakeClassifier(), chunk_size=1))
    assert events[0].percent == 13
    assert events[-1].percent == 100
    assert [e.chunk_index for e in events] == list(range(8))
    assert all(e.chunk_count == 8 for e in events)


def test_degraded_events_carry_error_description():
    events = list(
        iter_classify(_txs(4), "u1", classifier=FakeClassifier(fail_on=[0]), chunk_size=2)
    )
    assert events[0].degraded is True
    assert events[0].error == "RuntimeError: boom on chunk 0"
    assert events[1].degraded is False
    assert events[1].error is None


def test_default_chunk_size_is_50():
    clf = FakeClassifier()
    classify(_txs(CHUNK_SIZE + 1), "u1", classifier=clf)
    assert [len(items) for items, _ in clf.calls] == [50, 1]


# ---- Context and edge cases --------------------------------------------------


def test_empty_input_makes_no_calls_and_reads_no_context():
    clf = FakeClassifier()
    prefs = FakePreferences()
    seen: list[int] = []
    out = classify(
        [], "u1", classifier=clf, preferences=prefs, on_progress=lambda p, c: seen.append(p)
    )
    assert out == []
    assert clf.calls == []
    assert seen == []
    assert prefs.rule_reads == 0 and prefs.setting_reads == 0


def test_context_is_read_once_and_shared_by_all_chunks():
    clf = FakeClassifier()
    prefs = FakePreferences()
    classify(_txs(5), "u1", classifier=clf, preferences=prefs, chunk_size=2)
    assert prefs.rule_reads == 1 and prefs.setting_reads == 1
    contexts = [ctx for _items, ctx in clf.calls]
    assert len(contexts) == 3
    assert all(ctx is contexts[0] for ctx in contexts)
    assert contexts[0].rules == (UserRule(merchant_pattern="ACME", preferred_category="Travel"),)
    assert dict(contexts[0].category_settings) == {"Travel": True}


def test_load_context_without_preferences_is_empty():
    ctx = load_context("u1", None)
    assert ctx.rules == ()
    assert dict(ctx.category_settings) == {}


def test_closing_the_stream_stops_before_the_next_chunk():
    clf = FakeClassifier()
    stream = iter_classify(_txs(10), "u1", classifier=clf, chunk_size=2)
    first = next(stream)
    assert first.percent == 20
    stream.close()
    assert len(clf.calls) == 1


def test_non_positive_chunk_size_rejected():
    with pytest.raises(ValueError):
        classify(_txs(2), "u1", classifier=FakeClassifier(), chunk_size=0)
