"""Chunked, progressive transaction classification.

Pipeline
--------
- Snapshot personalization context once (learned rules, category settings).
- Partition the input into fixed-size chunks and classify them one at a time.
- Merge each chunk's answer by transaction id; an unmatched id becomes
  ``"Other"``.
- A chunk whose classifier call fails is not retried here and never aborts
  the batch: every transaction in it becomes ``"Other"`` with no
  discretionary flag and no provenance, and the chunk is flagged degraded.

:func:`iter_classify` yields one :class:`ChunkProgress` per chunk. Work only
advances when the consumer asks for the next event, so closing the generator
is a clean cancellation point. :func:`classify` drives the generator to
completion and reports through a plain callback.
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Protocol

from .categories import DEFAULT_CATEGORY
from .classifier import ChunkClassification, ClassificationContext, Classifier
from .logging_setup import get_logger
from .models import Transaction, UserRule

CHUNK_SIZE: int = 50

_logger = get_logger("spendwise.classify")


@dataclass(frozen=True, slots=True)
class ChunkProgress:
    """Progress event emitted after each chunk (success or fallback)."""

    percent: int
    chunk_index: int
    chunk_count: int
    transactions: tuple[Transaction, ...]
    degraded: bool = False
    error: str | None = None


class PreferenceSource(Protocol):
    def get_user_rules(self, user_id: str) -> list[UserRule]: ...

    def get_category_settings(self, user_id: str) -> dict[str, bool]: ...


ProgressCallback = Callable[[int, list[Transaction]], None]


def load_context(user_id: str, preferences: PreferenceSource | None) -> ClassificationContext:
    """Read the user's personalization context once; ``None`` means none."""

    if preferences is None:
        return ClassificationContext()
    rules = tuple(preferences.get_user_rules(user_id))
    settings = dict(preferences.get_category_settings(user_id))
    return ClassificationContext(rules=rules, category_settings=settings)


def _paginate(items: Sequence[Transaction], size: int) -> Iterator[Sequence[Transaction]]:
    for i in range(0, len(items), size):
        yield items[i : i + size]


def _percent(done: int, total: int) -> int:
    # Half-up rounding; the final chunk always yields exactly 100.
    return int(math.floor(100 * done / total + 0.5))


def _apply_answer(
    chunk: Sequence[Transaction], answer: ChunkClassification
) -> tuple[Transaction, ...]:
    sources = tuple(answer.sources) or None
    out: list[Transaction] = []
    for tx in chunk:
        decision = answer.decisions.get(tx.id)
        if decision is None:
            out.append(
                tx.model_copy(
                    update={
                        "category": DEFAULT_CATEGORY,
                        "discretionary": None,
                        "grounding_sources": None,
                    }
                )
            )
            continue
        out.append(
            tx.model_copy(
                update={
                    "category": decision.category,
                    "discretionary": (
                        True if decision.discretionary is None else decision.discretionary
                    ),
                    "grounding_sources": sources,
                }
            )
        )
    return tuple(out)


def _fallback(chunk: Sequence[Transaction]) -> tuple[Transaction, ...]:
    return tuple(
        tx.model_copy(
            update={
                "category": DEFAULT_CATEGORY,
                "discretionary": None,
                "grounding_sources": None,
            }
        )
        for tx in chunk
    )


def iter_classify(
    transactions: Sequence[Transaction],
    user_id: str,
    *,
    classifier: Classifier,
    preferences: PreferenceSource | None = None,
    chunk_size: int = CHUNK_SIZE,
) -> Iterator[ChunkProgress]:
    """Classify ``transactions`` chunk by chunk, yielding a progress event per chunk.

    Empty input yields nothing and performs no store or network access.
    Raises ``ValueError`` for a non-positive ``chunk_size``.
    """

    if chunk_size <= 0:
        raise ValueError("chunk_size must be a positive integer")
    items = list(transactions)
    if not items:
        return

    context = load_context(user_id, preferences)
    total = len(items)
    chunk_count = math.ceil(total / chunk_size)
    processed = 0

    for idx, chunk in enumerate(_paginate(items, chunk_size)):
        t0 = time.perf_counter()
        try:
            answer = classifier.classify_chunk([tx.classifier_view() for tx in chunk], context)
        except Exception as e:
            error = f"{e.__class__.__name__}: {e}"
            _logger.error(
                "classify:chunk_failed chunk_index=%d num_transactions=%d latency_ms=%.2f error=%s",
                idx,
                len(chunk),
                (time.perf_counter() - t0) * 1000.0,
                error,
            )
            results = _fallback(chunk)
            degraded = True
        else:
            _logger.info(
                "classify:chunk_done chunk_index=%d num_transactions=%d latency_ms=%.2f",
                idx,
                len(chunk),
                (time.perf_counter() - t0) * 1000.0,
            )
            results = _apply_answer(chunk, answer)
            degraded = False
            error = None

        processed += len(chunk)
        yield ChunkProgress(
            percent=_percent(processed, total),
            chunk_index=idx,
            chunk_count=chunk_count,
            transactions=results,
            degraded=degraded,
            error=error,
        )


def classify(
    transactions: Sequence[Transaction],
    user_id: str,
    *,
    classifier: Classifier,
    preferences: PreferenceSource | None = None,
    on_progress: ProgressCallback | None = None,
    chunk_size: int = CHUNK_SIZE,
) -> list[Transaction]:
    """Classify every transaction; always returns one result per input.

    ``on_progress(percent, chunk_results)`` runs synchronously after each
    chunk, including chunks that fell back to ``"Other"``.
    """

    out: list[Transaction] = []
    for event in iter_classify(
        transactions,
        user_id,
        classifier=classifier,
        preferences=preferences,
        chunk_size=chunk_size,
    ):
        out.extend(event.transactions)
        if on_progress is not None:
            on_progress(event.percent, list(event.transactions))
    return out


def summarize_categories(transactions: Sequence[Transaction]) -> Mapping[str, int]:
    """Count transactions per effective category (used for run summaries)."""

    counts: dict[str, int] = {}
    for tx in transactions:
        counts[tx.effective_category] = counts.get(tx.effective_category, 0) + 1
    return counts


__all__ = [
    "CHUNK_SIZE",
    "ChunkProgress",
    "PreferenceSource",
    "classify",
    "iter_classify",
    "load_context",
    "summarize_categories",
]
