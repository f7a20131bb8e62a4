"""Result parsing for transaction classification.

The classifier answers with ``{"results": [{"id", "category",
"is_discretionary"}, ...]}``. Parsing is strict about the envelope (a
non-object body or a missing ``results`` list fails the whole chunk) and
lenient per item: an unusable item is dropped, and its transaction is later
treated as unmatched.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

# Prefer Pydantic for shape/typing validation to avoid manual isinstance chains.
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .categories import DEFAULT_CATEGORY, lookup_category
from .logging_setup import get_logger

_logger = get_logger("spendwise.classification")


@dataclass(frozen=True, slots=True)
class Decision:
    """One classifier decision for a single transaction id."""

    category: str
    discretionary: bool | None = None


class _DecisionItem(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    id: str
    category: str | None = None
    is_discretionary: bool | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("id")
    @classmethod
    def _id_non_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("id must be non-empty")
        return v

    @field_validator("category")
    @classmethod
    def _category_in_vocabulary(cls, v: str | None) -> str:
        # Out-of-vocabulary answers stay inside the vocabulary.
        known = lookup_category(v)
        return known.value if known is not None else DEFAULT_CATEGORY


def parse_decisions(body: Mapping[str, Any]) -> dict[str, Decision]:
    """Parse the classifier JSON body into decisions keyed by transaction id.

    Raises ``ValueError`` when the envelope is unusable. Individual malformed
    items are skipped; a repeated id keeps its first decision.
    """

    if not isinstance(body, Mapping):
        raise ValueError("Invalid response: expected a JSON object at top level")
    results = body.get("results")
    if not isinstance(results, list):
        raise ValueError("Invalid response: missing or non-list 'results'")

    out: dict[str, Decision] = {}
    skipped = 0
    for raw in results:
        try:
            item = _DecisionItem.model_validate(raw)
        except ValidationError:
            skipped += 1
            continue
        if item.id in out:
            continue
        out[item.id] = Decision(
            category=item.category or DEFAULT_CATEGORY,
            discretionary=item.is_discretionary,
        )

    if skipped:
        _logger.debug("classification:items_skipped count=%d", skipped)
    return out


__all__ = ["Decision", "parse_decisions"]
