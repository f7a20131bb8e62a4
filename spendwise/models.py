"""Data models for ``spendwise``.

Transactions and reports are immutable; every change produces a replacement
object via ``model_copy(update=...)``. Amounts follow the statement sign
convention: negative is an outflow (spending), non-negative is an inflow
(income or refund). Nothing in this package ever changes that sign.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .categories import DEFAULT_CATEGORY

# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


class GroundingSource(BaseModel):
    """Provenance for a classification that relied on a web lookup."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    title: str
    uri: str


class Transaction(BaseModel):
    """One ledger line.

    ``date`` is kept exactly as read from the statement; interpretation is the
    job of :mod:`spendwise.periods`. ``category`` and ``discretionary`` stay
    ``None`` until classification (or a manual edit) assigns them.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    date: str = ""
    description: str
    amount: float
    category: str | None = None
    discretionary: bool | None = None
    grounding_sources: tuple[GroundingSource, ...] | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @property
    def effective_category(self) -> str:
        return self.category or DEFAULT_CATEGORY

    @property
    def is_outflow(self) -> bool:
        return self.amount < 0

    @property
    def is_discretionary(self) -> bool:
        # Unset counts as discretionary.
        return self.discretionary is not False

    def classifier_view(self) -> dict[str, Any]:
        """Return the only fields ever sent to the external classifier."""

        return {"id": self.id, "description": self.description, "amount": self.amount}


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


class ReportStatus(StrEnum):
    PROCESSING = "processing"
    COMPLETED = "completed"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Report(BaseModel):
    """A named, timestamped collection of transactions owned by one user.

    ``degraded_chunks`` counts classification chunks that fell back to
    ``"Other"`` because the classifier failed; a non-zero value is surfaced to
    users instead of silently presenting fallback categories as real ones.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    timestamp: datetime = Field(default_factory=_utcnow)
    transactions: tuple[Transaction, ...] = ()
    total_spent: float = 0.0
    status: ReportStatus = ReportStatus.PROCESSING
    progress: int = Field(default=0, ge=0, le=100)
    degraded_chunks: int = Field(default=0, ge=0)

    @field_validator("timestamp")
    @classmethod
    def _aware_timestamp(cls, v: datetime) -> datetime:
        # SQLite hands back naive datetimes; stored values are always UTC.
        if v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v

    @property
    def degraded(self) -> bool:
        return self.degraded_chunks > 0


# ---------------------------------------------------------------------------
# Personalization
# ---------------------------------------------------------------------------


class UserRule(BaseModel):
    """A learned merchant preference: descriptions matching ``merchant_pattern``
    should be classified as ``preferred_category``. Advisory only."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    merchant_pattern: str
    preferred_category: str


__all__ = [
    "GroundingSource",
    "Report",
    "ReportStatus",
    "Transaction",
    "UserRule",
]
