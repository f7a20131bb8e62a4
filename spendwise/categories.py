"""Category vocabulary and name helpers.

The classifier only ever answers from the closed :class:`Category` vocabulary.
Users may still coin their own labels when editing a transaction; those are
kept as normalized free text so a typo in casing or spacing cannot fragment an
existing category.

Exports
-------
- ``Category``: the closed vocabulary (``StrEnum``; members compare equal to
  their display strings).
- ``coerce_category(...)``: map any raw label onto the vocabulary, falling back
  to a normalized custom label.
- ``normalize_name(...)`` and ``validate_name(...)``: shared by the terminal
  picker and report edits.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum


class Category(StrEnum):
    FOOD_SUPERMARKETS = "Food - Supermarkets"
    FOOD_DINING = "Food - Dining"
    SHOPPING = "Shopping"
    HOUSING = "Housing"
    TRANSPORTATION = "Transportation"
    UTILITIES = "Utilities"
    ENTERTAINMENT = "Entertainment"
    HEALTHCARE = "Healthcare"
    INCOME = "Income"
    TRAVEL = "Travel"
    INSURANCE = "Insurance"
    SUBSCRIPTIONS = "Subscriptions"
    OTHER = "Other"


ALLOWED_CATEGORIES: tuple[str, ...] = tuple(c.value for c in Category)
DEFAULT_CATEGORY: str = Category.OTHER.value

# Budget rows use this pseudo-category for the whole-period target.
TOTAL_BUDGET_KEY: str = "Total"

_BY_FOLDED: dict[str, Category] = {c.value.casefold(): c for c in Category}

# ---------------------------
# Name normalization/validation
# ---------------------------

_ALLOWED_RE = re.compile(r"^[A-Za-z0-9 &\-/'.]+$")


def normalize_name(name: str) -> str:
    """Return a trimmed, single-spaced representation of ``name``.

    Does not change case; :func:`coerce_category` handles canonical casing for
    vocabulary members.
    """

    return " ".join(name.strip().split())


@dataclass(frozen=True, slots=True)
class NameValidation:
    ok: bool
    reason: str | None = None


def validate_name(name: str, *, min_len: int = 1, max_len: int = 64) -> NameValidation:
    """Lightweight validation for user-coined category names.

    Rules
    -----
    - Trim whitespace; enforce length bounds 1..64.
    - Allowed characters: letters, numbers, spaces, and ``& - / ' .``.
    """

    n = normalize_name(name)
    if len(n) < min_len:
        return NameValidation(False, "Name cannot be empty")
    if len(n) > max_len:
        return NameValidation(False, f"Name must be at most {max_len} characters")
    if not _ALLOWED_RE.match(n):
        return NameValidation(False, "Only letters, numbers, spaces, and & - / ' . are allowed")
    return NameValidation(True, None)


def lookup_category(raw: str | None) -> Category | None:
    """Return the vocabulary member matching ``raw`` (case/space-insensitive)."""

    if raw is None:
        return None
    return _BY_FOLDED.get(normalize_name(str(raw)).casefold())


def is_known_category(raw: str | None) -> bool:
    return lookup_category(raw) is not None


def coerce_category(raw: str | None) -> str:
    """Map ``raw`` to a canonical category label.

    - Blank or missing values become ``"Other"``.
    - Vocabulary members are matched case-insensitively and returned with
      their canonical spelling.
    - Anything else is kept as a normalized custom label.
    """

    if raw is None:
        return DEFAULT_CATEGORY
    name = normalize_name(str(raw))
    if not name:
        return DEFAULT_CATEGORY
    known = lookup_category(name)
    if known is not None:
        return known.value
    return name


__all__ = [
    "ALLOWED_CATEGORIES",
    "DEFAULT_CATEGORY",
    "TOTAL_BUDGET_KEY",
    "Category",
    "NameValidation",
    "coerce_category",
    "is_known_category",
    "lookup_category",
    "normalize_name",
    "validate_name",
]
