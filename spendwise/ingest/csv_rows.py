"""Header-sniffing CSV row parser for bank and card statements.

The first non-blank line is the header. Columns are located by substring:

- date: first header containing ``date``
- amount: first other header containing ``amount``, else one containing
  ``value``
- description: first header not already taken containing ``desc``,
  ``merchant`` or ``transaction``

Rows shorter than the header, or whose amount cannot be read, are skipped.
Amount signs are kept as-is (negative is an outflow).
"""

from __future__ import annotations

import csv
import math
import re
import uuid

from ..logging_setup import get_logger
from ..models import Transaction

_logger = get_logger("spendwise.ingest.csv_rows")

_AMOUNT_NOISE = re.compile(r"[$,\s]")


class CsvFormatError(ValueError):
    """Raised when the header lacks a date, description or amount column."""


def _clean_text(value: str) -> str:
    return re.sub(r"\s+", " ", value.replace("\r", " ").replace("\n", " ")).strip()


def _find(headers: list[str], needles: tuple[str, ...], *, skip: set[int]) -> int | None:
    for i, h in enumerate(headers):
        if i in skip:
            continue
        if any(n in h for n in needles):
            return i
    return None


def _parse_amount(raw: str) -> float | None:
    s = _AMOUNT_NOISE.sub("", raw)
    if not s:
        return None
    try:
        value = float(s)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def parse_csv_text(text: str) -> list[Transaction]:
    """Parse statement text into transactions with fresh, unique ids.

    Returns ``[]`` when there is no data row. Raises :class:`CsvFormatError`
    when a required column cannot be located.
    """

    lines = [line.strip() for line in text.splitlines()]
    lines = [line for line in lines if line]
    if len(lines) < 2:
        return []

    rows = list(csv.reader(lines, skipinitialspace=True))
    headers = [h.strip().lower() for h in rows[0]]

    date_idx = _find(headers, ("date",), skip=set())
    taken = {date_idx} if date_idx is not None else set()
    amount_idx = _find(headers, ("amount",), skip=taken)
    if amount_idx is None:
        amount_idx = _find(headers, ("value",), skip=taken)
    if amount_idx is not None:
        taken.add(amount_idx)
    desc_idx = _find(headers, ("desc", "merchant", "transaction"), skip=taken)
    if date_idx is None or desc_idx is None or amount_idx is None:
        raise CsvFormatError(
            "CSV must contain columns for Date, Description/Merchant, and Amount."
        )

    token = uuid.uuid4().hex[:8]
    out: list[Transaction] = []
    skipped = 0
    for row_no, cols in enumerate(rows[1:], start=1):
        if len(cols) < len(headers):
            skipped += 1
            continue
        amount = _parse_amount(cols[amount_idx])
        if amount is None:
            skipped += 1
            continue
        out.append(
            Transaction(
                id=f"tx-{row_no}-{token}",
                date=cols[date_idx].strip(),
                description=_clean_text(cols[desc_idx]),
                amount=amount,
            )
        )

    if skipped:
        _logger.info("csv_rows:skipped count=%d kept=%d", skipped, len(out))
    return out


__all__ = ["CsvFormatError", "parse_csv_text"]
