"""Tiny terminal UI helpers (prompt_toolkit-based).

Kept apart from the CLI commands so the prompt can be tested in isolation
with a pipe input.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import AutoSuggest, Suggestion
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.styles import Style
from prompt_toolkit.validation import ValidationError, Validator

from .categories import coerce_category, lookup_category, normalize_name, validate_name


class _PrefixSuggest(AutoSuggest):
    """Grey inline completion for the first vocabulary word with the typed prefix."""

    def __init__(self, vocab: Sequence[str]) -> None:
        self._vocab = list(vocab)

    def get_suggestion(self, buffer, document):
        text = document.text
        if not text:
            return None
        lower = text.lower()
        for w in self._vocab:
            wl = w.lower()
            if wl == lower:
                return None
            if wl.startswith(lower):
                return Suggestion(w[len(text) :])
        return None


class _CategoryValidator(Validator):
    def __init__(self, vocab: Sequence[str], *, allow_custom: bool) -> None:
        self._folded = {w.casefold() for w in vocab}
        self._allow_custom = allow_custom

    def validate(self, document) -> None:
        text = normalize_name(document.text)
        if not text or text.casefold() in self._folded or lookup_category(text) is not None:
            return
        if not self._allow_custom:
            raise ValidationError(message="Choose one of the listed categories")
        check = validate_name(text)
        if not check.ok:
            raise ValidationError(message=check.reason or "Invalid category name")


def resolve_choice(
    answer: str, categories: Sequence[str], *, default: str, allow_custom: bool = True
) -> str:
    """Map a typed answer onto the vocabulary.

    Blank means ``default``. A case-insensitive match returns the listed
    spelling. Otherwise the answer is a custom category when allowed, else
    ``ValueError``.
    """

    text = normalize_name(answer)
    if not text:
        return coerce_category(default)
    by_folded = {w.casefold(): w for w in categories}
    if text.casefold() in by_folded:
        return by_folded[text.casefold()]
    known = lookup_category(text)
    if known is not None:
        return known.value
    if not allow_custom:
        raise ValueError(f"Unknown category: {text!r}")
    check = validate_name(text)
    if not check.ok:
        raise ValueError(check.reason or "Invalid category name")
    return text


def select_category(
    categories: Sequence[str] | Iterable[str],
    *,
    default: str,
    message: str = "Category (Enter to accept): ",
    session: PromptSession | None = None,
    allow_custom: bool = True,
) -> str:
    """Prompt for a category with vocabulary completion.

    The buffer starts with ``default``; pressing Enter accepts it. Free text
    becomes a custom category when ``allow_custom`` is true.
    """

    words = list(categories)
    completer = WordCompleter(words, ignore_case=True, match_middle=True, sentence=True)
    style = Style.from_dict({"auto-suggestion": "fg:#888888"})

    if session is None:
        sess: PromptSession = PromptSession()
    else:
        sess = session

    prompt_kwargs: dict[str, Any] = {
        "message": message,
        "completer": completer,
        "default": default or "",
        "auto_suggest": _PrefixSuggest(words),
        "validator": _CategoryValidator(words, allow_custom=allow_custom),
        "validate_while_typing": False,
        "style": style,
    }
    answer = sess.prompt(**prompt_kwargs)
    return resolve_choice(answer, words, default=default, allow_custom=allow_custom)


__all__ = ["resolve_choice", "select_category"]
