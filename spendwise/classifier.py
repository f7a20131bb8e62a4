"""External classification service contract and its OpenAI implementation.

The orchestrator in :mod:`spendwise.classify` only depends on the
:class:`Classifier` protocol: one call per chunk, request items limited to
``id``, ``description`` and ``amount``, answer keyed by transaction id plus
any web-search provenance. Implementations may raise freely; the orchestrator
owns the fallback policy.

No side effects occur at import time (no client creation, no environment
reads).
"""

from __future__ import annotations

import json
import os
import random
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from openai import OpenAI
from openai.types.responses import ResponseTextConfigParam

from . import prompting
from .classification import Decision, parse_decisions
from .logging_setup import get_logger
from .models import GroundingSource, UserRule

# ---- Tunables (private) ------------------------------------------------------

_MAX_ATTEMPTS: int = 3
_BACKOFF_SCHEDULE_SEC: tuple[float, ...] = (0.5, 2.0)
_JITTER_PCT: float = 0.20

_DEFAULT_MODEL: str = "gpt-5"


_logger = get_logger("spendwise.classifier")


@dataclass(frozen=True, slots=True)
class ClassificationContext:
    """Personalization snapshot taken once per classification run."""

    rules: tuple[UserRule, ...] = ()
    category_settings: Mapping[str, bool] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ChunkClassification:
    """Answer for one chunk: decisions by id and chunk-level provenance."""

    decisions: Mapping[str, Decision]
    sources: tuple[GroundingSource, ...] = ()


class Classifier(Protocol):
    def classify_chunk(
        self, items: Sequence[Mapping[str, Any]], context: ClassificationContext
    ) -> ChunkClassification: ...


# ---- Response helpers --------------------------------------------------------


def _extract_response_json_mapping(resp: Any) -> Mapping[str, Any]:
    """Decode the JSON mapping from an OpenAI Responses SDK result.

    - Prefer ``resp.output_text``; fallback to the first text content part.
    - Raise ``ValueError`` if text cannot be located or if JSON decoding fails.
    """

    text: str | None = getattr(resp, "output_text", None)
    if not text:
        for item in getattr(resp, "output", None) or []:
            for part in getattr(item, "content", None) or []:
                txt_obj = getattr(part, "text", None)
                if isinstance(txt_obj, str) and txt_obj:
                    text = txt_obj
                    break
                # Some SDKs expose text as an object with a ``value`` string.
                maybe_val = getattr(txt_obj, "value", None)
                if isinstance(maybe_val, str) and maybe_val:
                    text = maybe_val
                    break
            if text:
                break
    if not text or not isinstance(text, str):
        raise ValueError("Unexpected Responses API shape; unable to locate text output")

    try:
        decoded: Mapping[str, Any] = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError("Model output was not valid JSON per the requested schema") from e
    return decoded


def _extract_url_citations(resp: Any) -> tuple[GroundingSource, ...]:
    """Collect ``url_citation`` annotations from the response output, by uri."""

    seen: dict[str, GroundingSource] = {}
    for item in getattr(resp, "output", None) or []:
        for part in getattr(item, "content", None) or []:
            for ann in getattr(part, "annotations", None) or []:
                if getattr(ann, "type", None) != "url_citation":
                    continue
                uri = getattr(ann, "url", None) or "#"
                title = getattr(ann, "title", None) or "Search Result"
                if uri not in seen:
                    seen[uri] = GroundingSource(title=title, uri=uri)
    return tuple(seen.values())


def _is_retryable(exc: BaseException) -> bool:
    """Return True only for HTTP 429 and 5xx errors.

    Parsing/validation errors (``ValueError``) are terminal for the chunk.
    """

    sc = getattr(exc, "status_code", None)
    return isinstance(sc, int) and (sc == 429 or 500 <= sc < 600)


def _sleep_backoff(attempt_no: int) -> None:
    if attempt_no - 1 < len(_BACKOFF_SCHEDULE_SEC):
        base = _BACKOFF_SCHEDULE_SEC[attempt_no - 1]
    else:
        base = _BACKOFF_SCHEDULE_SEC[-1]
    jitter = base * _JITTER_PCT
    time.sleep(max(0.0, base + random.uniform(-jitter, jitter)))


# ---- OpenAI implementation ---------------------------------------------------


class OpenAIClassifier:
    """Classify chunks through the OpenAI Responses API with web search enabled.

    Parameters
    ----------
    client:
        An ``openai.OpenAI`` instance (or compatible stub). When omitted, one is
        created lazily on first use; the SDK reads ``OPENAI_API_KEY``.
    model:
        Model name; defaults to ``SPENDWISE_OPENAI_MODEL`` or ``gpt-5``.
    """

    def __init__(self, client: Any | None = None, *, model: str | None = None) -> None:
        self._client = client
        self.model = model or os.getenv("SPENDWISE_OPENAI_MODEL") or _DEFAULT_MODEL
        self._system_instructions = prompting.build_system_instructions()
        self._text_cfg = ResponseTextConfigParam(format=prompting.build_response_format())

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = OpenAI()
        return self._client

    def classify_chunk(
        self, items: Sequence[Mapping[str, Any]], context: ClassificationContext
    ) -> ChunkClassification:
        user_content = prompting.build_user_content(
            prompting.serialize_request_items(items),
            rules=context.rules,
            category_settings=context.category_settings,
        )

        attempt = 1
        while True:
            t0 = time.perf_counter()
            try:
                resp = self.client.responses.create(
                    model=self.model,
                    instructions=self._system_instructions,
                    input=user_content,
                    text=self._text_cfg,
                    tools=[{"type": "web_search"}],
                    tool_choice="auto",
                )
                decisions = parse_decisions(_extract_response_json_mapping(resp))
                return ChunkClassification(
                    decisions=decisions, sources=_extract_url_citations(resp)
                )
            except Exception as e:
                if attempt >= _MAX_ATTEMPTS or not _is_retryable(e):
                    raise
                _logger.warning(
                    "classifier:retry count=%d latency_ms=%.2f error=%s attempt=%d",
                    len(items),
                    (time.perf_counter() - t0) * 1000.0,
                    e.__class__.__name__,
                    attempt,
                )
                _sleep_backoff(attempt)
                attempt += 1


__all__ = [
    "ChunkClassification",
    "ClassificationContext",
    "Classifier",
    "OpenAIClassifier",
]
