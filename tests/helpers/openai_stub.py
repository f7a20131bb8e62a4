"""Test helpers to stub the OpenAI Responses client used by classifier.py.

The stub parses the user-content payload to extract the embedded request JSON
array and returns a deterministic ``{"results": [...]}`` body. Tests provide a
``decide`` callable mapping each request item to a ``(category,
is_discretionary)`` tuple so the test surface stays small and focused on
inputs/outputs.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Sequence
from types import SimpleNamespace
from typing import Any

BEGIN = "BEGIN_TRANSACTIONS_JSON\n"
END = "\nEND_TRANSACTIONS_JSON"


def extract_request_items(user_content: str) -> list[dict[str, Any]]:
    b = user_content.find(BEGIN)
    e = user_content.rfind(END)
    if b == -1 or e == -1 or e <= b:
        raise AssertionError("classifier: user content missing embedded transactions JSON block")
    return json.loads(user_content[b + len(BEGIN) : e])


def make_response(
    body: dict[str, Any] | str,
    *,
    citations: Sequence[tuple[str | None, str | None]] = (),
    use_output_text: bool = True,
) -> SimpleNamespace:
    """Build an object shaped like an SDK ``Response``.

    ``citations`` become ``url_citation`` annotations ``(title, url)`` on the
    output message content.
    """

    text = body if isinstance(body, str) else json.dumps(body)
    annotations = [
        SimpleNamespace(type="url_citation", title=title, url=url) for title, url in citations
    ]
    part = SimpleNamespace(type="output_text", text=text, annotations=annotations)
    message = SimpleNamespace(type="message", content=[part])
    return SimpleNamespace(
        output_text=text if use_output_text else "",
        output=[message],
    )


class OpenAIStub:
    """Minimal stub matching ``openai.OpenAI`` shape for ``classifier.py``.

    Parameters
    ----------
    decide:
        A callable receiving a request item mapping and returning a
        ``(category, is_discretionary)`` tuple.
    calls_out:
        A list that will be appended with each call's kwargs to allow tests to
        make lightweight assertions about paging or schema.
    citations:
        ``(title, url)`` pairs attached to every response.
    """

    def __init__(
        self,
        decide: Callable[[dict[str, Any]], tuple[str, bool]],
        calls_out: list[dict[str, Any]] | None = None,
        *,
        citations: Sequence[tuple[str | None, str | None]] = (),
    ) -> None:
        self._decide = decide
        self._calls = calls_out if calls_out is not None else []
        self._citations = tuple(citations)

        class _Responses:
            def __init__(self, outer: OpenAIStub) -> None:
                self._outer = outer

            def create(self, **kwargs):
                self._outer._calls.append(kwargs)
                items = extract_request_items(kwargs["input"])
                results = []
                for item in items:
                    cat, disc = self._outer._decide(item)
                    results.append(
                        {"id": item["id"], "category": cat, "is_discretionary": disc}
                    )
                return make_response({"results": results}, citations=self._outer._citations)

        self.responses = _Responses(self)

    # Expose the captured calls list for assertions
    @property
    def calls(self) -> list[dict[str, Any]]:
        return self._calls


class HttpError(Exception):
    """Exception carrying an integer ``status_code`` like SDK API errors."""

    def __init__(self, status_code: int) -> None:
        super().__init__(f"HTTP {status_code}")
        self.status_code = status_code
