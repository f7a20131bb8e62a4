"""Prompt construction and payload serialization for transaction classification.

This module builds:
- A deterministic JSON serialization of the classifier request items with a
  fixed field order (``id, description, amount`` only).
- The system and user prompts, including optional personalization context
  (learned merchant rules and category discretionary preferences).
- The strict ``response_format`` (JSON Schema) object for the OpenAI
  Responses API.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from typing import Any

from openai.types.responses.response_format_text_json_schema_config_param import (
    ResponseFormatTextJSONSchemaConfigParam,
)

from .categories import ALLOWED_CATEGORIES
from .models import UserRule

REQUEST_FIELD_ORDER: tuple[str, ...] = ("id", "description", "amount")

BEGIN_MARKER = "BEGIN_TRANSACTIONS_JSON"
END_MARKER = "END_TRANSACTIONS_JSON"

_USER_TEMPLATE = """Classify each transaction below into exactly one category.

Categories: {{CATEGORIES}}

For every transaction also decide "is_discretionary": true for optional or
lifestyle spending, false for essential spending (housing, utilities,
insurance, healthcare, groceries and similar).
Negative amounts are money spent; positive amounts are money received.
{{CONTEXT}}
Return one result per transaction, echoing its "id" exactly.

{{BEGIN}}
{{TRANSACTIONS_JSON}}
{{END}}
"""


def serialize_request_items(items: Sequence[Mapping[str, Any]]) -> str:
    """Serialize request items to a JSON array with a fixed field order.

    Keys other than ``id``, ``description`` and ``amount`` are dropped so that
    nothing unrelated ever reaches the external service.
    """

    arr: list[dict[str, Any]] = []
    for item in items:
        arr.append({key: item.get(key) for key in REQUEST_FIELD_ORDER})
    return json.dumps(arr, ensure_ascii=False)


def build_system_instructions() -> str:
    """Return concise system instructions for fixed-vocabulary classification."""

    return (
        "You are an expert financial analyst who classifies bank and credit card "
        "transactions. Choose exactly one category per transaction from the provided "
        "list; never invent categories. If a merchant description is ambiguous or "
        "unknown, use web search to identify the merchant and its business type. "
        "Output JSON only that conforms to the specified schema."
    )


def build_context_text(
    *,
    rules: Sequence[UserRule] = (),
    category_settings: Mapping[str, bool] | None = None,
) -> str:
    """Render personalization context; empty sections are omitted entirely."""

    lines: list[str] = []
    if rules:
        lines.append("")
        lines.append("The user has corrected these merchants before; prefer their choice:")
        for rule in rules:
            lines.append(f'- "{rule.merchant_pattern}" => {rule.preferred_category}')
    if category_settings:
        lines.append("")
        lines.append("The user's view of which categories are discretionary:")
        for category in sorted(category_settings):
            kind = "discretionary" if category_settings[category] else "essential"
            lines.append(f"- {category}: {kind}")
    if not lines:
        return ""
    return "\n".join(lines) + "\n"


def build_user_content(
    items_json: str,
    *,
    rules: Sequence[UserRule] = (),
    category_settings: Mapping[str, bool] | None = None,
) -> str:
    """Build user content with the request JSON delimited by BEGIN_/END_ markers."""

    return (
        _USER_TEMPLATE.replace("{{CATEGORIES}}", ", ".join(ALLOWED_CATEGORIES))
        .replace(
            "{{CONTEXT}}",
            build_context_text(rules=rules, category_settings=category_settings),
        )
        .replace("{{BEGIN}}", BEGIN_MARKER)
        .replace("{{END}}", END_MARKER)
        .replace("{{TRANSACTIONS_JSON}}", items_json)
    )


def build_response_format() -> ResponseFormatTextJSONSchemaConfigParam:
    """Return the strict JSON Schema response_format object.

    Schema shape::

        {"results": [{"id": str, "category": <enum>, "is_discretionary": bool}]}
    """

    result: ResponseFormatTextJSONSchemaConfigParam = {
        "type": "json_schema",
        "name": "transaction_classifications",
        "schema": {
            "type": "object",
            "properties": {
                "results": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "id": {"type": "string"},
                            "category": {"type": "string", "enum": list(ALLOWED_CATEGORIES)},
                            "is_discretionary": {"type": "boolean"},
                        },
                        "required": ["id", "category", "is_discretionary"],
                        "additionalProperties": False,
                    },
                }
            },
            "required": ["results"],
            "additionalProperties": False,
        },
        "strict": True,
    }
    return result
