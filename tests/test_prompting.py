import json

from spendwise import prompting
from spendwise.categories import ALLOWED_CATEGORIES
from spendwise.models import UserRule


def test_serialize_request_items_keeps_only_fixed_fields_in_order():
    items = [{"amount": -5.0, "id": "t1", "date": "2024-01-01", "description": "Cafe"}]
    out = prompting.serialize_request_items(items)
    assert out == '[{"id": "t1", "description": "Cafe", "amount": -5.0}]'
    assert list(json.loads(out)[0]) == ["id", "description", "amount"]


def test_context_sections_omitted_when_empty():
    assert prompting.build_context_text() == ""
    content = prompting.build_user_content("[]")
    assert "corrected these merchants" not in content
    assert "discretionary:" not in content


def test_context_renders_rules_and_settings():
    text = prompting.build_context_text(
        rules=[UserRule(merchant_pattern="NETFLIX", preferred_category="Subscriptions")],
        category_settings={"Travel": True, "Housing": False},
    )
    assert '- "NETFLIX" => Subscriptions' in text
    assert "- Housing: essential" in text
    assert "- Travel: discretionary" in text


def test_user_content_embeds_vocabulary_and_marked_payload():
    content = prompting.build_user_content('[{"id": "t1"}]')
    for cat in ALLOWED_CATEGORIES:
        assert cat in content
    assert f'{prompting.BEGIN_MARKER}\n[{{"id": "t1"}}]\n{prompting.END_MARKER}' in content


def test_response_format_is_strict_with_category_enum():
    fmt = prompting.build_response_format()
    item = fmt["schema"]["properties"]["results"]["items"]
    assert fmt["strict"] is True
    assert item["properties"]["category"]["enum"] == list(ALLOWED_CATEGORIES)
    assert item["required"] == ["id", "category", "is_discretionary"]
    assert item["additionalProperties"] is False
