import pytest

from webhook_service.core.exceptions import JsonPathError
from webhook_service.services.jsonpath import evaluate, parse

DOC = {
    "order": {
        "id": 42,
        "customer": {"name": "Ada", "email": "ada@example.com"},
        "items": [
            {"sku": "A-1", "qty": 2, "price": 9.5},
            {"sku": "B-2", "qty": 1, "price": 20},
            {"sku": "C-3", "qty": 5, "price": 1.25},
        ],
        "weird key": "spaced",
    },
    "tags": ["new", "priority"],
}


@pytest.mark.parametrize(
    ("expression", "expected"),
    [
        ("$", [DOC]),
        ("$.order.id", [42]),
        ("$['order']['customer']['name']", ["Ada"]),
        ('$["order"]["weird key"]', ["spaced"]),
        ("$.order.customer['name','email']", ["Ada", "ada@example.com"]),
        ("$.order.items[0].sku", ["A-1"]),
        ("$.order.items[-1].sku", ["C-3"]),
        ("$.order.items[0,2].qty", [2, 5]),
        ("$.order.items[1:].sku", ["B-2", "C-3"]),
        ("$.order.items[::2].sku", ["A-1", "C-3"]),
        ("$.order.items[*].price", [9.5, 20, 1.25]),
        ("$.order.items.*.qty", [2, 1, 5]),
        ("$.tags.1", ["priority"]),
        ("$..sku", ["A-1", "B-2", "C-3"]),
        ("$..customer.name", ["Ada"]),
        ("$.order.missing", []),
        ("$.tags[7]", []),
    ],
)
def test_evaluate(expression, expected):
    assert evaluate(expression, DOC) == expected


def test_recursive_wildcard_visits_every_descendant():
    doc = {"a": {"b": 1}, "c": [2]}
    assert evaluate("$..*", doc) == [{"b": 1}, [2], 1, 2]


def test_index_on_object_matches_nothing():
    assert evaluate("$.order[0]", DOC) == []


@pytest.mark.parametrize(
    "expression",
    [
        "",
        "   ",
        "order.id",
        "$.order[",
        "$.order[]",
        "$.items[?(@.qty > 1)]",
        "$.items[(@.length-1)]",
        "$.items[::0]",
        "$.items[1:2:3:4]",
        "$.items[abc]",
        "$.order..",
        "$ order",
    ],
)
def test_malformed_expressions_raise(expression):
    with pytest.raises(JsonPathError):
        evaluate(expression, DOC)


def test_parse_is_cached():
    assert parse("$.order.id") is parse("$.order.id")
