"""Tests for output formatting."""

import json
import re
from io import StringIO

import pytest
from rich.console import Console

from grocery_reconciler.output_formatter import OutputFormatter


def strip_ansi(text: str) -> str:
    """Remove ANSI escape codes from text."""
    ansi_escape = re.compile(r"\x1b\[[0-9;]*m")
    return ansi_escape.sub("", text)


@pytest.fixture
def rich_formatter():
    """Formatter writing to an in-memory console."""
    formatter = OutputFormatter(json_mode=False)
    formatter.console = Console(file=StringIO(), force_terminal=True, width=100)
    return formatter


def rendered(formatter):
    return strip_ansi(formatter.console.file.getvalue())


def entry(item_id, name, quantity=1, **fields):
    return {
        "id": item_id,
        "name": name,
        "quantity": quantity,
        "category": "Produce",
        "unit": "count",
        "checked": False,
        **fields,
    }


class TestOutputFormatterJSON:
    """Tests for JSON output mode."""

    def test_json_mode_output(self, capsys):
        formatter = OutputFormatter(json_mode=True)
        formatter.output({"success": True, "data": {"test": "value"}})
        data = json.loads(capsys.readouterr().out)
        assert data["data"]["test"] == "value"

    def test_json_error(self, capsys):
        """JSON error output."""
        formatter = OutputFormatter(json_mode=True)
        formatter.error("Something went wrong", error_code="ITEM_NOT_FOUND")
        data = json.loads(capsys.readouterr().out)
        assert data["success"] is False
        assert data["error"] == "Something went wrong"
        assert data["error_code"] == "ITEM_NOT_FOUND"

    def test_json_error_without_code(self, capsys):
        OutputFormatter(json_mode=True).error("boom")
        assert "error_code" not in json.loads(capsys.readouterr().out)

    def test_json_success(self, capsys):
        formatter = OutputFormatter(json_mode=True)
        formatter.success("Cleared 2 purchased items", data={"removed_count": 2})
        data = json.loads(capsys.readouterr().out)
        assert data["success"] is True
        assert data["data"]["removed_count"] == 2

    def test_json_warning(self, capsys):
        OutputFormatter(json_mode=True).warning("Ingredient 'x' is not in the catalog")
        data = json.loads(capsys.readouterr().out)
        assert data["warning"] == "Ingredient 'x' is not in the catalog"


class TestOutputFormatterRich:
    """Tests for Rich output mode."""

    def test_rich_error_output(self, rich_formatter):
        rich_formatter.error("Test error message")
        assert "Test error message" in rendered(rich_formatter)

    def test_message_and_warnings(self, rich_formatter):
        rich_formatter.output(
            {"success": True, "data": {"warnings": ["basil is missing"]}},
            "Added Pasta Sauce (1)",
        )
        output = rendered(rich_formatter)
        assert "Added Pasta Sauce (1)" in output
        assert "basil is missing" in output

    def test_render_empty_list(self, rich_formatter):
        rich_formatter.output(
            {"data": {"list": {"unchecked": [], "checked": [], "meals": [], "total_items": 0}}}
        )
        assert "No items on the shopping list" in rendered(rich_formatter)

    def test_render_shopping_list(self, rich_formatter):
        rich_formatter.output(
            {
                "data": {
                    "list": {
                        "unchecked": [entry("tomato", "Tomato", 2)],
                        "checked": [entry("basil", "Basil", checked=True)],
                        "meals": [
                            entry(
                                "sauce",
                                "Pasta Sauce",
                                ingredients=[{"id": "tomato", "name": "Tomato", "quantity": 2, "unit": "count"}],
                            ),
                            entry("soup", "Soup", ingredients=[]),
                        ],
                        "total_items": 4,
                    }
                }
            }
        )
        output = rendered(rich_formatter)
        assert "Shopping List" in output
        assert "Tomato" in output
        assert "Purchased: 1/2" in output
        assert "Pasta Sauce" in output
        assert "All ingredients in stock" in output

    def test_render_meal_progress(self, rich_formatter):
        lines = [
            {"id": "tomato", "name": "Tomato", "quantity": 2, "unit": "count"},
            {"id": "basil", "name": "Basil", "quantity": 1, "unit": "bunch"},
        ]
        rich_formatter.output(
            {
                "data": {
                    "list": {
                        "unchecked": [],
                        "checked": [],
                        "meals": [
                            entry(
                                "sauce",
                                "Pasta Sauce",
                                ingredients=lines,
                                progress={"checked_count": 1, "total_count": 2, "all_checked": False},
                            )
                        ],
                        "total_items": 3,
                    }
                }
            }
        )
        assert "Ingredients: 1/2" in rendered(rich_formatter)

    def test_render_catalog(self, rich_formatter):
        rich_formatter.output(
            {
                "data": {
                    "catalog": [
                        {
                            "name": "Dairy",
                            "items": [
                                {
                                    "id": "milk",
                                    "name": "Milk",
                                    "unit": "gallon",
                                    "auto_restock": True,
                                    "restock_threshold": 1,
                                    "restock_quantity": 2,
                                    "ingredients": None,
                                }
                            ],
                        }
                    ]
                }
            }
        )
        output = rendered(rich_formatter)
        assert "Dairy" in output
        assert "Milk" in output

    def test_render_inventory(self, rich_formatter):
        rich_formatter.output(
            {
                "data": {
                    "inventory": [
                        {
                            "id": "milk",
                            "name": "Milk",
                            "quantity": 1.5,
                            "category": "Dairy",
                            "date_updated": "2026-01-25T10:00:00",
                        }
                    ]
                }
            }
        )
        output = rendered(rich_formatter)
        assert "Inventory" in output
        assert "1.5" in output

    def test_render_item(self, rich_formatter):
        rich_formatter.output({"data": {"item": entry("tomato", "Tomato", 3)}}, "Added Tomato")
        output = rendered(rich_formatter)
        assert "Item Details" in output
        assert "3 count" in output
