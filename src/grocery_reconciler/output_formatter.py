"""Output formatting for CLI and programmatic use."""

import json
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .data_store import JSONEncoder


class OutputFormatter:
    """Formats output for both Rich terminal and JSON modes."""

    def __init__(self, json_mode: bool = False):
        """Initialize formatter.

        Args:
            json_mode: If True, output JSON instead of Rich formatting
        """
        self.json_mode = json_mode
        self.console = Console()

    def output(self, data: dict[str, Any], message: str = "") -> None:
        """Output data in appropriate format.

        Args:
            data: Data to output
            message: Optional message for Rich mode
        """
        if self.json_mode:
            self._output_json(data)
        else:
            self._output_rich(data, message)

    def _output_json(self, data: dict[str, Any]) -> None:
        """Output as JSON to stdout."""
        print(json.dumps(data, cls=JSONEncoder, indent=2))

    def _output_rich(self, data: dict[str, Any], message: str) -> None:
        """Output with Rich formatting."""
        if message:
            self.console.print(f"[green]✓[/green] {message}")

        payload = data.get("data", {})
        for warning in payload.get("warnings") or []:
            self.warning(warning)

        if "list" in payload:
            self._render_shopping_list(data)
        elif "catalog" in payload:
            self._render_catalog(data)
        elif "inventory" in payload and isinstance(payload["inventory"], list):
            self._render_inventory(data)
        elif "item" in payload and isinstance(payload["item"], dict):
            self._render_item(data)

    def _render_shopping_list(self, data: dict) -> None:
        """Render the shopping list sections with Rich."""
        list_data = data["data"]["list"]
        unchecked = list_data["unchecked"]
        checked = list_data["checked"]
        meals = list_data["meals"]

        if not (unchecked or checked or meals):
            self.console.print("[dim]No items on the shopping list[/dim]")
            return

        table = Table(title="Shopping List", show_header=True, header_style="bold cyan")
        table.add_column("#", style="dim", justify="right")
        table.add_column("Item", style="cyan", no_wrap=False)
        table.add_column("Qty", style="magenta", justify="right")
        table.add_column("Category", style="yellow")
        table.add_column("", style="blue")

        for position, item in enumerate(unchecked, start=1):
            table.add_row(
                str(position),
                item["name"],
                _format_quantity(item),
                item.get("category", "Uncategorized"),
                "[white]○[/white]",
            )
        for item in checked:
            table.add_row(
                "",
                f"[dim]{item['name']}[/dim]",
                _format_quantity(item),
                item.get("category", "Uncategorized"),
                "[green]✓[/green]",
            )

        self.console.print(table)
        self.console.print(
            f"\nPurchased: {len(checked)}/{len(checked) + len(unchecked)}"
        )

        for meal in meals:
            lines = meal.get("ingredients") or []
            body = "\n".join(
                f"  {line['name']}: {line['quantity']:g} {line.get('unit') or ''}".rstrip()
                for line in lines
            ) or "[dim]All ingredients in stock[/dim]"
            progress = meal.get("progress")
            if progress and progress["total_count"]:
                body += (
                    f"\n\nIngredients: {progress['checked_count']}/{progress['total_count']}"
                )
            ready = meal.get("checked") or (progress or {}).get("all_checked")
            status = "[green]✓[/green] " if ready else ""
            self.console.print(
                Panel(
                    body,
                    title=f"{status}{meal['name']} ({_format_quantity(meal)})",
                    border_style="magenta",
                )
            )

    def _render_catalog(self, data: dict) -> None:
        """Render the food bank grouped by category."""
        categories = data["data"]["catalog"]
        if not categories:
            self.console.print("[dim]The food bank is empty[/dim]")
            return

        for category in categories:
            table = Table(title=category["name"], show_header=True, header_style="bold cyan")
            table.add_column("ID", style="dim")
            table.add_column("Item", style="cyan")
            table.add_column("Unit")
            table.add_column("Auto-restock", justify="right")
            table.add_column("Ingredients")

            for item in category["items"]:
                restock = (
                    f"at {item['restock_threshold']:g} → {item['restock_quantity']:g}"
                    if item.get("auto_restock")
                    else "-"
                )
                ingredients = ", ".join(
                    f"{i['name']} x{i['quantity_per_unit']:g}" for i in item.get("ingredients") or []
                )
                table.add_row(item["id"], item["name"], item.get("unit", ""), restock, ingredients or "-")

            self.console.print(table)

    def _render_inventory(self, data: dict) -> None:
        """Render on-hand inventory."""
        entries = data["data"]["inventory"]
        if not entries:
            self.console.print("[dim]Inventory is empty[/dim]")
            return

        table = Table(title="Inventory", show_header=True, header_style="bold cyan")
        table.add_column("Item", style="cyan")
        table.add_column("Qty", style="magenta", justify="right")
        table.add_column("Category", style="yellow")
        table.add_column("Updated", style="dim")

        for entry in entries:
            table.add_row(
                entry["name"],
                f"{entry['quantity']:g}",
                entry.get("category", "Uncategorized"),
                str(entry.get("date_updated", ""))[:16],
            )

        self.console.print(table)

    def _render_item(self, data: dict) -> None:
        """Render a single shopping list entry with Rich."""
        item = data["data"]["item"]

        panel_content = f"""[bold]{item["name"]}[/bold]

Quantity: {_format_quantity(item)}
Category: {item.get("category", "Uncategorized")}
Purchased: {"yes" if item.get("checked") else "no"}"""

        if item.get("ingredients"):
            panel_content += "\nIngredients to buy: " + ", ".join(
                i["name"] for i in item["ingredients"]
            )

        self.console.print(Panel(panel_content, title="Item Details", border_style="cyan"))

    def error(self, message: str, error_code: str | None = None) -> None:
        """Output error message.

        Args:
            message: Error message
            error_code: Optional error code
        """
        if self.json_mode:
            output = {"success": False, "error": message}
            if error_code:
                output["error_code"] = error_code
            print(json.dumps(output))
        else:
            self.console.print(f"[red]✗ Error:[/red] {message}")

    def success(self, message: str, data: dict | None = None) -> None:
        """Output success message.

        Args:
            message: Success message
            data: Optional data to include
        """
        if self.json_mode:
            output: dict[str, Any] = {"success": True, "message": message}
            if data:
                output["data"] = data
            print(json.dumps(output, cls=JSONEncoder))
        else:
            self.console.print(f"[green]✓[/green] {message}")

    def warning(self, message: str) -> None:
        """Output warning message.

        Args:
            message: Warning message
        """
        if self.json_mode:
            print(json.dumps({"warning": message}))
        else:
            self.console.print(f"[yellow]⚠[/yellow] {message}")


def _format_quantity(item: dict) -> str:
    quantity = item.get("quantity", 1)
    unit = item.get("unit") or ""
    text = f"{quantity:g}" if isinstance(quantity, (int, float)) else str(quantity)
    return f"{text} {unit}".rstrip()
