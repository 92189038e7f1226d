"""Console rendering for the carebook CLI.

Every command produces either a rich rendering for people or, with
``--json``, a single JSON envelope ``{"success", "timestamp", "data" |
"error"}`` on stdout.
"""

import json
import sys
from datetime import datetime, timezone
from typing import Any

from rich.box import ROUNDED
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

# Slot and health states
STATUS_STYLES = {
    "free": ("green", "●"),
    "taken": ("red", "○"),
    "ok": ("green", "✓"),
    "healthy": ("green", "✓"),
    "warning": ("yellow", "◐"),
    "degraded": ("yellow", "◐"),
    "error": ("red", "✗"),
    "critical": ("red", "✗"),
}


def styled_status(status: str) -> str:
    """Rich markup for a known status, the plain text otherwise."""
    style = STATUS_STYLES.get(status.lower())
    if style is None:
        return status
    color, symbol = style
    return f"[{color}]{symbol} {status}[/{color}]"


class OutputFormatter:
    """Renders command results as rich tables or JSON."""

    def __init__(self, json_mode: bool = False) -> None:
        self.json_mode = json_mode
        self.console = Console()

    def _emit(self, success: bool, **payload: Any) -> None:
        envelope: dict[str, Any] = {
            "success": success,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        envelope.update(payload)
        print(json.dumps(envelope, indent=2, default=str, ensure_ascii=False))

    def error(self, code: str, message: str, suggestion: str | None = None, exit_code: int = 1) -> None:
        """Report a failure and exit with ``exit_code``."""
        if self.json_mode:
            self._emit(False, error={"code": code, "message": message, "suggestion": suggestion})
        else:
            line = Text()
            line.append("Error: ", style="bold red")
            line.append(f"[{code}] ", style="red")
            line.append(message)
            self.console.print(line)
            if suggestion:
                self.console.print(f"[yellow]Suggestion:[/yellow] {suggestion}")
        sys.exit(exit_code)

    def caregivers(self, rows: list[dict[str, Any]]) -> None:
        """List configured caregivers."""
        if self.json_mode:
            self._emit(True, data=rows, message=f"{len(rows)} caregiver(s)")
            return
        if not rows:
            self.console.print("[dim]No caregivers configured[/dim]")
            return

        table = Table(title="Caregivers", box=ROUNDED, header_style="bold cyan")
        table.add_column("Name")
        table.add_column("Calendar")
        table.add_column("Email", style="dim")
        for row in rows:
            table.add_row(row["name"], row["calendar_id"], row["email"] or "-")
        self.console.print(table)

    def grid(self, data: dict[str, Any]) -> None:
        """Show one availability grid (as produced by ``AvailabilityGrid.to_dict``)."""
        if self.json_mode:
            self._emit(True, data=data, message="Availability retrieved")
            return

        table = Table(box=ROUNDED, header_style="bold cyan")
        table.add_column("Slot")
        table.add_column("Status")
        for slot in data["slots"]:
            table.add_row(slot["range"], styled_status("taken" if slot["taken"] else "free"))

        title = f"{data['caregiver']} on {data['date']}"
        if data["bookable"]:
            subtitle = None
        elif data.get("earliest_bookable_date"):
            subtitle = f"Not bookable ({data['reason']}); earliest {data['earliest_bookable_date']}"
        else:
            subtitle = f"Not bookable ({data['reason']})"
        self.console.print(Panel(table, title=title, subtitle=subtitle, expand=False))

    def report(self, data: dict[str, Any]) -> None:
        """Show a diagnostic report (as produced by ``DiagnosticResult.to_dict``)."""
        overall = data["overall_health"]
        if self.json_mode:
            self._emit(True, data=data, message=f"Overall health: {overall}")
            return

        table = Table(title=f"Overall health: {styled_status(overall)}", box=ROUNDED, header_style="bold cyan")
        table.add_column("Check")
        table.add_column("Status")
        table.add_column("Message")
        for check in data["checks"]:
            table.add_row(check["name"], styled_status(check["status"]), check["message"])
        self.console.print(table)

        for check in data["checks"]:
            if check["status"] != "ok" and check.get("suggestion"):
                self.console.print(f"[yellow]{check['name']}:[/yellow] {check['suggestion']}")
