# graphperm — Graph PowerShell permission analyzer
# Copyright (C) 2026 graphperm Project Contributors
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program. If not, see <https://www.gnu.org/licenses/>.

"""Rich terminal output for scan summaries."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from graphperm.models.results import ScanSummary


def _make_console() -> Console:
    """Console with soft wrap; width follows the live terminal."""
    return Console(soft_wrap=True)


console = _make_console()
err_console = Console(stderr=True, soft_wrap=True)

ICON_PASS = "[bold green][OK][/bold green]"
ICON_WARN = "[bold yellow][WARN][/bold yellow]"
ICON_MISSING = "[bold red][MISSING][/bold red]"


def build_results_table(summary: ScanSummary) -> Table:
    """One row per cmdlet, in the CSV column order."""
    table = Table(expand=True, show_lines=False, safe_box=True)
    table.add_column("Cmdlet", style="bold cyan", no_wrap=True)
    table.add_column("LineNumbers", style="dim")
    table.add_column("LeastPrivilegedEffectivePermission", style="green")
    table.add_column("Description")
    table.add_column("Permissions", style="dim")
    table.add_column("HasScope", justify="center")

    for result in summary.results:
        if not summary.authenticated:
            scope_cell = "[dim]n/a[/dim]"
        elif result.has_scope:
            scope_cell = ICON_PASS
        else:
            scope_cell = ICON_MISSING
        table.add_row(
            escape(result.command_name),
            ", ".join(str(n) for n in result.line_numbers),
            escape(result.least_privileged_permission or "-"),
            escape(result.description or ""),
            escape(", ".join(result.all_permissions)),
            scope_cell,
        )
    return table


def print_summary(summary: ScanSummary, verbose: bool = False) -> None:
    """Print the header panel, results table and any warnings."""
    header = Text()
    header.append(f"  Script:      {summary.script}\n", style="white")
    header.append(f"  API version: {summary.api_version}\n", style="white")
    header.append(f"  Cmdlets:     {len(summary.results)}", style="white")
    if summary.authenticated:
        missing = sum(1 for r in summary.results if not r.has_scope)
        header.append(f"\n  Missing scope: {missing}", style="red" if missing else "green")

    console.print(
        Panel(
            header,
            border_style="white",
            title="[bold]Graph Permission Scan[/bold]",
            title_align="left",
            expand=True,
            safe_box=True,
        )
    )

    for warning in summary.warnings:
        console.print(f"{ICON_WARN}  [yellow]{escape(warning)}[/yellow]")

    if not summary.results:
        console.print("[dim]No Microsoft Graph cmdlets found.[/dim]")
        return

    console.print(build_results_table(summary))

    if verbose:
        unresolved = [r.command_name for r in summary.results if r.least_privileged_permission is None]
        if unresolved:
            console.print(
                "[dim]No application permission listed for: "
                f"{escape(', '.join(unresolved))}[/dim]"
            )
