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

"""graphperm CLI — Typer entry point.

Commands:
- graphperm scan <script>  — List the Graph permissions each cmdlet in a script needs
- graphperm version        — Print the installed version
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import NoReturn, Optional

import typer
from rich.markup import escape

from graphperm import __version__
from graphperm.config import load_settings, session_from_settings
from graphperm.errors import ConfigError, ExportError, PermissionLookupError, SessionError
from graphperm.lookup.metadata import SUPPORTED_API_VERSIONS, create_lookup
from graphperm.reporter.console_out import console, err_console, print_summary
from graphperm.reporter.csv_out import write_csv
from graphperm.reporter.json_out import to_canonical_json, write_summary
from graphperm.scanner.permission_resolver import PermissionResolver
from graphperm.scanner.pipeline import analyze_script
from graphperm.session import (
    AccessTokenSession,
    SessionProvider,
    StaticSession,
    UnauthenticatedSession,
)

app = typer.Typer(
    name="graphperm",
    help=(
        "graphperm: find the Microsoft Graph permissions a PowerShell script needs. "
        "Run 'graphperm scan --help' for flags."
    ),
    add_completion=False,
)

logger = logging.getLogger("graphperm")


def _configure_logging(*, verbose: bool, quiet: bool, console_output: bool) -> None:
    if quiet:
        logging.basicConfig(level=logging.ERROR)
    elif verbose:
        logging.basicConfig(level=logging.DEBUG)
    else:
        logging.basicConfig(level=logging.INFO)

    for _name in ("urllib3", "requests"):
        logging.getLogger(_name).setLevel(logging.WARNING)

    # print_summary shows run warnings itself.
    logging.getLogger("graphperm.scanner.aggregator").setLevel(
        logging.ERROR if console_output else logging.NOTSET
    )


def _fail(message: str) -> NoReturn:
    err_console.print(f"[red]Error: {escape(message)}[/red]")
    raise typer.Exit(code=1)


def _select_session(
    settings_session: SessionProvider,
    *,
    token: Optional[str],
    scopes: Optional[list[str]],
    no_session: bool,
) -> SessionProvider:
    """Command-line flags win over configuration."""
    if no_session:
        return UnauthenticatedSession()
    if token:
        return AccessTokenSession(token)
    if scopes:
        return StaticSession(scopes)
    return settings_session


@app.command()
def scan(
    script: str = typer.Argument(..., help="PowerShell script to analyze"),
    api_version: Optional[str] = typer.Option(None, "--api-version", help="Graph API version: v1.0 or beta"),
    metadata: Optional[str] = typer.Option(None, "--metadata", help="Command metadata file or http(s) URL"),
    scope: Optional[list[str]] = typer.Option(None, "--scope", help="Granted scope (repeatable)"),
    token: Optional[str] = typer.Option(None, "--token", help="Graph access token to read granted scopes from"),
    no_session: bool = typer.Option(False, "--no-session", help="Ignore any configured session"),
    csv_path: Optional[str] = typer.Option(None, "--csv", help="Also export results to this CSV file"),
    output_json: bool = typer.Option(False, "--json", help="Output raw JSON to stdout (for CI)"),
    report_path: Optional[str] = typer.Option(None, "--report", help="Also write the JSON report to this file"),
    config_path: Optional[str] = typer.Option(None, "--config", help="Config file (default: ~/.graphperm/config.yaml)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging and extra detail"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress all output except errors"),
) -> None:
    """Scan a script and list the permissions each Graph cmdlet needs.

    Cmdlets from Microsoft.Graph.Authentication are ignored. If a session is
    configured (token or scopes), HasScope shows whether it already holds
    one of each cmdlet's permissions.
    """
    _configure_logging(
        verbose=verbose,
        quiet=quiet or output_json,
        console_output=not (quiet or output_json),
    )

    script_path = Path(script).expanduser().resolve()
    if not script_path.exists():
        _fail(f"Script not found: {script_path}")
    if not script_path.is_file():
        _fail(f"Not a file: {script_path}")

    try:
        settings = load_settings(Path(config_path).expanduser() if config_path else None)
    except ConfigError as e:
        _fail(str(e))

    selected_version = api_version or settings.api_version
    if selected_version not in SUPPORTED_API_VERSIONS:
        _fail(f"Unsupported API version {selected_version!r} (expected one of {', '.join(SUPPORTED_API_VERSIONS)})")

    source = metadata or settings.metadata
    if not source:
        _fail("No permission metadata configured. Pass --metadata or set GRAPHPERM_METADATA.")

    session = _select_session(
        session_from_settings(settings),
        token=token,
        scopes=scope,
        no_session=no_session,
    )

    try:
        lookup = create_lookup(source, timeout=settings.http_timeout)
        resolver = PermissionResolver(lookup, session=session, api_version=selected_version)
        summary = analyze_script(script_path, resolver)
    except PermissionLookupError as e:
        _fail(f"Permission lookup failed: {e}")
    except SessionError as e:
        _fail(f"Could not read session scopes: {e}")

    if output_json:
        print(to_canonical_json(summary), end="")
    elif not quiet:
        print_summary(summary, verbose=verbose)

    exports = []
    if csv_path:
        exports.append((Path(csv_path).expanduser(), lambda p: write_csv(summary.results, p)))
    if report_path:
        exports.append((Path(report_path).expanduser(), lambda p: write_summary(summary, p)))

    # Export failures never discard the results already shown.
    for out_path, writer in exports:
        try:
            writer(out_path)
        except ExportError as e:
            err_console.print(f"[yellow]Warning: {escape(str(e))}[/yellow]")
        else:
            if not quiet and not output_json:
                console.print(f"[green]Written to {out_path}[/green]")


@app.command()
def version() -> None:
    """Show graphperm version."""
    console.print(f"graphperm v{__version__}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
