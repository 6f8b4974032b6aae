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

"""CSV export — the tabular interchange format.

Columns, in order: Cmdlet, LineNumbers, LeastPrivilegedEffectivePermission,
Description, Permissions, HasScope. List columns are joined with ", ";
every field is quoted; booleans are written True/False.
"""

from __future__ import annotations

import csv
import io
import logging
from pathlib import Path
from typing import Iterable

from graphperm.errors import ExportError
from graphperm.models.results import AnalysisResult

logger = logging.getLogger(__name__)

CSV_COLUMNS = (
    "Cmdlet",
    "LineNumbers",
    "LeastPrivilegedEffectivePermission",
    "Description",
    "Permissions",
    "HasScope",
)


def result_to_row(result: AnalysisResult) -> dict[str, str]:
    return {
        "Cmdlet": result.command_name,
        "LineNumbers": ", ".join(str(n) for n in result.line_numbers),
        "LeastPrivilegedEffectivePermission": result.least_privileged_permission or "",
        "Description": result.description or "",
        "Permissions": ", ".join(result.all_permissions),
        "HasScope": "True" if result.has_scope else "False",
    }


def to_csv(results: Iterable[AnalysisResult]) -> str:
    """Render results as CSV text with a header row."""
    buffer = io.StringIO()
    writer = csv.DictWriter(
        buffer, fieldnames=CSV_COLUMNS, quoting=csv.QUOTE_ALL, lineterminator="\n"
    )
    writer.writeheader()
    for result in results:
        writer.writerow(result_to_row(result))
    return buffer.getvalue()


def write_csv(results: Iterable[AnalysisResult], output_path: Path) -> None:
    """Write results to ``output_path``.

    Raises:
        ExportError: the file could not be written.
    """
    content = to_csv(results)
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(content, encoding="utf-8", newline="\n")
    except OSError as e:
        raise ExportError(f"Could not write {output_path}: {e}") from e
    logger.info("Wrote CSV report to %s", output_path)
