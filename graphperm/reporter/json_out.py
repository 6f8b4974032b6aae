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

"""Canonical JSON output for scan summaries.

Produces deterministic JSON output:
- Sorted keys
- 2-space indentation
- LF line endings
- Trailing newline
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from graphperm.errors import ExportError
from graphperm.models.results import ScanSummary

logger = logging.getLogger(__name__)


def to_canonical_json(data: BaseModel | dict[str, Any]) -> str:
    """Serialize a model or mapping as canonical JSON text.

    json.dumps escapes CR and LF inside strings, so the only line breaks
    are the indentation newlines.
    """
    payload = data.model_dump(mode="json") if isinstance(data, BaseModel) else data
    return json.dumps(payload, sort_keys=True, indent=2, ensure_ascii=False) + "\n"


def write_summary(summary: ScanSummary, output_path: Path) -> None:
    """Write a scan summary as canonical JSON.

    Raises:
        ExportError: the file could not be written.
    """
    content = to_canonical_json(summary)
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(content, encoding="utf-8", newline="\n")
    except OSError as e:
        raise ExportError(f"Could not write {output_path}: {e}") from e
    logger.info("Wrote JSON report to %s", output_path)
