# geostats/exporter.py

import csv
import io
from typing import Any, List, Optional

from geostats.database import Workbook
from geostats.errors import NotFoundError, ValidationError


def rows_to_csv(rows: List[List[Any]]) -> str:
    """Quote every cell, double embedded quotes, join rows with '\\n' (no trailing newline)."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for row in rows:
        writer.writerow(["" if cell is None else cell for cell in row])
    text = buffer.getvalue()
    return text[:-1] if text.endswith("\n") else text


def export_sheet(workbook: Workbook, sheet_name: Optional[str]) -> str:
    """
    Export one table of a workbook as CSV, header row first.

    Raises:
        ValidationError: If no sheet name is given or the sheet has no data rows
        NotFoundError: If the sheet does not exist
    """
    if not sheet_name:
        raise ValidationError('Missing "sheet" parameter')
    if not workbook.has_sheet(sheet_name):
        raise NotFoundError(f"Sheet not found: {sheet_name}")

    rows = workbook.get_values(sheet_name)
    if len(rows) < 2:
        raise ValidationError(f'Sheet "{sheet_name}" is empty')
    return rows_to_csv(rows)
