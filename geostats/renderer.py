# geostats/renderer.py

import logging
from typing import Any, List, Protocol

from geostats.database import Workbook

logger = logging.getLogger(__name__)


class Renderer(Protocol):
    def write(self, workbook: Workbook, sheet_name: str, rows: List[List[Any]]) -> None:
        ...


class SheetRenderer:
    """Overwrite a named table with freshly rendered rows.

    Rows are padded to a common width so the table reads as a rectangle,
    the way a spreadsheet range would.
    """

    def write(self, workbook: Workbook, sheet_name: str, rows: List[List[Any]]) -> None:
        width = max((len(row) for row in rows), default=0)
        padded = [list(row) + [""] * (width - len(row)) for row in rows]
        workbook.replace_values(sheet_name, padded)
        logger.debug("Rendered %s rows into '%s'", len(padded), sheet_name)
