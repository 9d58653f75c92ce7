"""
Workbook access on top of openpyxl.

This module is the only place that talks to openpyxl:
- Reading formulas, values and bold flags from 1-based cell positions
- Following "Sheet!A1" references into other sheets
- Copying a template sheet and writing marker values into it
"""

import logging
import re
from pathlib import Path
from typing import Any, List, Optional

import openpyxl
from openpyxl.utils import get_column_letter
from openpyxl.utils.cell import range_boundaries
from openpyxl.workbook.workbook import Workbook
from openpyxl.worksheet.worksheet import Worksheet

from .errors import ExternalCollaboratorError, collaborator_errors

logger = logging.getLogger(__name__)

# Formulas for functions newer than the file format are stored with this prefix
_FUTURE_FUNCTION_PREFIX = "_xlfn."

# Characters Excel refuses in sheet titles, and its title length limit
_INVALID_TITLE_RE = re.compile(r"[\\/?*\[\]:]+")
MAX_TITLE_LENGTH = 31


def cell_name(row: int, col: int) -> str:
    """Return the A1-style name of a 1-based (row, col) position."""
    return f"{get_column_letter(col)}{row}"


def sheet_title(title: str, suffix: str = "") -> str:
    """
    Turn title into a sheet title Excel accepts.

    Forbidden characters become "_" and the result is cut to 31 characters,
    shortening the title rather than the suffix.

    Args:
        title: Free-form title, e.g. a puzzle name
        suffix: Text kept intact at the end, e.g. " Grid"

    Returns:
        A non-empty title without forbidden characters
    """
    stem = _INVALID_TITLE_RE.sub("_", title).strip().strip("'")
    stem = stem[:max(MAX_TITLE_LENGTH - len(suffix), 0)].rstrip()
    return f"{stem}{suffix}".strip().strip("'")[:MAX_TITLE_LENGTH] or "Sheet"


class Sheet:
    """A single worksheet addressed with 1-based row and column numbers."""

    def __init__(self, worksheet: Worksheet):
        self.worksheet = worksheet

    @property
    def name(self) -> str:
        return self.worksheet.title

    @property
    def max_row(self) -> int:
        return self.worksheet.max_row

    def formula(self, row: int, col: int) -> str:
        """
        Return the formula text of a cell, or an empty string if it holds a plain value.

        Args:
            row: 1-based row number
            col: 1-based column number

        Returns:
            Formula starting with "=", with any "_xlfn." prefix removed
        """
        with collaborator_errors(f"Failed to read formula at {self.name}!{cell_name(row, col)}"):
            value = self.worksheet.cell(row=row, column=col).value
        if not isinstance(value, str) or not value.startswith("="):
            return ""
        if value[1:].lower().startswith(_FUTURE_FUNCTION_PREFIX):
            return "=" + value[1 + len(_FUTURE_FUNCTION_PREFIX):]
        return value

    def value(self, row: int, col: int) -> Any:
        with collaborator_errors(f"Failed to read value at {self.name}!{cell_name(row, col)}"):
            return self.worksheet.cell(row=row, column=col).value

    def is_bold(self, row: int, col: int) -> bool:
        with collaborator_errors(f"Failed to read font at {self.name}!{cell_name(row, col)}"):
            font = self.worksheet.cell(row=row, column=col).font
        return bool(font is not None and font.bold)

    def values(self, address_range: str) -> List[List[Any]]:
        """
        Return the values of an A1-style range as a list of rows.

        Args:
            address_range: Range such as "A1:F6"

        Returns:
            Row-major matrix of cell values
        """
        with collaborator_errors(f"Failed to read range {self.name}!{address_range}"):
            min_col, min_row, max_col, max_row = range_boundaries(address_range)
            rows = self.worksheet.iter_rows(
                min_row=min_row, max_row=max_row,
                min_col=min_col, max_col=max_col,
                values_only=True,
            )
            return [list(row) for row in rows]

    def set_value(self, row: int, col: int, value: Any) -> None:
        with collaborator_errors(f"Failed to write {self.name}!{cell_name(row, col)}"):
            self.worksheet.cell(row=row, column=col, value=value)


class Spreadsheet:
    """
    An openpyxl workbook holding the images sheet, answers sheets and templates.

    Formulas are preserved (the workbook is never opened with data_only=True)
    because image cells are recognised by their =IMAGE(...) formula text.
    """

    def __init__(self, workbook: Workbook, path: Optional[Path] = None):
        self.workbook = workbook
        self.path = Path(path) if path is not None else None

    @classmethod
    def open(cls, path) -> "Spreadsheet":
        path = Path(path)
        with collaborator_errors(f"Failed to open workbook '{path}'"):
            workbook = openpyxl.load_workbook(path)
        logger.debug("Opened workbook %s with sheets %s", path, workbook.sheetnames)
        return cls(workbook, path)

    @property
    def sheet_names(self) -> List[str]:
        return list(self.workbook.sheetnames)

    def sheet(self, name: Optional[str] = None) -> Sheet:
        """
        Return a sheet by name, or the active sheet when no name is given.

        Raises:
            ExternalCollaboratorError: If the sheet does not exist
        """
        if name is None:
            with collaborator_errors("Failed to access spreadsheet"):
                worksheet = self.workbook.active
            if worksheet is None:
                raise ExternalCollaboratorError("Failed to access spreadsheet: workbook has no active sheet")
            return Sheet(worksheet)

        if name not in self.workbook.sheetnames:
            raise ExternalCollaboratorError(f'Sheet "{name}" not found')
        return Sheet(self.workbook[name])

    def reference_value(self, sheet_name: str, address: str) -> Any:
        """Return the value stored at sheet_name!address."""
        sheet = self.sheet(sheet_name)
        with collaborator_errors(f"Failed to read {sheet_name}!{address}"):
            return sheet.worksheet[address].value

    def delete_sheet_if_exists(self, name: str) -> bool:
        if name not in self.workbook.sheetnames:
            return False
        with collaborator_errors(f'Failed to delete sheet "{name}"'):
            self.workbook.remove(self.workbook[name])
        logger.debug("Deleted existing sheet %s", name)
        return True

    def copy_sheet(self, template_name: str, title: str) -> Sheet:
        """
        Copy a template sheet inside the workbook under a new title.

        Args:
            template_name: Name of the sheet to copy
            title: Title of the new sheet

        Returns:
            The new sheet

        Raises:
            ExternalCollaboratorError: If the copy fails; no partial copy is left behind
        """
        template = self.sheet(template_name)
        with collaborator_errors(f'Failed to copy sheet "{template_name}"'):
            copy = self.workbook.copy_worksheet(template.worksheet)
            try:
                copy.title = title
            except ValueError:
                self.workbook.remove(copy)
                raise
        logger.debug("Copied sheet %s to %s", template_name, title)
        return Sheet(copy)

    def save(self, path=None) -> Path:
        target = Path(path) if path is not None else self.path
        if target is None:
            raise ExternalCollaboratorError("Failed to save workbook: no path given")
        with collaborator_errors(f"Failed to save workbook '{target}'"):
            target.parent.mkdir(parents=True, exist_ok=True)
            self.workbook.save(target)
        logger.info("Saved workbook %s", target)
        return target
