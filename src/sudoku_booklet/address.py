"""
Mapping puzzle numbers to image locators.

The images row of a puzzle holds one =IMAGE(...) formula per number, starting
at column_offset + 1. The same row also tells how big the puzzle is: exactly
4 or exactly 6 image formulas in the scan window.
"""

import logging
from typing import Dict, Optional

from .cache import ImageResource, ResourceCache
from .errors import EmptyReferenceError, InvalidGridSizeError, OutOfRangeError, collaborator_errors
from .formula import CrossReference, is_image_formula, parse_image_formula
from .grid import SUPPORTED_SIZES
from .sheets import Sheet, Spreadsheet, cell_name

logger = logging.getLogger(__name__)

SCAN_WINDOW = 6


def detect_grid_size(sheet: Sheet, row: int = 1, column_offset: int = 0, window: int = SCAN_WINDOW) -> int:
    """
    Infer the puzzle size from the number of image formulas in the images row.

    Args:
        sheet: Images sheet
        row: 1-based row holding the image formulas
        column_offset: Number of columns before the first image cell
        window: Number of cells to scan

    Returns:
        4 or 6

    Raises:
        InvalidGridSizeError: If the count is anything other than 4 or 6
    """
    first_col = column_offset + 1
    last_col = column_offset + window
    count = sum(
        1 for col in range(first_col, last_col + 1)
        if is_image_formula(sheet.formula(row, col))
    )
    if count not in SUPPORTED_SIZES:
        scanned = f"{cell_name(row, first_col)}:{cell_name(row, last_col)}"
        raise InvalidGridSizeError(
            f"Found {count} image formulas in {sheet.name}!{scanned}, expected 4 or 6"
        )
    return count


class CellAddressResolver:
    """
    Resolves puzzle numbers 1..N to image URLs for one images row.

    Locators are memoised so each image cell (and any cross-sheet cell it
    points at) is read once per resolver.
    """

    def __init__(
        self,
        spreadsheet: Spreadsheet,
        sheet: Sheet,
        grid_size: int,
        row: int = 1,
        column_offset: int = 0,
        cache: Optional[ResourceCache] = None,
    ):
        self.spreadsheet = spreadsheet
        self.sheet = sheet
        self.grid_size = grid_size
        self.row = row
        self.column_offset = column_offset
        self.cache = cache if cache is not None else ResourceCache()
        self._locators: Dict[int, str] = {}

    def cell_for(self, number: int) -> str:
        return cell_name(self.row, self.column_offset + number)

    def resolve(self, number: int) -> str:
        """
        Return the image URL for a puzzle number.

        Raises:
            OutOfRangeError: If number is not in 1..N
            MissingFormulaError: If the image cell has no =IMAGE(...) formula
            MalformedFormulaError: If the formula argument cannot be extracted
            EmptyReferenceError: If a cross-sheet reference points at an empty cell
        """
        if isinstance(number, bool) or not isinstance(number, int) or not 1 <= number <= self.grid_size:
            raise OutOfRangeError(f"Invalid number: {number!r}. Must be between 1 and {self.grid_size}")

        if number in self._locators:
            return self._locators[number]

        where = self.cell_for(number)
        formula = self.sheet.formula(self.row, self.column_offset + number)
        logger.debug("Processing image formula for number %d: %s", number, formula)

        parsed = parse_image_formula(formula, where=where)
        if isinstance(parsed, CrossReference):
            locator = self._follow(parsed)
        else:
            locator = parsed.url

        self._locators[number] = locator
        return locator

    def _follow(self, reference: CrossReference) -> str:
        logger.debug("Looking up cell reference: %s", reference)
        with collaborator_errors(f"Failed to get URL from referenced cell {reference}"):
            value = self.spreadsheet.reference_value(reference.sheet, reference.address)

        if not isinstance(value, str) or not value.strip():
            raise EmptyReferenceError(f"Referenced cell {reference} does not contain a valid URL")
        return value.strip()

    def image(self, number: int) -> ImageResource:
        return self.cache.get(self.resolve(number))
