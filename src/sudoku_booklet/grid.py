"""
Grid model, box topology and validation.

This module handles:
- The fixed 2x2 (4x4 puzzle) and 2x3 (6x6 puzzle) box boundaries
- Shape and range checks on puzzle and solution grids
- Building the puzzle grid from an answers sheet and its bold flags
"""

from numbers import Integral, Real
from typing import List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from .config import GivenMode
from .errors import InvalidGridSizeError, RangeError, ShapeError

GRID_SIZE_4 = 4
GRID_SIZE_6 = 6
SUPPORTED_SIZES = (GRID_SIZE_4, GRID_SIZE_6)


class Boundary(NamedTuple):
    """Inclusive, 0-indexed rectangle of one box group."""

    row_start: int
    row_end: int
    col_start: int
    col_end: int

    def cells(self) -> List[Tuple[int, int]]:
        """Return the (row, col) positions inside the box in row-major order."""
        return [
            (row, col)
            for row in range(self.row_start, self.row_end + 1)
            for col in range(self.col_start, self.col_end + 1)
        ]


GROUP_BOUNDARIES_6 = (
    Boundary(0, 1, 0, 2),  # top left
    Boundary(0, 1, 3, 5),  # top right
    Boundary(2, 3, 0, 2),  # middle left
    Boundary(2, 3, 3, 5),  # middle right
    Boundary(4, 5, 0, 2),  # bottom left
    Boundary(4, 5, 3, 5),  # bottom right
)

GROUP_BOUNDARIES_4 = (
    Boundary(0, 1, 0, 1),  # top left
    Boundary(0, 1, 2, 3),  # top right
    Boundary(2, 3, 0, 1),  # bottom left
    Boundary(2, 3, 2, 3),  # bottom right
)


class Cell(NamedTuple):
    value: Optional[int]
    is_given: bool


Grid = List[List[Optional[int]]]


def boundaries_for(grid_size: int) -> Tuple[Boundary, ...]:
    if grid_size == GRID_SIZE_6:
        return GROUP_BOUNDARIES_6
    if grid_size == GRID_SIZE_4:
        return GROUP_BOUNDARIES_4
    raise InvalidGridSizeError(f"Unsupported grid size {grid_size}, expected one of {SUPPORTED_SIZES}")


def as_number(value) -> Optional[int]:
    """
    Return value as an int if it is an integral number, otherwise None.

    Spreadsheets hand back whole numbers as floats (3.0), so integral floats
    are accepted. Booleans are not numbers here.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, Integral):
        return int(value)
    if isinstance(value, Real) and float(value).is_integer():
        return int(value)
    return None


def _check_shape(grid, grid_size: int) -> None:
    if grid is None or len(grid) != grid_size:
        rows = "no" if grid is None else len(grid)
        raise ShapeError(f"Invalid array dimensions: got {rows} rows, expected {grid_size}x{grid_size}")
    for i, row in enumerate(grid):
        if row is None or len(row) != grid_size:
            length = "no" if row is None else len(row)
            raise ShapeError(f"Invalid row dimensions: row {i + 1} has {length} elements, expected {grid_size}")


def validate_grid(grid: Sequence[Sequence], grid_size: int) -> None:
    """
    Check that a puzzle grid is N x N and holds only empty cells or 1..N.

    Args:
        grid: Row-major matrix of None or ints
        grid_size: Expected N

    Raises:
        ShapeError: If the row count or any row length differs from N
        RangeError: If any cell is neither None nor an integer in [1, N]
    """
    _check_shape(grid, grid_size)
    for i, row in enumerate(grid):
        for j, cell in enumerate(row):
            if cell is None:
                continue
            number = as_number(cell)
            if number is None or not 1 <= number <= grid_size:
                raise RangeError(
                    f"Invalid cell value {cell!r} at row {i + 1}, column {j + 1}: "
                    f"must be empty or between 1 and {grid_size}"
                )


def validate_solution(grid: Sequence[Sequence], grid_size: int) -> None:
    """Like validate_grid, but every cell must be filled."""
    _check_shape(grid, grid_size)
    for i, row in enumerate(grid):
        for j, cell in enumerate(row):
            number = as_number(cell)
            if number is None or not 1 <= number <= grid_size:
                raise RangeError(
                    f"Invalid solution value {cell!r} at row {i + 1}, column {j + 1}: "
                    f"all values must be integers between 1 and {grid_size}"
                )


def to_array(grid: Sequence[Sequence], grid_size: int) -> np.ndarray:
    """
    Validate a grid and convert it to an int array with 0 for empty cells.
    """
    validate_grid(grid, grid_size)
    array = np.zeros((grid_size, grid_size), dtype=int)
    for i, row in enumerate(grid):
        for j, cell in enumerate(row):
            if cell is not None:
                array[i, j] = as_number(cell)
    return array


def read_cells(sheet, grid_size: int) -> List[List[Cell]]:
    """
    Read the N x N answers block (anchored at A1) with its bold flags.

    Args:
        sheet: Answers sheet
        grid_size: Puzzle size N

    Returns:
        Row-major matrix of Cell(value, is_given); values outside 1..N become None
    """
    values = sheet.values(f"A1:{chr(64 + grid_size)}{grid_size}")
    cells = []
    for i in range(grid_size):
        row = []
        for j in range(grid_size):
            value = values[i][j] if i < len(values) and j < len(values[i]) else None
            number = as_number(value)
            if number is not None and not 1 <= number <= grid_size:
                number = None
            row.append(Cell(number, sheet.is_bold(i + 1, j + 1)))
        cells.append(row)
    return cells


def select_cells(cells: Sequence[Sequence[Cell]], mode: GivenMode = GivenMode.BOLD) -> Grid:
    """
    Keep the values of the selected subset of cells and blank the rest.

    GivenMode.BOLD keeps the bold (given) cells; GivenMode.PLAIN keeps the others.
    """
    keep_given = GivenMode.from_any(mode) is GivenMode.BOLD
    return [
        [cell.value if cell.is_given == keep_given else None for cell in row]
        for row in cells
    ]


def marked_positions(cells: Sequence[Sequence[Cell]]) -> List[Tuple[int, int]]:
    """Return 0-indexed (row, col) positions of the given cells that hold a value."""
    return [
        (i, j)
        for i, row in enumerate(cells)
        for j, cell in enumerate(row)
        if cell.is_given and cell.value is not None
    ]


def format_grid(grid: Sequence[Sequence[Optional[int]]]) -> str:
    """
    Render a grid as text with box separators.

    Args:
        grid: 4x4 or 6x6 grid, None for empty cells

    Returns:
        Multi-line string
    """
    grid_size = len(grid)
    boundaries = boundaries_for(grid_size)
    box_rows = boundaries[0].row_end - boundaries[0].row_start + 1
    box_cols = boundaries[0].col_end - boundaries[0].col_start + 1

    width = grid_size * 3 + grid_size // box_cols - 1
    border = "+" + "-" * width + "+"
    lines = [border]
    for i, row in enumerate(grid):
        line = "|"
        for j, cell in enumerate(row):
            line += "   " if cell is None else f" {cell} "
            if (j + 1) % box_cols == 0 and j < grid_size - 1:
                line += "|"
        line += "|"
        lines.append(line)
        if (i + 1) % box_rows == 0 and i < grid_size - 1:
            lines.append(border)
    lines.append(border)
    return "\n".join(lines)


def print_grid(grid: Sequence[Sequence[Optional[int]]]) -> None:
    """Pretty-print a grid to stdout."""
    print(format_grid(grid))
