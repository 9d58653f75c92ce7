"""
Row, column and group slices of a puzzle grid.

A slice is the list of (locator, value) pairs found along one row, column
or box. Constraint slices are sorted by value so that the images in every
section of the booklet appear in the same numeric order, whatever their
position in the grid.
"""

from typing import List, NamedTuple, Optional, Sequence

import numpy as np

from .grid import Boundary, boundaries_for, to_array, validate_solution


class SliceEntry(NamedTuple):
    locator: str
    value: int


Slice = List[SliceEntry]


class SliceExtractor:
    """Walks a validated grid and resolves every non-empty cell to its image locator."""

    def __init__(self, resolver, grid_size: int):
        self.resolver = resolver
        self.grid_size = grid_size

    def _entries(self, values: np.ndarray) -> Slice:
        entries = [SliceEntry(self.resolver.resolve(int(v)), int(v)) for v in values if v]
        return sorted(entries, key=lambda entry: entry.value)

    def row_slices(self, grid: Sequence[Sequence]) -> List[Slice]:
        array = to_array(grid, self.grid_size)
        return [self._entries(array[i, :]) for i in range(self.grid_size)]

    def column_slices(self, grid: Sequence[Sequence]) -> List[Slice]:
        array = to_array(grid, self.grid_size)
        return [self._entries(array[:, j]) for j in range(self.grid_size)]

    def group_slices(self, grid: Sequence[Sequence], topology: Optional[Sequence[Boundary]] = None) -> List[Slice]:
        """
        One slice per box, scanning each box row by row.

        Args:
            grid: Puzzle grid
            topology: Box boundaries; defaults to the standard boxes for N
        """
        array = to_array(grid, self.grid_size)
        if topology is None:
            topology = boundaries_for(self.grid_size)
        return [
            self._entries(array[b.row_start:b.row_end + 1, b.col_start:b.col_end + 1].ravel())
            for b in topology
        ]

    def reference_slice(self) -> Slice:
        """Each number 1..N, repeated N times, for the reference page."""
        return [
            SliceEntry(self.resolver.resolve(number), number)
            for number in range(1, self.grid_size + 1)
            for _ in range(self.grid_size)
        ]

    def solution_rows(self, answers: Sequence[Sequence]) -> List[Slice]:
        """Fully solved grid rows in column order (not sorted)."""
        validate_solution(answers, self.grid_size)
        array = to_array(answers, self.grid_size)
        return [
            [SliceEntry(self.resolver.resolve(int(v)), int(v)) for v in array[i, :]]
            for i in range(self.grid_size)
        ]
