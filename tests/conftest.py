"""
Shared fixtures: in-memory workbooks and a fake image fetcher.

Workbooks are built with openpyxl on the fly and images with NumPy + cv2,
so tests never touch the network or external files.
"""

import sys
from pathlib import Path

import cv2
import numpy as np
import pytest
from openpyxl import Workbook
from openpyxl.styles import Font

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from sudoku_booklet.sheets import Spreadsheet


SOLUTION_4 = [
    [1, 2, 3, 4],
    [3, 4, 1, 2],
    [2, 1, 4, 3],
    [4, 3, 2, 1],
]

SOLUTION_6 = [
    [1, 2, 3, 4, 5, 6],
    [4, 5, 6, 1, 2, 3],
    [2, 3, 1, 5, 6, 4],
    [5, 6, 4, 2, 3, 1],
    [3, 1, 2, 6, 4, 5],
    [6, 4, 5, 3, 1, 2],
]

# Diagonal givens for the 4x4 solution
GIVEN_4 = [
    [True, False, False, False],
    [False, True, False, False],
    [False, False, True, False],
    [False, False, False, True],
]


def png_bytes(value: int, size: int = 16) -> bytes:
    """Create a small synthetic PNG whose gray level depends on value."""
    img = np.full((size, size, 3), 40 * value % 256, dtype=np.uint8)
    cv2.rectangle(img, (2, 2), (size - 3, size - 3), (0, 0, 0), 1)
    ok, encoded = cv2.imencode(".png", img)
    assert ok
    return encoded.tobytes()


class FakeFetch:
    """Callable standing in for the HTTP fetcher; records every locator requested."""

    def __init__(self):
        self.calls = []

    def __call__(self, locator: str) -> bytes:
        self.calls.append(locator)
        digits = "".join(ch for ch in locator if ch.isdigit()) or "1"
        return png_bytes(int(digits[-1]))


def image_url(number: int) -> str:
    return f"http://x/img{number}.png"


def add_images_row(ws, row, grid_size, answers_sheet, column_offset=0, formulas=None):
    """Write one images row: N image formulas followed by the answers sheet name."""
    for n in range(1, grid_size + 1):
        formula = formulas[n - 1] if formulas else f'=IMAGE("{image_url(n)}")'
        ws.cell(row=row, column=column_offset + n, value=formula)
    ws.cell(row=row, column=column_offset + grid_size + 1, value=answers_sheet)


def add_answers_sheet(wb, name, solution, given):
    ws = wb.create_sheet(name)
    for i, row in enumerate(solution):
        for j, value in enumerate(row):
            cell = ws.cell(row=i + 1, column=j + 1, value=value)
            if given[i][j]:
                cell.font = Font(bold=True)
    return ws


def build_workbook(solution=None, given=None, formulas=None):
    """Single-puzzle workbook: images in row 1 of 'Images', answers in 'Answers'."""
    solution = solution or SOLUTION_4
    given = given or GIVEN_4
    wb = Workbook()
    ws = wb.active
    ws.title = "Images"
    add_images_row(ws, 1, len(solution), "Answers", formulas=formulas)
    add_answers_sheet(wb, "Answers", solution, given)
    return wb


@pytest.fixture
def fake_fetch():
    return FakeFetch()


@pytest.fixture
def workbook():
    return build_workbook()


@pytest.fixture
def spreadsheet(workbook):
    return Spreadsheet(workbook)
