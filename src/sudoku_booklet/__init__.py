"""
Sudoku Booklet - printable picture-Sudoku booklets from a spreadsheet.

This package provides functionality for:
- Reading image formulas and answers grids from an .xlsx workbook
- Slicing 4x4 and 6x6 grids into row, column and box constraint lists
- Writing the booklet (constraints, reference page, solution) as a .docx
- Marking the given cells on a copy of a template sheet
"""

__version__ = "0.1.0"

from .errors import (
    BookletError, ShapeError, RangeError, InvalidGridSizeError, OutOfRangeError,
    MissingFormulaError, MalformedFormulaError, EmptyReferenceError,
    MissingSheetNameError, ExternalCollaboratorError,
)
from .config import BookletConfig, GivenMode, BatchPolicy
from .grid import Boundary, Cell, GROUP_BOUNDARIES_4, GROUP_BOUNDARIES_6, boundaries_for, validate_grid, validate_solution, read_cells, select_cells, print_grid
from .formula import LiteralLocator, CrossReference, parse_image_formula, is_image_formula
from .address import detect_grid_size, CellAddressResolver
from .slices import SliceEntry, SliceExtractor
from .cache import ImageResource, ResourceCache, fetch_url
from .sheets import Sheet, Spreadsheet
from .document import BookletDocument
from .render import section_title, render_booklet
from .booklet import PuzzleResult, generate_puzzle, generate_batch, mark_template

__all__ = [
    # Grid model and validation
    "Boundary",
    "Cell",
    "GROUP_BOUNDARIES_4",
    "GROUP_BOUNDARIES_6",
    "boundaries_for",
    "validate_grid",
    "validate_solution",
    "read_cells",
    "select_cells",
    "print_grid",
    # Image addressing
    "LiteralLocator",
    "CrossReference",
    "parse_image_formula",
    "is_image_formula",
    "detect_grid_size",
    "CellAddressResolver",
    "SliceEntry",
    "SliceExtractor",
    "ImageResource",
    "ResourceCache",
    "fetch_url",
    # Collaborators
    "Sheet",
    "Spreadsheet",
    "BookletDocument",
    # Pipeline
    "BookletConfig",
    "GivenMode",
    "BatchPolicy",
    "section_title",
    "render_booklet",
    "PuzzleResult",
    "generate_puzzle",
    "generate_batch",
    "mark_template",
    # Exceptions
    "BookletError",
    "ShapeError",
    "RangeError",
    "InvalidGridSizeError",
    "OutOfRangeError",
    "MissingFormulaError",
    "MalformedFormulaError",
    "EmptyReferenceError",
    "MissingSheetNameError",
    "ExternalCollaboratorError",
]
