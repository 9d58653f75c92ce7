"""
End-to-end generation of one booklet, or one booklet per row of a batch.

For every puzzle the steps run strictly in order: detect the grid size,
read and validate the answers sheet, render the document, save it, then
mark the given cells on a copy of the template sheet. A failure aborts the
run; documents and template copies that were already written are kept.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from .address import SCAN_WINDOW, CellAddressResolver, detect_grid_size
from .cache import ResourceCache
from .config import BatchPolicy, BookletConfig
from .document import BookletDocument
from .errors import MissingSheetNameError
from .grid import Cell, Grid, marked_positions, read_cells, select_cells, validate_grid, validate_solution
from .render import render_booklet
from .sheets import Sheet, Spreadsheet, cell_name, sheet_title
from .slices import SliceExtractor

logger = logging.getLogger(__name__)


@dataclass
class PuzzleResult:
    """What a single puzzle run produced."""

    title: str
    row: int
    grid_size: int
    puzzle: Grid
    document_path: Path
    template_copy: Optional[str] = None


def template_copy_name(title: str) -> str:
    return sheet_title(title, suffix=" Grid")


def answers_sheet_name(images: Sheet, row: int, column_offset: int, grid_size: int) -> str:
    """
    Return the answers sheet name stored right after the last image cell.

    Raises:
        MissingSheetNameError: If the cell is empty or not text
    """
    col = column_offset + grid_size + 1
    name = images.value(row, col)
    if not isinstance(name, str) or not name.strip():
        raise MissingSheetNameError(
            f"Cell {images.name}!{cell_name(row, col)} does not contain a valid sheet name"
        )
    return name.strip()


def mark_template(
    spreadsheet: Spreadsheet,
    template_name: str,
    title: str,
    cells: Sequence[Sequence[Cell]],
    origin: Tuple[int, int] = (1, 1),
    marker: str = "X",
) -> Sheet:
    """
    Copy the template sheet and write marker into every given cell.

    Args:
        spreadsheet: Workbook holding the template
        template_name: Sheet to copy
        title: Title of the copy, made sheet-safe first; an existing sheet with
            that title is replaced
        cells: Answers grid with given flags
        origin: 1-based (row, col) of the grid's top-left cell in the template
        marker: Value written into given cells
    """
    title = sheet_title(title)
    spreadsheet.delete_sheet_if_exists(title)
    copy = spreadsheet.copy_sheet(template_name, title)
    origin_row, origin_col = origin
    for i, j in marked_positions(cells):
        copy.set_value(origin_row + i, origin_col + j, marker)
    return copy


def _save_workbook(spreadsheet: Spreadsheet, config: BookletConfig) -> Optional[Path]:
    if config.workbook_out is None and spreadsheet.path is None:
        logger.warning("Workbook has no path; template copies were not saved")
        return None
    return spreadsheet.save(config.workbook_out)


def generate_puzzle(
    spreadsheet: Spreadsheet,
    config: BookletConfig,
    cache: Optional[ResourceCache] = None,
    row: Optional[int] = None,
    title: Optional[str] = None,
    images: Optional[Sheet] = None,
) -> PuzzleResult:
    """
    Build the booklet for the puzzle described by one row of the images sheet.

    Args:
        spreadsheet: Source workbook
        config: Run configuration
        cache: Image cache shared across the run
        row: Images row; defaults to config.row
        title: Document title; defaults to config.title
        images: Images sheet; defaults to config.images_sheet or the active sheet

    Returns:
        PuzzleResult describing the written document
    """
    row = config.row if row is None else row
    title = config.title if title is None else title
    if cache is None:
        cache = ResourceCache()

    if images is None:
        images = spreadsheet.sheet(config.images_sheet)
    grid_size = detect_grid_size(images, row, config.column_offset)
    logger.info("Generating %dx%d booklet '%s' from %s row %d", grid_size, grid_size, title, images.name, row)

    answers_sheet = spreadsheet.sheet(answers_sheet_name(images, row, config.column_offset, grid_size))
    answers = answers_sheet.values(f"A1:{chr(64 + grid_size)}{grid_size}")
    validate_solution(answers, grid_size)

    cells = read_cells(answers_sheet, grid_size)
    puzzle = select_cells(cells, config.given_mode)
    validate_grid(puzzle, grid_size)

    resolver = CellAddressResolver(spreadsheet, images, grid_size, row, config.column_offset, cache)
    extractor = SliceExtractor(resolver, grid_size)

    doc = BookletDocument(title, config.margin_top, config.margin_bottom)
    render_booklet(doc, extractor, puzzle, answers, cache, config.image_size, config.may_contain)
    document_path = doc.save(config.output_dir)

    result = PuzzleResult(title, row, grid_size, puzzle, document_path)
    if config.template_sheet:
        copy = mark_template(
            spreadsheet, config.template_sheet, template_copy_name(title),
            cells, config.template_origin, config.marker,
        )
        result.template_copy = copy.name
        _save_workbook(spreadsheet, config)

    return result


def row_name(images: Sheet, row: int, name_column: int) -> Optional[str]:
    value = images.value(row, name_column)
    if value is None:
        return None
    name = str(value).strip()
    return name or None


def generate_batch(
    spreadsheet: Spreadsheet,
    config: BookletConfig,
    cache: Optional[ResourceCache] = None,
) -> List[PuzzleResult]:
    """
    Build one booklet per named row, from config.start_row to the last used row.

    Rows without a name are skipped or end the batch, per config.batch_policy.
    """
    window = range(config.column_offset + 1, config.column_offset + SCAN_WINDOW + 2)
    if config.name_column in window:
        raise ValueError(
            f"Name column {config.name_column} overlaps the image cells starting at "
            f"column {config.column_offset + 1}; increase column_offset"
        )

    if cache is None:
        cache = ResourceCache()
    images = spreadsheet.sheet(config.images_sheet)
    results = []
    # Document paths and template copy names already written, by row
    written = {}

    for row in range(config.start_row, images.max_row + 1):
        name = row_name(images, row, config.name_column)
        if name is None:
            if config.batch_policy is BatchPolicy.STOP:
                logger.info("Row %d has no name; stopping batch", row)
                break
            logger.debug("Row %d has no name; skipping", row)
            continue
        result = generate_puzzle(spreadsheet, config, cache, row=row, title=name, images=images)
        for output in (result.document_path, result.template_copy):
            if output is None:
                continue
            if output in written:
                logger.warning(
                    "Row %d ('%s') overwrote %s written for row %d",
                    row, name, output, written[output],
                )
            written[output] = row
        results.append(result)

    return results
