"""
Booklet layout: constraint sections, reference page and solution page.
"""

from itertools import groupby
from typing import Sequence, Tuple

from .cache import ResourceCache
from .document import BookletDocument
from .slices import Slice, SliceExtractor

ROWS = "ROWS"
COLUMNS = "COLUMNS"
GROUPS = "GROUPS"


def section_title(axis: str, may_contain: bool = False) -> str:
    if may_contain:
        return f"{axis} may only contain one of these values"
    return f"{axis} must not contain any of these values"


def _insert_images(doc: BookletDocument, paragraph, entries, cache: ResourceCache, size: Tuple[int, int]) -> None:
    width, height = size
    for entry in entries:
        doc.image(paragraph, cache.get(entry.locator), width, height)


def output_section(
    doc: BookletDocument,
    title: str,
    slices: Sequence[Slice],
    prefix: str,
    cache: ResourceCache,
    size: Tuple[int, int],
) -> None:
    """
    Write one constraint section ("ROW 1: ...", "ROW 2: ...") followed by a page break.

    Args:
        doc: Target document
        title: Section heading
        slices: One slice per row, column or group
        prefix: Label for each slice, e.g. "ROW"
        cache: Image cache
        size: (width, height) of each image in points
    """
    doc.heading(title)
    doc.rule()
    for index, entries in enumerate(slices):
        paragraph = doc.paragraph(f"{prefix} {index + 1}: ")
        _insert_images(doc, paragraph, sorted(entries, key=lambda entry: entry.value), cache, size)
        doc.paragraph("")
    doc.page_break()


def create_reference_page(doc: BookletDocument, extractor: SliceExtractor, cache: ResourceCache,
                          size: Tuple[int, int]) -> None:
    doc.page_break()
    doc.heading("Reference Images")
    for _, entries in groupby(extractor.reference_slice(), key=lambda entry: entry.value):
        paragraph = doc.paragraph("")
        _insert_images(doc, paragraph, entries, cache, size)
        doc.paragraph("")


def create_solution_page(doc: BookletDocument, extractor: SliceExtractor, answers, cache: ResourceCache,
                         size: Tuple[int, int]) -> None:
    doc.page_break()
    doc.heading("Solution")
    for row in extractor.solution_rows(answers):
        paragraph = doc.paragraph("")
        _insert_images(doc, paragraph, row, cache, size)
        doc.paragraph("")


def render_booklet(
    doc: BookletDocument,
    extractor: SliceExtractor,
    puzzle,
    answers,
    cache: ResourceCache,
    size: Tuple[int, int] = (100, 100),
    may_contain: bool = False,
) -> None:
    """Write all five parts of a booklet in order: rows, columns, groups, reference, solution."""
    output_section(doc, section_title(ROWS, may_contain), extractor.row_slices(puzzle), "ROW", cache, size)
    output_section(doc, section_title(COLUMNS, may_contain), extractor.column_slices(puzzle), "COLUMN", cache, size)
    output_section(doc, section_title(GROUPS, may_contain), extractor.group_slices(puzzle), "GROUP", cache, size)
    create_reference_page(doc, extractor, cache, size)
    create_solution_page(doc, extractor, answers, cache, size)
