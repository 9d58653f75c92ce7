"""
Exceptions raised while building a booklet.

Grid validation, address resolution and the external collaborators
(workbook, document, image fetch) each have their own error types so the
CLI can tell bad puzzle data apart from a broken environment.
"""

from contextlib import contextmanager


class BookletError(Exception):
    """Base class for every error raised by sudoku_booklet."""
    pass


class ShapeError(BookletError):
    """Raised when a grid is not exactly N x N."""
    pass


class RangeError(BookletError):
    """Raised when a grid cell is neither empty nor an integer in [1, N]."""
    pass


class InvalidGridSizeError(BookletError):
    """Raised when the images row does not describe a 4x4 or 6x6 puzzle."""
    pass


class OutOfRangeError(BookletError):
    """Raised when a puzzle number outside 1..N is resolved."""
    pass


class MissingFormulaError(BookletError):
    """Raised when an image cell does not hold an =IMAGE(...) formula."""
    pass


class MalformedFormulaError(BookletError):
    """Raised when the argument of an =IMAGE(...) formula cannot be extracted."""
    pass


class EmptyReferenceError(BookletError):
    """Raised when a cross-sheet image reference points at an empty cell."""
    pass


class MissingSheetNameError(BookletError):
    """Raised when the images row does not name its answers sheet."""
    pass


class ExternalCollaboratorError(BookletError):
    """Raised when the workbook, document or image fetch layer fails."""
    pass


@contextmanager
def collaborator_errors(message: str):
    """
    Wrap any failure raised inside the block in ExternalCollaboratorError.

    Errors that are already BookletError instances pass through untouched.

    Args:
        message: Prefix describing the operation that was attempted
    """
    try:
        yield
    except BookletError:
        raise
    except Exception as e:
        raise ExternalCollaboratorError(f"{message}: {e}") from e
