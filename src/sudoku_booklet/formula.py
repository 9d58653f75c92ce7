"""
Parsing of =IMAGE(...) cell formulas.

The argument of an image formula is either a quoted URL, a reference into
another sheet ("Catalog!B5"), or bare text that is taken as the URL itself.
"""

import re
from typing import NamedTuple, Union

from .errors import MalformedFormulaError, MissingFormulaError

_IMAGE_PREFIX = "=image("
_IMAGE_RE = re.compile(r"^=image\((.+)\)\s*$", re.IGNORECASE | re.DOTALL)


class LiteralLocator(NamedTuple):
    url: str


class CrossReference(NamedTuple):
    sheet: str
    address: str

    def __str__(self) -> str:
        return f"{self.sheet}!{self.address}"


ImageFormula = Union[LiteralLocator, CrossReference]


def is_image_formula(formula) -> bool:
    return isinstance(formula, str) and formula.strip().lower().startswith(_IMAGE_PREFIX)


def _first_argument(content: str) -> str:
    # IMAGE(url, mode, ...) - only the url matters
    content = content.strip()
    if content.startswith('"'):
        end = content.find('"', 1)
        return content if end == -1 else content[:end + 1]
    return content.split(",", 1)[0].strip()


def parse_image_formula(formula: str, where: str = "cell") -> ImageFormula:
    """
    Parse an =IMAGE(...) formula into a literal URL or a cross-sheet reference.

    Args:
        formula: Formula text, e.g. '=image("http://x/a.png")' or '=IMAGE(Catalog!B5)'
        where: Cell name used in error messages

    Returns:
        LiteralLocator or CrossReference

    Raises:
        MissingFormulaError: If the text is not an image formula
        MalformedFormulaError: If the formula argument cannot be extracted
    """
    if not is_image_formula(formula):
        raise MissingFormulaError(f"Cell {where} does not contain an image formula")

    match = _IMAGE_RE.match(formula.strip())
    if not match:
        raise MalformedFormulaError(f"Invalid image formula in cell {where}: {formula}")

    content = _first_argument(match.group(1))
    if not content or content == '""':
        raise MalformedFormulaError(f"Invalid image formula in cell {where}: {formula}")

    if len(content) >= 2 and content.startswith('"') and content.endswith('"'):
        return LiteralLocator(content[1:-1])

    if "!" in content:
        sheet, _, address = content.rpartition("!")
        sheet = sheet.strip()
        if len(sheet) >= 2 and sheet.startswith("'") and sheet.endswith("'"):
            sheet = sheet[1:-1].replace("''", "'")
        address = address.replace("$", "").strip()
        if not sheet or not address:
            raise MalformedFormulaError(f"Invalid sheet reference in cell {where}: {content}")
        return CrossReference(sheet, address)

    return LiteralLocator(content)
