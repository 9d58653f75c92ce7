"""
Word document output via python-docx.

BookletDocument is the thin sink the renderer writes into: headings,
paragraphs, inline images, page breaks and horizontal rules.
"""

import io
import logging
import re
from pathlib import Path

import docx
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Pt

from .cache import ImageResource
from .errors import collaborator_errors

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_RE = re.compile(r'[\\/:*?"<>|]+')


def document_filename(title: str) -> str:
    stem = _UNSAFE_FILENAME_RE.sub("_", title).strip() or "booklet"
    return f"{stem}.docx"


class BookletDocument:
    """A new .docx document with the booklet's page margins."""

    def __init__(self, title: str, margin_top: int = 36, margin_bottom: int = 18):
        self.title = title
        with collaborator_errors("Failed to create document"):
            self.document = docx.Document()
            self.document.core_properties.title = title
            for section in self.document.sections:
                section.top_margin = Pt(margin_top)
                section.bottom_margin = Pt(margin_bottom)

    def heading(self, text: str):
        """Append a centered level-1 heading."""
        with collaborator_errors(f"Failed to add heading '{text}'"):
            header = self.document.add_heading(text, level=1)
            header.alignment = WD_ALIGN_PARAGRAPH.CENTER
        return header

    def paragraph(self, text: str = ""):
        with collaborator_errors("Failed to add paragraph"):
            return self.document.add_paragraph(text)

    def image(self, paragraph, resource: ImageResource, width: int, height: int):
        """
        Append an inline image to a paragraph.

        Args:
            paragraph: Paragraph returned by paragraph()
            resource: Cached PNG image
            width: Width in points
            height: Height in points
        """
        with collaborator_errors(f"Failed to insert image '{resource.locator}'"):
            run = paragraph.add_run()
            return run.add_picture(io.BytesIO(resource.data), width=Pt(width), height=Pt(height))

    def page_break(self) -> None:
        with collaborator_errors("Failed to add page break"):
            self.document.add_page_break()

    def rule(self):
        """Append an empty paragraph with a bottom border as a horizontal rule."""
        with collaborator_errors("Failed to add horizontal rule"):
            paragraph = self.document.add_paragraph()
            properties = paragraph._p.get_or_add_pPr()
            borders = OxmlElement("w:pBdr")
            bottom = OxmlElement("w:bottom")
            bottom.set(qn("w:val"), "single")
            bottom.set(qn("w:sz"), "6")
            bottom.set(qn("w:space"), "1")
            bottom.set(qn("w:color"), "auto")
            borders.append(bottom)
            properties.append(borders)
        return paragraph

    def save(self, directory) -> Path:
        """Save the document as <title>.docx inside directory and return its path."""
        directory = Path(directory)
        path = directory / document_filename(self.title)
        with collaborator_errors(f"Failed to save document '{path}'"):
            directory.mkdir(parents=True, exist_ok=True)
            self.document.save(str(path))
        logger.info("Saved document %s", path)
        return path
