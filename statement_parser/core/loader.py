"""
PDF loading and text fragment extraction using pdfplumber.
"""
import io
import re
import pdfplumber
from typing import List, Optional
import logging

from .errors import ExtractionError

logger = logging.getLogger(__name__)

LIGATURES = {
    'ﬁ': 'fi',
    'ﬂ': 'fl',
    'ﬀ': 'ff',
    'ﬃ': 'ffi',
    'ﬄ': 'ffl',
    'ﬆ': 'st',
    'ﬅ': 'st'
}


class TextFragment:
    """A piece of positioned text from one page.

    ``y`` is measured from the bottom of the page, so a larger ``y`` is
    higher up and rows read top to bottom in descending ``y``.
    """
    __slots__ = ("text", "x", "y", "width", "height", "page")

    def __init__(self, text: str, x: float, y: float, width: float = 0.0,
                 height: float = 0.0, page: int = 0):
        object.__setattr__(self, "text", text)
        object.__setattr__(self, "x", x)
        object.__setattr__(self, "y", y)
        object.__setattr__(self, "width", width)
        object.__setattr__(self, "height", height)
        object.__setattr__(self, "page", page)

    def __setattr__(self, name, value):
        raise AttributeError("TextFragment is immutable")

    def __eq__(self, other):
        if not isinstance(other, TextFragment):
            return NotImplemented
        return all(getattr(self, s) == getattr(other, s) for s in self.__slots__)

    def __hash__(self):
        return hash(tuple(getattr(self, s) for s in self.__slots__))

    def __repr__(self):
        return f"TextFragment('{self.text}', x={self.x:.1f}, y={self.y:.1f}, page={self.page})"


def normalize_fragment_text(text: str) -> str:
    """Replace ligatures and collapse whitespace."""
    for ligature, replacement in LIGATURES.items():
        text = text.replace(ligature, replacement)
    return re.sub(r'\s+', ' ', text).strip()


class PDFLoader:
    """Opens a PDF from bytes and extracts text fragments page by page."""

    def __init__(self, data: bytes, password: Optional[str] = None):
        self.data = data
        self.password = password
        self._pdf = None

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def open(self):
        if self._pdf is not None:
            return self._pdf
        try:
            self._pdf = pdfplumber.open(io.BytesIO(self.data), password=self.password or "")
            # Page tree is parsed lazily; touch it so broken files fail here.
            logger.info(f"Loaded PDF with {len(self._pdf.pages)} pages")
        except Exception as e:
            self.close()
            logger.error(f"Error loading PDF: {e}")
            raise ExtractionError(f"Could not read PDF document: {str(e) or type(e).__name__}") from e
        return self._pdf

    @property
    def page_count(self) -> int:
        return len(self.open().pages)

    def extract_fragments(self, page_index: int) -> List[TextFragment]:
        """Extract positioned words from a page (0-indexed)."""
        pdf = self.open()
        if not 0 <= page_index < len(pdf.pages):
            raise ExtractionError(f"Page index out of range: {page_index}")

        page = pdf.pages[page_index]
        try:
            # Blank chars are kept so a table cell ("Transaction Date") stays
            # one fragment; cells are split by the gap between columns.
            words_data = page.extract_words(
                x_tolerance=1,
                y_tolerance=2,
                keep_blank_chars=True,
                use_text_flow=True
            )
        except Exception as e:
            logger.error(f"Error extracting words from page {page_index}: {e}")
            raise ExtractionError(f"Could not extract text from page {page_index + 1}: {e}") from e

        fragments = []
        for word_data in words_data:
            text = normalize_fragment_text(word_data.get('text', ''))
            if not text:
                continue
            x0 = float(word_data.get('x0', 0))
            x1 = float(word_data.get('x1', x0))
            top = float(word_data.get('top', 0))
            bottom = float(word_data.get('bottom', top))
            fragments.append(TextFragment(
                text=text,
                x=x0,
                y=float(page.height) - bottom,
                width=x1 - x0,
                height=bottom - top,
                page=page_index
            ))

        logger.debug(f"Page {page_index + 1}: {len(fragments)} fragments extracted")
        return fragments

    def close(self):
        """Close the PDF file."""
        if self._pdf:
            self._pdf.close()
        self._pdf = None


def extract_fragments(data: bytes, page_index: int, password: Optional[str] = None) -> List[TextFragment]:
    """
    Extract the text fragments of a single page.

    Args:
        data: Raw PDF bytes
        page_index: 0-based page index
        password: Password for encrypted documents

    Returns:
        List of TextFragment objects
    """
    with PDFLoader(data, password) as loader:
        return loader.extract_fragments(page_index)
