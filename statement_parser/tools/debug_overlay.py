"""
Debug overlay tool for visual QA of column boundaries and row grouping.

Renders each page and draws the resolved column intervals, the header
line, row bands and fragment boxes coloured by the column they were
assigned to. Used when tuning a template's column adjustments.
"""
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
import logging

import fitz  # PyMuPDF
from PIL import Image, ImageDraw, ImageFont

from ..core.columns import resolve_boundaries
from ..core.loader import PDFLoader, TextFragment
from ..core.reconstruct import UNASSIGNED, assign_columns
from ..core.rows import Row, group_rows
from ..core.runner import StatementParserService
from ..models.schema import PdfParserConfig

logger = logging.getLogger(__name__)

COLUMN_COLOURS = [
    (0, 150, 255),
    (0, 200, 90),
    (255, 140, 0),
    (170, 0, 255),
    (255, 0, 120),
    (0, 180, 180),
]
UNASSIGNED_COLOUR = (255, 0, 0)


def overlay_shapes(fragments: List[TextFragment], config: PdfParserConfig,
                   page_height: float) -> Dict[str, Any]:
    """
    Compute overlay geometry for one page in top-origin page coordinates.

    Returns:
        {"columns": [(label, x0, x1)], "header_top": float | None,
         "rows": [(top, bottom)], "fragments": [(x0, top, x1, bottom, column)]}
    """
    boundaries = resolve_boundaries(fragments, config)
    shapes: Dict[str, Any] = {"columns": [], "header_top": None, "rows": [], "fragments": []}
    if boundaries.is_empty:
        return shapes

    for label, boundary in boundaries.positions.items():
        x0, x1 = boundary.interval(config.column_tolerance)
        shapes["columns"].append((label, x0, x1))

    if boundaries.header_y != float("inf"):
        shapes["header_top"] = page_height - boundaries.header_y

    for row in group_rows(fragments, boundaries.header_y, config.row_tolerance):
        top = min(page_height - (f.y + f.height) for f in row.fragments)
        bottom = max(page_height - f.y for f in row.fragments)
        shapes["rows"].append((top, bottom))

        for fragment in row.fragments:
            single = Row(row.y, [fragment])
            assigned = assign_columns(single, boundaries, config.column_tolerance)
            column = next((label for label, text in assigned.items() if text), UNASSIGNED)
            shapes["fragments"].append((
                fragment.x,
                page_height - (fragment.y + fragment.height),
                fragment.x + fragment.width,
                page_height - fragment.y,
                column
            ))

    return shapes


class DebugOverlay:
    """Creates visual debug overlays for a template applied to a PDF."""

    def __init__(self, pdf_path: Path, template_id: str,
                 service: Optional[StatementParserService] = None, zoom: float = 2.0):
        self.pdf_path = pdf_path
        self.zoom = zoom

        service = service or StatementParserService()
        template = service.get_template(template_id)
        if template.format != "PDF":
            raise ValueError(f"Template {template_id} is not a PDF template")
        self.config = PdfParserConfig.model_validate(template.parser_config)

        data = Path(pdf_path).read_bytes()
        self.loader = PDFLoader(data)
        self.pdf_doc = fitz.open(stream=data, filetype="pdf")

    def create_overlays(self, output_dir: Path) -> List[Path]:
        """
        Create debug overlay images for all pages.

        Args:
            output_dir: Directory to save overlay images

        Returns:
            Paths of the written images
        """
        output_dir.mkdir(parents=True, exist_ok=True)
        written = []

        for page_index in range(self.loader.page_count):
            pdf_page = self.pdf_doc[page_index]
            pix = pdf_page.get_pixmap(matrix=fitz.Matrix(self.zoom, self.zoom))
            img = Image.frombytes("RGB", [pix.width, pix.height], pix.samples)

            fragments = self.loader.extract_fragments(page_index)
            shapes = overlay_shapes(fragments, self.config, pdf_page.rect.height)
            overlay = self._draw(shapes, img.size)

            combined = Image.alpha_composite(img.convert("RGBA"), overlay)
            output_path = output_dir / f"page_{page_index + 1:02d}_overlay.png"
            combined.save(output_path)
            written.append(output_path)
            logger.info(f"Created overlay: {output_path}")

        return written

    def _draw(self, shapes: Dict[str, Any], img_size: Tuple[int, int]) -> Image.Image:
        overlay = Image.new("RGBA", img_size, (0, 0, 0, 0))
        draw = ImageDraw.Draw(overlay)
        font = ImageFont.load_default()
        scale = self.zoom
        height = img_size[1]

        colours = {}
        for i, (label, x0, x1) in enumerate(shapes["columns"]):
            colour = COLUMN_COLOURS[i % len(COLUMN_COLOURS)]
            colours[label] = colour
            draw.rectangle([int(x0 * scale), 0, int(x1 * scale), height], fill=colour + (30,))
            draw.text((int(x0 * scale) + 2, 2), label, fill=colour + (255,), font=font)

        if shapes["header_top"] is not None:
            y = int(shapes["header_top"] * scale)
            draw.line([0, y, img_size[0], y], fill=(255, 0, 0, 200), width=2)

        for top, bottom in shapes["rows"]:
            draw.rectangle([0, int(top * scale), img_size[0], int(bottom * scale)],
                           outline=(120, 120, 120, 160), width=1)

        for x0, top, x1, bottom, column in shapes["fragments"]:
            colour = colours.get(column, UNASSIGNED_COLOUR)
            draw.rectangle([int(x0 * scale), int(top * scale), int(x1 * scale), int(bottom * scale)],
                           outline=colour + (220,), width=1)

        return overlay

    def close(self):
        """Close resources."""
        self.loader.close()
        self.pdf_doc.close()


def create_debug_overlay(pdf_path: Path, template_id: str, output_dir: Path,
                         service: Optional[StatementParserService] = None) -> List[Path]:
    """
    Create debug overlay images for a PDF.

    Args:
        pdf_path: Path to PDF file
        template_id: Template ID to use
        output_dir: Directory to save overlay images
        service: Parser service used to look up the template
    """
    overlay = DebugOverlay(pdf_path, template_id, service)
    try:
        return overlay.create_overlays(output_dir)
    finally:
        overlay.close()
