"""
Column boundary resolution from table header positions.
"""
from typing import Callable, Dict, List, Optional
from rapidfuzz import fuzz
import logging

from .loader import TextFragment
from ..models.schema import BoundarySet, ColumnBoundary, ColumnPosition, PdfParserConfig

logger = logging.getLogger(__name__)

HeaderMatcher = Callable[[List[TextFragment], str], Optional[TextFragment]]


def exact_header_match(fragments: List[TextFragment], label: str) -> Optional[TextFragment]:
    """First fragment whose text equals the label, ignoring case."""
    target = label.strip().lower()
    for fragment in fragments:
        if fragment.text.strip().lower() == target:
            return fragment
    return None


def fuzzy_header_match(threshold: float) -> HeaderMatcher:
    """
    Build a matcher accepting the best fuzzy match at or above threshold.

    Args:
        threshold: Minimum rapidfuzz ratio (0-100)
    """
    def match(fragments: List[TextFragment], label: str) -> Optional[TextFragment]:
        best = None
        best_score = 0.0
        target = label.strip().lower()
        for fragment in fragments:
            score = fuzz.ratio(fragment.text.strip().lower(), target)
            if score >= threshold and score > best_score:
                best = fragment
                best_score = score
        if best is not None:
            logger.debug(f"Fuzzy header '{label}' matched '{best.text}' ({best_score:.1f})")
        return best

    return match


def header_matchers(config: PdfParserConfig) -> List[HeaderMatcher]:
    matchers: List[HeaderMatcher] = [exact_header_match]
    if config.header_match_threshold < 100:
        matchers.append(fuzzy_header_match(config.header_match_threshold))
    return matchers


def find_header(fragments: List[TextFragment], label: str,
                matchers: List[HeaderMatcher]) -> Optional[TextFragment]:
    """Run the matchers in order until one finds the label."""
    for matcher in matchers:
        found = matcher(fragments, label)
        if found is not None:
            return found
    return None


def _boundaries(positions: Dict[str, ColumnPosition]) -> Dict[str, ColumnBoundary]:
    return {
        label: ColumnBoundary(label=label, x_start=pos.x, width=pos.width)
        for label, pos in positions.items()
    }


def default_boundary_set(config: PdfParserConfig) -> BoundarySet:
    """Boundaries used on pages where no header row is found."""
    if not config.default_boundaries:
        return BoundarySet()

    if config.default_header_y is not None:
        header_y = config.default_header_y
    elif config.top_margin is not None:
        header_y = config.top_margin
    else:
        header_y = float("inf")

    return BoundarySet(
        positions=_boundaries(config.default_boundaries),
        header_y=header_y,
        headers_found=False
    )


def resolve_boundaries(fragments: List[TextFragment], config: PdfParserConfig) -> BoundarySet:
    """
    Locate the template's columns on one page.

    Header positions come from matching the declared labels; where the
    template carries a column adjustment for a label, the adjustment's
    x/width replaces the observed header geometry. A page without any
    header falls back to the template's default boundaries.

    Args:
        fragments: All fragments of the page
        config: PDF parser configuration

    Returns:
        BoundarySet (possibly empty; never raises)
    """
    matchers = header_matchers(config)
    positions: Dict[str, ColumnBoundary] = {}
    header_y = None

    for label in config.headers:
        found = find_header(fragments, label, matchers)
        if found is None:
            logger.debug(f"Header '{label}' not found")
            continue

        if header_y is None:
            header_y = found.y
        positions[label] = ColumnBoundary(label=label, x_start=found.x, width=found.width)

    if header_y is None:
        defaults = default_boundary_set(config)
        if defaults.is_empty:
            logger.info("No table headers and no default boundaries on page")
        else:
            logger.info("No table headers on page, using default boundaries")
        return defaults

    logger.debug(f"Found {len(positions)} of {len(config.headers)} headers at y={header_y:.1f}")

    if config.column_adjustments:
        adjusted = _boundaries(config.column_adjustments)
        for label, boundary in positions.items():
            adjusted.setdefault(label, boundary)
        positions = adjusted

    return BoundarySet(positions=positions, header_y=header_y, headers_found=True)
