"""
Grouping of positioned text fragments into table rows.
"""
from typing import Dict, List
import logging

from .loader import TextFragment

logger = logging.getLogger(__name__)


class Row:
    """A visual table line: fragments sharing an approximate y."""
    __slots__ = ("y", "fragments")

    def __init__(self, y: float, fragments: List[TextFragment]):
        self.y = y
        self.fragments = fragments

    @property
    def text(self) -> str:
        return " ".join(f.text for f in self.fragments).strip()

    def __repr__(self):
        return f"Row(y={self.y:.1f}, text='{self.text[:60]}')"


def group_rows(fragments: List[TextFragment], header_y: float, row_tolerance: float) -> List[Row]:
    """
    Cluster fragments below the header into rows.

    A fragment joins the first bucket, in creation order, whose key differs
    from its y by less than ``row_tolerance``. Assignment is therefore
    order sensitive, matching the extractor's emission order.

    Args:
        fragments: Fragments of one page
        header_y: Only fragments strictly below this y are kept
        row_tolerance: Maximum y distance within a row (exclusive)

    Returns:
        Rows sorted top to bottom, fragments sorted left to right
    """
    buckets: Dict[float, List[TextFragment]] = {}

    for fragment in fragments:
        if fragment.y >= header_y or not fragment.text.strip():
            continue

        key = next((k for k in buckets if abs(k - fragment.y) < row_tolerance), None)
        if key is None:
            buckets[fragment.y] = [fragment]
        else:
            buckets[key].append(fragment)

    rows = [
        Row(y=y, fragments=sorted(items, key=lambda f: f.x))
        for y, items in buckets.items()
    ]
    rows.sort(key=lambda r: r.y, reverse=True)

    logger.debug(f"Grouped {sum(len(r.fragments) for r in rows)} fragments into {len(rows)} rows")
    return rows
