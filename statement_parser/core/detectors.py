"""
Document format detection.
"""
import csv
from pathlib import Path
import logging

from ..models.schema import StatementDocument

logger = logging.getLogger(__name__)

PDF = "PDF"
CSV = "CSV"
UNKNOWN = "UNKNOWN"

PDF_MAGIC = b"%PDF"


def _looks_like_csv(data: bytes) -> bool:
    try:
        sample = data[:4096].decode("utf-8-sig")
    except UnicodeDecodeError:
        return False
    if not sample.strip() or "\x00" in sample:
        return False
    try:
        csv.Sniffer().sniff(sample, delimiters=",;\t|")
    except csv.Error:
        return False
    return True


def detect_format(document: StatementDocument) -> str:
    """
    Detect whether a document is a PDF or a CSV.

    Content wins over the file name: PDF magic bytes mark a PDF whatever
    its extension. Otherwise the extension decides, and an unnamed text
    file that sniffs as delimited data is treated as CSV.

    Args:
        document: Statement document

    Returns:
        "PDF", "CSV" or "UNKNOWN"
    """
    head = document.data[:1024].lstrip()
    if head.startswith(PDF_MAGIC):
        return PDF

    extension = Path(document.filename or "").suffix.lower()
    if extension == ".pdf":
        logger.warning(f"{document.filename} has a .pdf extension but no PDF header")
        return UNKNOWN
    if extension == ".csv":
        return CSV

    if _looks_like_csv(document.data):
        return CSV
    return UNKNOWN
