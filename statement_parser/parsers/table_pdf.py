"""
Table based PDF statement parser.
"""
from typing import Any, Callable, Dict, List, Optional
import logging

from ..core.columns import resolve_boundaries
from ..core.loader import PDFLoader
from ..core.reconstruct import ReconstructionState, finish, fold_rows, to_transaction
from ..core.rows import group_rows
from ..models.schema import PdfParserConfig, StatementDocument, Transaction

logger = logging.getLogger(__name__)

LoaderFactory = Callable[[bytes, Optional[str]], PDFLoader]


class TablePdfParser:
    """Reconstructs transactions from a statement's transaction table."""

    def __init__(self, config: PdfParserConfig, loader_factory: LoaderFactory = PDFLoader):
        self.config = config
        self.loader_factory = loader_factory

    def parse(self, document: StatementDocument) -> List[Transaction]:
        """
        Parse every page of the document in order.

        The pending transaction carries across page breaks, so a transaction
        whose amount sits at the top of the next page is still completed.

        Args:
            document: PDF statement document

        Returns:
            List of Transaction objects
        """
        state = ReconstructionState()

        with self.loader_factory(document.data, document.password) as loader:
            page_count = loader.page_count
            for page_index in range(page_count):
                fragments = loader.extract_fragments(page_index)
                if not fragments:
                    logger.info(f"Page {page_index + 1} has no text content, skipping")
                    continue
                state = self.parse_page(fragments, state)

        pending = finish(state)
        transactions = [to_transaction(p, self.config.currency) for p in pending]
        logger.info(f"Extracted {len(transactions)} transactions from {page_count} pages")
        return transactions

    def parse_page(self, fragments, state: ReconstructionState) -> ReconstructionState:
        """Resolve columns, group rows and fold them into the state."""
        boundaries = resolve_boundaries(fragments, self.config)
        if boundaries.is_empty:
            logger.info("Could not determine table layout, skipping page")
            return state

        rows = group_rows(fragments, boundaries.header_y, self.config.row_tolerance)
        skip_leading = max(self.config.skip_header_lines - 1, 0) if boundaries.headers_found else 0
        before = len(state.emitted)
        state = fold_rows(rows, boundaries, self.config, state, skip_leading)
        logger.debug(f"{len(rows)} rows, {len(state.emitted) - before} transactions completed")
        return state


def create_parser(config: Dict[str, Any], loader_factory: LoaderFactory = PDFLoader) -> TablePdfParser:
    """Build a parser from a template's parser_config."""
    return TablePdfParser(PdfParserConfig.model_validate(config), loader_factory)
