"""
Parser registry: maps parser identifiers to parser factories.
"""
from typing import Any, Callable, Dict, List, Optional
import logging

from .cache import LoadOnceCache
from .errors import ParserNotFoundError, StatementParserError

logger = logging.getLogger(__name__)

ParserFactory = Callable[[Dict[str, Any]], Any]
FactoryLoader = Callable[[], ParserFactory]


def _load_table_pdf() -> ParserFactory:
    from ..parsers.table_pdf import create_parser
    return create_parser


def _load_column_csv() -> ParserFactory:
    from ..parsers.column_csv import create_parser
    return create_parser


# Bank specific identifiers share the generic table parser; their
# differences live in template data.
PARSER_LOADERS: Dict[str, FactoryLoader] = {
    "table_pdf_v1": _load_table_pdf,
    "column_csv_v1": _load_column_csv,
    "dbs_pdf_v1": _load_table_pdf,
    "icici_pdf_v1": _load_table_pdf,
}


class ParserRegistry:
    """Dispatch table of lazily loaded parser factories."""

    def __init__(self, loaders: Optional[Dict[str, FactoryLoader]] = None,
                 cache: Optional[LoadOnceCache] = None):
        self.loaders = dict(PARSER_LOADERS if loaders is None else loaders)
        self.cache = cache or LoadOnceCache(self._load)

    def _load(self, identifier: str) -> ParserFactory:
        try:
            factory = self.loaders[identifier]()
        except Exception as e:
            logger.error(f"Error loading parser {identifier}: {e}")
            raise StatementParserError(f"Failed to load parser: {identifier}") from e
        logger.info(f"Loaded parser factory: {identifier}")
        return factory

    def get_parser_factory(self, identifier: str) -> ParserFactory:
        """
        Get the parser factory registered under an identifier.

        Args:
            identifier: Parser identifier

        Returns:
            Callable taking a parser_config dict and returning a parser

        Raises:
            ParserNotFoundError: identifier is not registered
        """
        if identifier not in self.loaders:
            raise ParserNotFoundError(identifier, self.loaders)
        return self.cache.get(identifier)

    def register(self, identifier: str, loader: FactoryLoader):
        self.loaders[identifier] = loader
        self.cache.invalidate(identifier)

    def list_available(self) -> List[str]:
        return list(self.loaders)

    def is_available(self, identifier: str) -> bool:
        return identifier in self.loaders

    def clear_cache(self):
        self.cache.clear()
