"""
End-to-end parsing orchestration.
"""
from pathlib import Path
from typing import List, Optional, Union
import logging

from pydantic import ValidationError

from .cache import LoadOnceCache
from .detectors import detect_format
from .errors import FormatMismatchError, StatementParserError, TemplateValidationError
from .registry import ParserRegistry
from .store import YamlTemplateStore, validation_messages
from ..models.schema import ParseResult, StatementDocument, Template, Transaction

logger = logging.getLogger(__name__)


class StatementParserService:
    """Parses statements with the template registered under an identifier."""

    def __init__(self, store: YamlTemplateStore = None, registry: ParserRegistry = None):
        self.store = store or YamlTemplateStore()
        self.registry = registry or ParserRegistry()
        self.template_cache: LoadOnceCache = LoadOnceCache(self.store.load_template)

    def get_template(self, identifier: str) -> Template:
        """Template by identifier, cache first. Raises TemplateNotFoundError."""
        return self.template_cache.get(identifier)

    def parse_statement(self, document: StatementDocument, template_identifier: str) -> ParseResult:
        """
        Parse a statement document.

        Every failure below this call is converted into an unsuccessful
        ParseResult carrying a readable error.

        Args:
            document: Statement bytes and file name
            template_identifier: Identifier of the template to use

        Returns:
            ParseResult
        """
        try:
            transactions = self._parse(document, template_identifier)
        except StatementParserError as e:
            logger.error(f"Error parsing bank statement: {e}")
            return ParseResult(success=False, transactions=[], error=str(e))
        except Exception as e:
            logger.exception(f"Unexpected error parsing bank statement: {e}")
            return ParseResult(success=False, transactions=[], error=str(e) or type(e).__name__)

        logger.info(f"Parsed {document.filename}: {len(transactions)} transactions")
        return ParseResult(success=True, transactions=transactions)

    def _parse(self, document: StatementDocument, template_identifier: str) -> List[Transaction]:
        template = self.get_template(template_identifier)

        document_format = detect_format(document)
        if document_format != template.format:
            raise FormatMismatchError(document_format, template.format)

        factory = self.registry.get_parser_factory(template.parser_module)
        try:
            parser = factory(template.parser_config)
        except ValidationError as e:
            raise TemplateValidationError(validation_messages(e)) from e

        return parser.parse(document)

    def get_available_templates(self, bank_name: Optional[str] = None,
                                format: Optional[str] = None) -> List[Template]:
        """Stored templates, optionally filtered, ordered by bank name."""
        templates = [
            t for t in self.store.list_templates()
            if (bank_name is None or t.bank_name == bank_name)
            and (format is None or t.format == format)
        ]
        return sorted(templates, key=lambda t: (t.bank_name, t.identifier))

    def invalidate_template(self, identifier: Optional[str] = None):
        self.template_cache.invalidate(identifier)

    def clear_cache(self):
        self.template_cache.clear()
        self.registry.clear_cache()


def load_document(pdf_path: Path, password: Optional[str] = None) -> StatementDocument:
    path = Path(pdf_path)
    return StatementDocument(filename=path.name, data=path.read_bytes(), password=password)


def parse_statement(document: Union[Path, str, StatementDocument], template_id: str,
                    templates_dir: Path = None, verbose: bool = False) -> ParseResult:
    """
    Parse a bank statement with a stored template.

    Args:
        document: Path to the statement, or a StatementDocument
        template_id: Template ID to use
        templates_dir: Directory of template YAML files
        verbose: Enable verbose logging

    Returns:
        ParseResult
    """
    if verbose:
        logging.basicConfig(level=logging.DEBUG)

    if not isinstance(document, StatementDocument):
        path = Path(document)
        if not path.exists():
            return ParseResult(success=False, transactions=[], error=f"File not found: {path}")
        document = load_document(path)

    service = StatementParserService(YamlTemplateStore(templates_dir))
    return service.parse_statement(document, template_id)
