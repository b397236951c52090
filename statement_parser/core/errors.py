"""
Error taxonomy for statement parsing and template management.
"""
from typing import Iterable, List


class StatementParserError(Exception):
    """Base class for every error raised below the parser service."""


class TemplateNotFoundError(StatementParserError, ValueError):
    """No template is registered under the requested identifier."""

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(f"Template not found: {identifier}")


class ParserNotFoundError(TemplateNotFoundError):
    """No parser implementation is registered under the identifier."""

    def __init__(self, identifier: str, available: Iterable[str]):
        self.available = sorted(available)
        StatementParserError.__init__(
            self,
            f"Parser not found: {identifier}. Available parsers: {', '.join(self.available)}"
        )
        self.identifier = identifier


class TemplateExistsError(StatementParserError):
    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(f"Template already exists: {identifier}")


class FormatMismatchError(StatementParserError):
    """The document format disagrees with the template's declared format."""

    def __init__(self, document_format: str, template_format: str):
        self.document_format = document_format
        self.template_format = template_format
        super().__init__(
            f"File format {document_format} does not match template format {template_format}"
        )


class ExtractionError(StatementParserError):
    """Text-layout extraction failed (corrupted or encrypted document)."""


class TemplateValidationError(StatementParserError):
    """Template configuration is malformed."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("Invalid template configuration: " + "; ".join(self.errors))
