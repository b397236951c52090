"""
Template-driven Bank Statement Parser

Reconstructs transactions from bank statement PDFs by resolving table
columns from positioned text, grouping text into rows, and folding rows
into transactions with a per-institution template.
"""

__version__ = "1.0.0"
__author__ = "Statement Parser Team"

from .core.runner import StatementParserService, parse_statement
from .core.manager import TemplateManager
from .core.registry import ParserRegistry
from .core.store import YamlTemplateStore
from .models.schema import ParseResult, StatementDocument, Template, Transaction, ValidationResult

__all__ = [
    "parse_statement",
    "StatementParserService",
    "TemplateManager",
    "ParserRegistry",
    "YamlTemplateStore",
    "ParseResult",
    "StatementDocument",
    "Template",
    "Transaction",
    "ValidationResult"
]
