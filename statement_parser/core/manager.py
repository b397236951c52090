"""
Template validation and administration.
"""
import re
from numbers import Number
from typing import Any, Dict, List, Mapping, Optional, Type
import logging

from pydantic import BaseModel, ValidationError

from .errors import StatementParserError
from .runner import StatementParserService
from .store import IDENTIFIER_RE, validation_messages
from ..models.schema import (
    CsvParserConfig, OperationResult, PdfParserConfig, StatementDocument, Template,
    TemplateTestResult, ValidationResult
)

logger = logging.getLogger(__name__)

FORMATS = ("PDF", "CSV")


def _is_number(value: Any) -> bool:
    return isinstance(value, Number) and not isinstance(value, bool)


def _model_errors(model: Type[BaseModel], config: Mapping[str, Any]) -> List[str]:
    """Field rules of the config model the parser is built from."""
    try:
        model.model_validate(dict(config))
    except ValidationError as e:
        return validation_messages(e)
    return []


def validate_pdf_config(config: Mapping[str, Any]) -> List[str]:
    """Structural rules for table based PDF parser configs."""
    errors = []

    if config.get("type") != "table_based":
        errors.append('PDF config must have type "table_based"')

    headers = config.get("headers")
    if not isinstance(headers, list) or not headers:
        errors.append("PDF config must have a non-empty headers array")

    if not config.get("dateColumn") or not isinstance(config.get("dateColumn"), str):
        errors.append("PDF config must have a dateColumn string")

    amount_columns = config.get("amountColumns")
    if not isinstance(amount_columns, Mapping):
        errors.append("PDF config must have an amountColumns object")
    elif not amount_columns.get("debit") or not amount_columns.get("credit"):
        errors.append("PDF config amountColumns must have debit and credit properties")

    description_columns = config.get("descriptionColumns")
    if not isinstance(description_columns, list) or not description_columns:
        errors.append("PDF config must have a non-empty descriptionColumns array")

    for key in ("columnTolerance", "rowTolerance"):
        value = config.get(key)
        if not _is_number(value) or value < 0:
            errors.append(f"PDF config {key} must be a non-negative number")

    pattern = config.get("datePattern")
    if pattern is not None:
        try:
            re.compile(pattern)
        except (re.error, TypeError) as e:
            errors.append(f"PDF config datePattern is not a valid regular expression: {e}")

    if not errors:
        errors.extend(_model_errors(PdfParserConfig, config))
    return errors


def validate_csv_config(config: Mapping[str, Any]) -> List[str]:
    """Structural rules for column based CSV parser configs."""
    errors = []
    if not isinstance(config.get("columns"), Mapping):
        errors.append("CSV config must have a columns mapping object")
    else:
        errors.extend(_model_errors(CsvParserConfig, config))
    return errors


class TemplateManager:
    """Administrative operations on parsing templates."""

    def __init__(self, service: StatementParserService = None):
        self.service = service or StatementParserService()

    @property
    def store(self):
        return self.service.store

    def validate_template(self, config: Mapping[str, Any]) -> ValidationResult:
        """
        Validate a template configuration.

        Args:
            config: {bank_name, format, identifier, parser_module, parser_config}

        Returns:
            ValidationResult listing every violated rule
        """
        errors = []
        if not isinstance(config, Mapping):
            return ValidationResult(is_valid=False, errors=["Template config must be a mapping"])

        bank_name = config.get("bank_name")
        if not isinstance(bank_name, str) or not bank_name.strip():
            errors.append("Bank name is required")

        template_format = config.get("format")
        if template_format not in FORMATS:
            errors.append("Format must be either PDF or CSV")

        identifier = config.get("identifier")
        if not isinstance(identifier, str) or not identifier.strip():
            errors.append("Identifier is required")
        elif not IDENTIFIER_RE.match(identifier):
            errors.append("Identifier must contain only lowercase letters, numbers, and underscores")

        parser_module = config.get("parser_module")
        if not isinstance(parser_module, str) or not parser_module.strip():
            errors.append("Parser module is required")
        elif not self.service.registry.is_available(parser_module):
            errors.append(
                f"Parser module {parser_module} is not registered. "
                f"Available parsers: {', '.join(self.service.registry.list_available())}"
            )

        parser_config = config.get("parser_config")
        if not isinstance(parser_config, Mapping):
            errors.append("Parser config must be a valid object")
        elif template_format == "PDF":
            errors.extend(validate_pdf_config(parser_config))
        elif template_format == "CSV":
            errors.extend(validate_csv_config(parser_config))

        return ValidationResult(is_valid=not errors, errors=errors)

    def create_template(self, config: Mapping[str, Any]) -> OperationResult:
        """Validate, then persist a new template."""
        validation = self.validate_template(config)
        if not validation.is_valid:
            return OperationResult(success=False, errors=validation.errors)

        template = Template(
            identifier=config["identifier"],
            bank_name=config["bank_name"],
            format=config["format"],
            parser_module=config["parser_module"],
            parser_config=dict(config["parser_config"])
        )
        try:
            self.store.save_template(template)
        except StatementParserError as e:
            logger.error(f"Error adding template: {e}")
            return OperationResult(success=False, errors=[str(e)])

        self.service.invalidate_template(template.identifier)
        return OperationResult(success=True)

    def import_template(self, config: Mapping[str, Any]) -> OperationResult:
        return self.create_template(config)

    def update_template(self, identifier: str, updates: Mapping[str, Any]) -> OperationResult:
        """Apply updates to a stored template; the merged result must validate."""
        current = self.store.get_template(identifier)
        if current is None:
            return OperationResult(success=False, errors=[f"Template not found: {identifier}"])

        merged = current.to_config()
        merged.update({k: v for k, v in updates.items() if k != "identifier"})
        validation = self.validate_template(merged)
        if not validation.is_valid:
            return OperationResult(success=False, errors=validation.errors)

        try:
            self.store.update_template(identifier, merged)
        except StatementParserError as e:
            logger.error(f"Error updating template: {e}")
            return OperationResult(success=False, errors=[str(e)])

        self.service.invalidate_template(identifier)
        return OperationResult(success=True)

    def delete_template(self, identifier: str) -> OperationResult:
        try:
            self.store.delete_template(identifier)
        except StatementParserError as e:
            return OperationResult(success=False, errors=[str(e)])
        self.service.invalidate_template(identifier)
        return OperationResult(success=True)

    def export_template(self, identifier: str) -> Optional[Dict[str, Any]]:
        """Template config for backup or sharing, or None if unknown."""
        template = self.store.get_template(identifier)
        if template is None:
            return None
        return template.to_config()

    def list_templates(self) -> List[Dict[str, Any]]:
        """Summary of every stored template."""
        return [
            {
                "identifier": t.identifier,
                "bank_name": t.bank_name,
                "format": t.format,
                "created_at": t.created_at.isoformat() if t.created_at else None
            }
            for t in self.service.get_available_templates()
        ]

    def test_template(self, identifier: str, document: StatementDocument) -> TemplateTestResult:
        """Run a template against a sample document without saving anything."""
        result = self.service.parse_statement(document, identifier)
        return TemplateTestResult(
            success=result.success,
            transaction_count=len(result.transactions),
            errors=[result.error] if result.error else None
        )

    @staticmethod
    def example_configs() -> Dict[str, Dict[str, Any]]:
        """Starting points for new PDF and CSV templates."""
        return {
            "pdf": {
                "bank_name": "Example Bank",
                "format": "PDF",
                "identifier": "example_bank_pdf_v1",
                "parser_module": "table_pdf_v1",
                "parser_config": {
                    "type": "table_based",
                    "headers": ["Date", "Description", "Debit", "Credit", "Balance"],
                    "dateColumn": "Date",
                    "dateFormat": "MM/DD/YYYY",
                    "amountColumns": {"debit": "Debit", "credit": "Credit"},
                    "descriptionColumns": ["Description"],
                    "columnTolerance": 10,
                    "rowTolerance": 5,
                    "datePattern": r"(\d{2}/\d{2}/\d{4})",
                    "amountCleanPattern": r"[^\d.-]",
                    "skipHeaderLines": 1,
                    "multiLineDescription": False,
                    "currency": "USD"
                }
            },
            "csv": {
                "bank_name": "Example Bank",
                "format": "CSV",
                "identifier": "example_bank_csv_v1",
                "parser_module": "column_csv_v1",
                "parser_config": {
                    "type": "column_based",
                    "columns": {"date": 0, "description": 1, "amount": 2, "type": 3},
                    "dateFormat": "MM/DD/YYYY",
                    "hasHeader": True,
                    "skipLines": 0,
                    "delimiter": ",",
                    "textQualifier": '"',
                    "currency": "USD"
                }
            }
        }
