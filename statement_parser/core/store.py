"""
Template persistence as one YAML file per template.
"""
import os
import re
import threading
import yaml
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional
import logging

from pydantic import ValidationError

from .errors import TemplateExistsError, TemplateNotFoundError, TemplateValidationError
from ..models.schema import Template

logger = logging.getLogger(__name__)

TEMPLATES_DIR_ENV = "STATEMENT_PARSER_TEMPLATES_DIR"
IDENTIFIER_RE = re.compile(r"^[a-z0-9_]+$")


def default_templates_dir() -> Path:
    override = os.environ.get(TEMPLATES_DIR_ENV)
    if override:
        return Path(override)
    return Path(__file__).parent.parent / "templates"


def validation_messages(error: ValidationError) -> List[str]:
    """Flatten a pydantic error into 'field: message' strings."""
    messages = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ()))
        messages.append(f"{location}: {item.get('msg')}" if location else item.get("msg"))
    return messages


class YamlTemplateStore:
    """Loads and saves templates in a directory of YAML files."""

    def __init__(self, templates_dir: Path = None):
        self.templates_dir = Path(templates_dir) if templates_dir else default_templates_dir()
        self._lock = threading.Lock()

    def _path(self, identifier: str) -> Path:
        # Identifiers name files inside templates_dir and nothing else.
        if not isinstance(identifier, str) or not IDENTIFIER_RE.match(identifier):
            raise TemplateNotFoundError(identifier)
        return self.templates_dir / f"{identifier}.yaml"

    def _read(self, path: Path) -> Template:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
        try:
            return Template.model_validate(data)
        except ValidationError as e:
            raise TemplateValidationError(validation_messages(e)) from e

    def _write(self, template: Template):
        self.templates_dir.mkdir(parents=True, exist_ok=True)
        data = template.model_dump(mode="json", exclude_none=True)
        with open(self._path(template.identifier), 'w', encoding='utf-8') as f:
            yaml.safe_dump(data, f, sort_keys=False, allow_unicode=True)

    def load_template(self, identifier: str) -> Template:
        """
        Load a template by identifier.

        Raises:
            TemplateNotFoundError: no file for the identifier
        """
        path = self._path(identifier)
        if not path.exists():
            raise TemplateNotFoundError(identifier)
        template = self._read(path)
        if template.identifier != identifier:
            logger.warning(f"Template file {path.name} declares identifier {template.identifier}")
            raise TemplateNotFoundError(identifier)
        return template

    def list_templates(self) -> List[Template]:
        """Load every readable template in the directory."""
        if not self.templates_dir.exists():
            logger.warning(f"Templates directory not found: {self.templates_dir}")
            return []

        templates = []
        for yaml_file in sorted(self.templates_dir.glob("*.yaml")):
            try:
                templates.append(self._read(yaml_file))
            except (OSError, yaml.YAMLError, TemplateValidationError) as e:
                logger.error(f"Error loading template {yaml_file}: {e}")
        return templates

    def save_template(self, template: Template) -> Template:
        """
        Persist a new template.

        Raises:
            TemplateExistsError: identifier already stored
        """
        with self._lock:
            if self._path(template.identifier).exists():
                raise TemplateExistsError(template.identifier)
            now = datetime.now(timezone.utc)
            template = template.model_copy(update={"created_at": now, "updated_at": now})
            self._write(template)
        logger.info(f"Saved template: {template.identifier}")
        return template

    def update_template(self, identifier: str, updates: Dict[str, Any]) -> Template:
        """Apply field updates to a stored template; the identifier is fixed."""
        with self._lock:
            current = self.load_template(identifier)
            data = current.model_dump()
            data.update({k: v for k, v in updates.items() if k not in ("identifier", "created_at")})
            data["updated_at"] = datetime.now(timezone.utc)
            try:
                template = Template.model_validate(data)
            except ValidationError as e:
                raise TemplateValidationError(validation_messages(e)) from e
            self._write(template)
        logger.info(f"Updated template: {identifier}")
        return template

    def delete_template(self, identifier: str):
        with self._lock:
            path = self._path(identifier)
            if not path.exists():
                raise TemplateNotFoundError(identifier)
            path.unlink()
        logger.info(f"Deleted template: {identifier}")

    def get_template(self, identifier: str) -> Optional[Template]:
        """Template by identifier, or None."""
        try:
            return self.load_template(identifier)
        except TemplateNotFoundError:
            return None
