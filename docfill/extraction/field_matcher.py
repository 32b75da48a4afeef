"""Binding of extracted fields onto form templates.

Templates are defined in YAML as a mapping of template name to a
description and an ordered list of fields. Extracted keys are matched
to template field names exact-first, then by substring.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

import yaml

from docfill.utils.logger import get_logger

from .models import ExtractedField, FieldValue

logger = get_logger(__name__)


class FieldType(StrEnum):
    """Input types a template field can declare."""

    TEXT = "text"
    EMAIL = "email"
    NUMBER = "number"
    DATE = "date"
    SELECT = "select"
    TEXTAREA = "textarea"
    CHECKBOX = "checkbox"


@dataclass(frozen=True)
class TemplateField:
    """A named field on a form template."""

    name: str
    label: str
    type: FieldType = FieldType.TEXT
    required: bool = False
    options: tuple[str, ...] | None = None


@dataclass
class Template:
    """A form template: an ordered list of fields."""

    name: str
    description: str = ""
    fields: list[TemplateField] = field(default_factory=list)


MatchedFieldSet = dict[str, FieldValue]


class FieldMatcher:
    """Maps extracted key/value sets onto template fields by name."""

    def match(
        self,
        template_fields: Sequence[TemplateField],
        extracted: Mapping[str, ExtractedField],
    ) -> MatchedFieldSet:
        """Bind extracted values to template fields.

        For each field, in template order, an extracted key equal to the
        field name (case-insensitive) wins. Otherwise the first key that
        contains the field name, or is contained in it, is used. Fields
        with no match are left out.

        Args:
            template_fields: Fields of the target template.
            extracted: Extracted fields in merge order.

        Returns:
            Mapping of template field name to matched value.
        """
        lowered = [(key.lower(), key) for key in extracted]
        matched: MatchedFieldSet = {}

        for template_field in template_fields:
            key = self._find_key(template_field.name.lower(), lowered)
            if key is not None:
                matched[template_field.name] = extracted[key].value

        logger.debug(
            "Matched %d of %d template fields", len(matched), len(template_fields)
        )
        return matched

    @staticmethod
    def _find_key(name: str, lowered: list[tuple[str, str]]) -> str | None:
        for low, key in lowered:
            if low == name:
                return key
        for low, key in lowered:
            if low and (low in name or name in low):
                return key
        return None


def missing_required(
    template_fields: Sequence[TemplateField], matched: Mapping[str, FieldValue]
) -> list[str]:
    """Return labels of required fields that are unset or blank."""
    missing: list[str] = []
    for template_field in template_fields:
        if not template_field.required:
            continue
        value = matched.get(template_field.name)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(template_field.label)
    return missing


def parse_template(name: str, definition: Mapping) -> Template:
    """Build a template from its YAML definition.

    Args:
        name: Template name.
        definition: Mapping with ``description`` and a ``fields`` list.

    Returns:
        Parsed template.

    Raises:
        ValueError: If a field lacks a name or declares an unknown type.
    """
    fields: list[TemplateField] = []
    for raw in definition.get("fields") or []:
        if not raw.get("name"):
            raise ValueError(f"Template '{name}' has a field without a name")
        options = raw.get("options")
        fields.append(
            TemplateField(
                name=raw["name"],
                label=raw.get("label", raw["name"]),
                type=FieldType(raw.get("type", FieldType.TEXT)),
                required=bool(raw.get("required", False)),
                options=tuple(str(o) for o in options) if options else None,
            )
        )
    return Template(
        name=name, description=definition.get("description", ""), fields=fields
    )


def load_templates(path: Path) -> dict[str, Template]:
    """Load template definitions from a YAML file.

    Args:
        path: Path to the templates YAML file.

    Returns:
        Templates by name; empty if the file does not exist.
    """
    if not path.exists():
        logger.debug("No templates file at %s, using empty templates", path)
        return {}

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    templates = {name: parse_template(name, d or {}) for name, d in data.items()}
    logger.info("Loaded %d templates from %s", len(templates), path)
    return templates
