"""Deterministic field extraction using regex patterns.

Pulls an email address, phone number, CPF, date, salary and a
best-guess full name out of raw text. This is the baseline every
provider result is measured against and the last resort when no
provider answers.
"""

import re

from docfill.utils.logger import get_logger

from .models import ExtractedField, FieldMap

logger = get_logger(__name__)


# Pattern definitions: field key -> compiled regex. Only the first match is kept.
_PATTERNS: dict[str, re.Pattern[str]] = {
    "email": re.compile(r"[\w.\-]+@[\w.\-]+\.\w+"),
    "phone": re.compile(r"\(?\d{2}\)?\s?\d{4,5}[-\s]?\d{4}"),
    "cpf": re.compile(r"\d{3}\.?\d{3}\.?\d{3}-?\d{2}"),
    "birthDate": re.compile(r"\d{1,2}/\d{1,2}/\d{4}"),
    "salary": re.compile(r"R\$\s?\d{1,3}(?:\.\d{3})*(?:,\d{2})?"),
}

_NAME_KEY = "fullName"
_NAME_MIN_LENGTH = 5
_NAME_MAX_LENGTH = 50
_DIGIT_RUN = re.compile(r"\d{3}")


class PatternExtractor:
    """Regex-based extractor for common personal-document fields.

    Each pattern is applied independently and contributes at most one
    value. The extractor holds no state between calls.
    """

    def __init__(self) -> None:
        self.patterns = dict(_PATTERNS)

    def extract(self, text: str) -> FieldMap:
        """Extract fields from text using regex patterns.

        Args:
            text: Raw text to search. Empty text yields an empty mapping.

        Returns:
            Mapping of field key to extracted field, in pattern order
            followed by ``fullName`` when a name line was found.
        """
        fields: FieldMap = {}
        if not text:
            return fields

        for key, pattern in self.patterns.items():
            match = pattern.search(text)
            if match:
                fields[key] = ExtractedField(key=key, value=match.group(0))

        name = self.guess_full_name(text)
        if name is not None:
            fields[_NAME_KEY] = ExtractedField(key=_NAME_KEY, value=name)

        logger.debug("Pattern extraction found %d fields", len(fields))
        return fields

    @staticmethod
    def guess_full_name(text: str) -> str | None:
        """Return the first line that looks like a person's name.

        Lines are split on newlines only. A qualifying line is non-blank,
        longer than 5 and shorter than 50 characters as written (surrounding
        whitespace counts), and has no ``@`` and no run of three digits.

        Args:
            text: Raw text to scan line by line.

        Returns:
            The stripped line, or ``None`` if no line qualifies.
        """
        for line in text.split("\n"):
            candidate = line.strip()
            if not candidate:
                continue
            if not _NAME_MIN_LENGTH < len(line) < _NAME_MAX_LENGTH:
                continue
            if "@" in candidate or _DIGIT_RUN.search(candidate):
                continue
            return candidate
        return None
