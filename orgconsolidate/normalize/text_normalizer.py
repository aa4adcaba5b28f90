"""
Text normalization for OrgConsolidate.

Reduces organization names, postal codes, city names and e-mail domains to a
comparable form: lower-cased, transliterated through a configurable table
and stripped of everything outside [a-z0-9].
"""

import re
import logging
from typing import Dict, Mapping, Optional

logger = logging.getLogger(__name__)

# German orthography; upper-case umlauts are covered because text is
# lower-cased before the table is applied.
GERMAN_TRANSLITERATION: Dict[str, str] = {
    "ä": "a",
    "ö": "o",
    "ü": "u",
    "ß": "ss",
}


class TextNormalizer:
    """
    Normalizes free text for similarity comparison.

    The transliteration table is a lossy, language-specific policy rather
    than general Unicode folding. German is the default; other tables can
    be supplied through configuration.
    """

    def __init__(self, transliteration: Optional[Mapping[str, str]] = None):
        """
        Initialize text normalizer with a transliteration table.

        Args:
            transliteration: Mapping of single characters to replacements
                (defaults to the German table)
        """
        if transliteration is None:
            transliteration = GERMAN_TRANSLITERATION

        self.transliteration = {str(k).lower(): str(v).lower() for k, v in transliteration.items()}
        self._translation_table = str.maketrans(
            {k: v for k, v in self.transliteration.items() if len(k) == 1}
        )
        self._multi_char_keys = [k for k in self.transliteration if len(k) > 1]

        # Compile regex patterns for efficiency
        self.strip_pattern = re.compile(r'[^a-z0-9]')
        self.domain_pattern = re.compile(r'@([^.]+)')

        logger.debug(f"Initialized TextNormalizer with {len(self.transliteration)} substitutions")

    @classmethod
    def from_config(cls, config: Dict) -> "TextNormalizer":
        """
        Build a normalizer from the ``normalization`` config section.

        Args:
            config: Normalization configuration dictionary

        Returns:
            Configured TextNormalizer
        """
        return cls(config.get("transliteration", GERMAN_TRANSLITERATION))

    def normalize(self, text: Optional[str]) -> str:
        """
        Normalize a single text value.

        Args:
            text: Raw text (None is treated as empty)

        Returns:
            Normalized text containing only [a-z0-9]
        """
        if not text:
            return ""

        value = str(text).lower()
        for key in self._multi_char_keys:
            value = value.replace(key, self.transliteration[key])
        value = value.translate(self._translation_table)

        return self.strip_pattern.sub('', value)

    def extract_domain_token(self, email: Optional[str]) -> str:
        """
        Extract the pseudo-domain token of an e-mail address.

        The token is the text between ``@`` and the first following dot,
        e.g. ``"klinik-nord"`` for ``"info@klinik-nord.de"``.

        Args:
            email: E-mail address

        Returns:
            Lower-cased domain token, or an empty string
        """
        if not email:
            return ""

        match = self.domain_pattern.search(str(email))
        return match.group(1).lower() if match else ""


_default_normalizer = TextNormalizer()


def normalize(text: Optional[str]) -> str:
    """Normalize text with the default German policy."""
    return _default_normalizer.normalize(text)


def extract_domain_token(email: Optional[str]) -> str:
    """Extract the e-mail domain token with the default normalizer."""
    return _default_normalizer.extract_domain_token(email)
