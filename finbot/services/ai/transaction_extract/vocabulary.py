"""Merchant and keyword vocabulary used by the rules extractor.

The tables live in ``vocabulary.json`` next to this module. A deployment can
point ``AI_VOCABULARY_PATH`` at its own file with the same shape::

    {
      "merchants": {"biggie": "Compras", ...},
      "keywords": [{"pattern": "almuerzo|cena", "category": "Comida"}, ...]
    }
"""

from __future__ import annotations

import json
import logging
import re
import unicodedata
from dataclasses import dataclass
from functools import lru_cache
from importlib import resources
from typing import Any

from finbot.core.config import get_settings

from .contracts import VALID_CATEGORIES

logger = logging.getLogger(__name__)

_BUNDLED_RESOURCE = "vocabulary.json"


class VocabularyError(ValueError):
    """The vocabulary document is structurally invalid."""


def normalize(text: str) -> str:
    """Lowercase and strip diacritics (``"Médico"`` → ``"medico"``)."""
    decomposed = unicodedata.normalize("NFD", text.lower())
    return "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")


@dataclass(frozen=True)
class Vocabulary:
    # Insertion order is lookup priority.
    merchants: tuple[tuple[str, str], ...]
    keywords: tuple[tuple[re.Pattern[str], str], ...]

    def category_for_merchant(self, merchant: str) -> str | None:
        """Containment in either direction against the merchant table."""
        needle = normalize(merchant).strip()
        if not needle:
            return None
        for key, category in self.merchants:
            if key in needle or needle in key:
                return category
        return None

    def category_for_text(self, normalized_text: str) -> str | None:
        for pattern, category in self.keywords:
            if pattern.search(normalized_text):
                return category
        return None


def parse_vocabulary(data: Any) -> Vocabulary:
    """Validate a decoded vocabulary document and compile it."""
    if not isinstance(data, dict):
        raise VocabularyError("Vocabulary must be a JSON object")

    raw_merchants = data.get("merchants", {})
    raw_keywords = data.get("keywords", [])
    if not isinstance(raw_merchants, dict):
        raise VocabularyError("'merchants' must be an object of name -> category")
    if not isinstance(raw_keywords, list):
        raise VocabularyError("'keywords' must be a list of {pattern, category}")

    merchants: list[tuple[str, str]] = []
    for name, category in raw_merchants.items():
        _check_category(category, f"merchant {name!r}")
        key = normalize(str(name)).strip()
        if key:
            merchants.append((key, category))

    keywords: list[tuple[re.Pattern[str], str]] = []
    for entry in raw_keywords:
        if not isinstance(entry, dict) or "pattern" not in entry or "category" not in entry:
            raise VocabularyError(f"Invalid keyword entry: {entry!r}")
        _check_category(entry["category"], f"keyword {entry['pattern']!r}")
        try:
            compiled = re.compile(normalize(str(entry["pattern"])), re.IGNORECASE)
        except re.error as exc:
            raise VocabularyError(f"Bad keyword pattern {entry['pattern']!r}: {exc}") from exc
        keywords.append((compiled, entry["category"]))

    return Vocabulary(merchants=tuple(merchants), keywords=tuple(keywords))


def _check_category(category: Any, where: str) -> None:
    if category not in VALID_CATEGORIES:
        raise VocabularyError(f"Unknown category {category!r} for {where}")


def load_vocabulary(path: str | None = None) -> Vocabulary:
    """Load from *path*, or from the bundled resource when *path* is empty."""
    if path:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        logger.info("Loaded vocabulary from %s", path)
    else:
        text = resources.files(__package__).joinpath(_BUNDLED_RESOURCE).read_text(encoding="utf-8")
        data = json.loads(text)
    return parse_vocabulary(data)


@lru_cache
def get_vocabulary() -> Vocabulary:
    """Vocabulary for this process (``AI_VOCABULARY_PATH`` or the bundled one)."""
    return load_vocabulary(get_settings().ai_vocabulary_path or None)
