"""Content classification and display filters.

The keyword heuristic for mahjong/adult/casino titles is intentionally
replaceable: callers can pass any object with a ``categorize(record)`` method,
and the default keyword table is read from ``data/content_rules.yaml``.
"""

from __future__ import annotations

import logging
import os
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, Collection, Dict, FrozenSet, Mapping, Optional, Protocol, Sequence

import yaml

from .machine_catalog import MachineRecord, RomStatus

logger = logging.getLogger(__name__)


class ContentCategory(str, Enum):
    MAHJONG = "mahjong"
    ADULT = "adult"
    CASINO = "casino"


class StatusFilter(str, Enum):
    ALL = "all"
    WORKING_ONLY = "working"
    IMPERFECT_ONLY = "imperfect"
    NOT_WORKING_ONLY = "not_working"


_STATUS_FOR_FILTER = {
    StatusFilter.WORKING_ONLY: RomStatus.GOOD,
    StatusFilter.IMPERFECT_ONLY: RomStatus.IMPERFECT,
    StatusFilter.NOT_WORKING_ONLY: RomStatus.NOT_WORKING,
}

DEFAULT_KEYWORDS: Dict[ContentCategory, Sequence[str]] = {
    ContentCategory.MAHJONG: ("mahjong", "mah-jong"),
    ContentCategory.ADULT: ("adult", "nude"),
    ContentCategory.CASINO: ("casino", "poker", "slot", "cards"),
}


class ContentClassifier(Protocol):
    def categorize(self, record: MachineRecord) -> FrozenSet[ContentCategory]:
        ...


class KeywordContentClassifier:
    """Substring match of lowercase keywords against the machine title."""

    def __init__(self, keywords: Mapping[ContentCategory, Sequence[str]]):
        self.keywords = {
            category: tuple(word.lower() for word in words if word)
            for category, words in keywords.items()
        }

    def categorize(self, record: MachineRecord) -> FrozenSet[ContentCategory]:
        title = record.display_name.lower()
        return frozenset(
            category
            for category, words in self.keywords.items()
            if any(word in title for word in words)
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "KeywordContentClassifier":
        categories = data.get("categories") if isinstance(data, Mapping) else None
        if not isinstance(categories, Mapping):
            raise ValueError("content rules must define a 'categories' mapping")
        keywords: Dict[ContentCategory, Sequence[str]] = {}
        for name, entry in categories.items():
            try:
                category = ContentCategory(str(name).lower())
            except ValueError:
                logger.warning("Ignoring unknown content category: %s", name)
                continue
            words = entry.get("keywords") if isinstance(entry, Mapping) else entry
            if isinstance(words, (list, tuple)):
                keywords[category] = [str(word) for word in words]
        return cls(keywords)

    @classmethod
    def from_yaml(cls, path: Path) -> "KeywordContentClassifier":
        data = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
        return cls.from_mapping(data or {})


def _rules_path() -> Path:
    override = os.environ.get("ARCADE_LAUNCHER_CONTENT_RULES", "").strip()
    if override:
        return Path(override)
    return Path(__file__).resolve().parents[1] / "data" / "content_rules.yaml"


@lru_cache(maxsize=4)
def _load_classifier(path: str) -> KeywordContentClassifier:
    try:
        return KeywordContentClassifier.from_yaml(Path(path))
    except (OSError, ValueError, yaml.YAMLError) as exc:
        logger.warning("Content rules unavailable (%s), using built-in keywords: %s", path, exc)
        return KeywordContentClassifier(DEFAULT_KEYWORDS)


def default_classifier() -> KeywordContentClassifier:
    return _load_classifier(str(_rules_path()))


def _parse_year(value: Any) -> Optional[int]:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def rom_passes_filters(
    settings: Any,
    rom_id: str,
    display_name: str,
    records: Mapping[str, MachineRecord],
    favorites: Collection[str] = (),
    classifier: Optional[ContentClassifier] = None,
) -> bool:
    """Return True when a list entry should stay visible.

    ``settings`` is a :class:`~arcade_launcher.config.models.FilterSettings`
    or anything exposing the same attributes. Metadata-based criteria only
    apply when the id is present in ``records``.
    """
    if getattr(settings, "show_favorites_only", False) and rom_id not in favorites:
        return False

    search = (getattr(settings, "search_text", "") or "").lower()
    if search and search not in display_name.lower() and search not in rom_id.lower():
        return False

    record = records.get(rom_id)
    if record is None:
        return True

    if getattr(settings, "hide_non_games", False) and not record.is_game:
        return False

    status_filter = StatusFilter(getattr(settings, "status_filter", StatusFilter.ALL) or StatusFilter.ALL)
    wanted = _STATUS_FOR_FILTER.get(status_filter)
    if wanted is not None and record.status != wanted:
        return False

    year = _parse_year(record.year)
    if year is not None:
        year_from = _parse_year(getattr(settings, "year_from", ""))
        year_to = _parse_year(getattr(settings, "year_to", ""))
        if year_from is not None and year < year_from:
            return False
        if year_to is not None and year > year_to:
            return False

    manufacturer = getattr(settings, "manufacturer", "") or ""
    if manufacturer and record.manufacturer != manufacturer:
        return False

    hidden = set()
    if getattr(settings, "hide_mahjong", False):
        hidden.add(ContentCategory.MAHJONG)
    if getattr(settings, "hide_adult", False):
        hidden.add(ContentCategory.ADULT)
    if getattr(settings, "hide_casino", False):
        hidden.add(ContentCategory.CASINO)
    if hidden:
        categories = (classifier or default_classifier()).categorize(record)
        if categories & hidden:
            return False

    return True


def make_rom_filter(
    settings: Any,
    records: Mapping[str, MachineRecord],
    favorites: Collection[str] = (),
    classifier: Optional[ContentClassifier] = None,
) -> Callable[[Any], bool]:
    """Bind filter settings into a predicate over reconciled list entries."""
    favorite_set = frozenset(favorites)
    active = classifier or default_classifier()

    def _predicate(rom: Any) -> bool:
        return rom_passes_filters(settings, rom.id, rom.display_name, records, favorite_set, active)

    return _predicate
