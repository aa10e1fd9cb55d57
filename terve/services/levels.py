"""
CEFR proficiency levels and level-keyed lookups
"""
from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, TypeVar, Union

T = TypeVar("T")


class CefrLevel(str, Enum):
    A1 = "A1"
    A2 = "A2"
    B1 = "B1"
    B2 = "B2"
    C1 = "C1"
    C2 = "C2"


LEVEL_ORDER = tuple(CefrLevel)

# Unknown levels are treated as beginners
DEFAULT_LEVEL = CefrLevel.A1


def parse_level(value: Union[str, CefrLevel, None]) -> Optional[CefrLevel]:
    """Return the matching level or None when the value is not a CEFR level"""
    if isinstance(value, CefrLevel):
        return value
    if not value:
        return None
    try:
        return CefrLevel(str(value).strip().upper())
    except ValueError:
        return None


def resolve_level(value: Union[str, CefrLevel, None]) -> CefrLevel:
    return parse_level(value) or DEFAULT_LEVEL


def levels_up_to(level: Union[str, CefrLevel]) -> list[CefrLevel]:
    """All levels at or below the given one, easiest first"""
    resolved = resolve_level(level)
    return list(LEVEL_ORDER[: LEVEL_ORDER.index(resolved) + 1])


def level_table(values: Mapping[CefrLevel, T]) -> Mapping[CefrLevel, T]:
    return MappingProxyType(dict(values))


def for_level(table: Mapping[CefrLevel, T], level: Union[str, CefrLevel, None]) -> T:
    """Look a level up in a table, falling back to the default level's entry"""
    resolved = parse_level(level)
    if resolved is not None and resolved in table:
        return table[resolved]
    return table[DEFAULT_LEVEL]
