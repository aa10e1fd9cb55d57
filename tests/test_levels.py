"""
Tests for CEFR level parsing and level-keyed lookups
"""
import pytest

from terve.services.levels import (
    CefrLevel, DEFAULT_LEVEL, for_level, level_table, levels_up_to, parse_level, resolve_level,
)


class TestLevels:
    def test_parse_level(self):
        assert parse_level("b2") == CefrLevel.B2
        assert parse_level(" C1 ") == CefrLevel.C1
        assert parse_level(CefrLevel.A2) == CefrLevel.A2
        assert parse_level("Z9") is None
        assert parse_level(None) is None

    def test_resolve_level_defaults_to_beginner(self):
        assert DEFAULT_LEVEL == CefrLevel.A1
        assert resolve_level("intermediate") == CefrLevel.A1

    def test_levels_up_to(self):
        assert levels_up_to("B1") == [CefrLevel.A1, CefrLevel.A2, CefrLevel.B1]
        assert levels_up_to("unknown") == [CefrLevel.A1]

    def test_level_table_is_read_only(self):
        table = level_table({CefrLevel.A1: 1, CefrLevel.C2: 6})
        with pytest.raises(TypeError):
            table[CefrLevel.B1] = 3
        assert for_level(table, "C2") == 6
        assert for_level(table, "B1") == 1
        assert for_level(table, None) == 1
