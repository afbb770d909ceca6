"""Tests for the chunk sizing heuristic."""

import logging

import pytest

from plysplit.core.errors import ConfigError, HeaderParseError, SizeBudgetError, UnknownPropertyType
from plysplit.core.header import PropertySchema
from plysplit.core.sizing import compute_vertices_per_chunk

# 8 x float32 = 32 bytes per vertex
SCHEMA_32 = PropertySchema(tuple((f"p{i}", "float") for i in range(8)))
HEADER_120 = "ply\ncomment " + "x" * 96 + "\nend_header\n"


def _expected(target: int, header_size: int, width: int) -> int:
    # available / (width * 0.9 * 4/3) == 5 * available / (6 * width)
    return max(1, (5 * (target - header_size)) // (6 * width))


class TestComputeVerticesPerChunk:
    def test_header_fixture_is_120_bytes(self):
        assert len(HEADER_120.encode()) == 120

    def test_memo_scenario(self):
        # available = 446 -> 446 / 38.4 = 11.6
        assert compute_vertices_per_chunk(566, HEADER_120, SCHEMA_32) == 11

    @pytest.mark.parametrize("target", [121, 150, 566, 1000, 4096, 65536])
    def test_matches_formula(self, target):
        assert compute_vertices_per_chunk(target, HEADER_120, SCHEMA_32) == _expected(target, 120, 32)

    def test_exact_division_not_lost_to_rounding(self):
        # 192 / 38.4 == 5 exactly
        assert compute_vertices_per_chunk(120 + 192, HEADER_120, SCHEMA_32) == 5

    @pytest.mark.parametrize("target", range(121, 200))
    def test_always_at_least_one(self, target):
        assert compute_vertices_per_chunk(target, HEADER_120, SCHEMA_32) >= 1

    def test_degenerate_budget_warns(self, caplog):
        with caplog.at_level(logging.WARNING, logger="plysplit.core.sizing"):
            assert compute_vertices_per_chunk(125, HEADER_120, SCHEMA_32) == 1
        assert "less than one encoded vertex" in caplog.text

    @pytest.mark.parametrize("target", [1, 60, 119, 120])
    def test_header_exceeds_budget(self, target):
        with pytest.raises(SizeBudgetError) as exc_info:
            compute_vertices_per_chunk(target, HEADER_120, SCHEMA_32)
        assert exc_info.value.header_size == 120

    @pytest.mark.parametrize("target", [0, -5])
    def test_non_positive_target(self, target):
        with pytest.raises(ConfigError):
            compute_vertices_per_chunk(target, HEADER_120, SCHEMA_32)

    def test_unknown_property_type(self):
        schema = PropertySchema((("x", "float"), ("w", "bfloat16")))
        with pytest.raises(UnknownPropertyType):
            compute_vertices_per_chunk(566, HEADER_120, schema)

    def test_empty_schema(self):
        with pytest.raises(HeaderParseError):
            compute_vertices_per_chunk(566, HEADER_120, PropertySchema())
