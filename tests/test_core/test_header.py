"""Tests for the PLY header codec."""

from pathlib import Path

import pytest

from plysplit.core.errors import HeaderParseError, UnknownPropertyType
from plysplit.core.header import (
    PropertySchema,
    ShDegree,
    UnresolvedShDegree,
    parse_header,
    property_width,
    read_declared_vertex_count,
    resolve_sh_degree,
    rewrite_vertex_count,
    split_header_bytes,
)

HEADER = (
    "ply\n"
    "format binary_little_endian 1.0\n"
    "comment generated for tests\n"
    "element vertex 4\n"
    "property float x\n"
    "property float y\n"
    "property float z\n"
    "property uchar red\n"
    "end_header\n"
)


def _raw(header: str = HEADER, payload: bytes = b"\x00" * 52) -> bytes:
    return header.encode("utf-8") + payload


# ---------------------------------------------------------------------------
# A. Parsing
# ---------------------------------------------------------------------------

class TestParseHeader:
    def test_fields(self):
        header = parse_header(_raw())
        assert header.text == HEADER
        assert header.vertex_count == 4
        assert header.schema.names == ["x", "y", "z", "red"]
        assert header.sh_degree == ShDegree(0)
        assert header.size_bytes == len(HEADER)

    def test_schema_preserves_declaration_order(self):
        header = parse_header(_raw())
        assert list(header.schema) == [
            ("x", "float"), ("y", "float"), ("z", "float"), ("red", "uchar"),
        ]

    def test_record_width(self):
        assert parse_header(_raw()).schema.record_width() == 13

    def test_split_header_bytes(self):
        header_bytes, payload = split_header_bytes(_raw(payload=b"abc"))
        assert header_bytes == HEADER.encode()
        assert payload == b"abc"

    def test_terminator_inside_payload_ignored(self):
        raw = _raw(payload=b"end_header\n" + b"\x01" * 41)
        header_bytes, payload = split_header_bytes(raw)
        assert header_bytes == HEADER.encode()
        assert payload.startswith(b"end_header\n")

    def test_missing_terminator(self):
        with pytest.raises(HeaderParseError, match="end_header"):
            parse_header(HEADER.replace("end_header\n", "").encode())

    def test_missing_vertex_line(self):
        with pytest.raises(HeaderParseError, match="element vertex"):
            parse_header(_raw(HEADER.replace("element vertex 4\n", "")))

    def test_malformed_vertex_line(self):
        with pytest.raises(HeaderParseError, match="Malformed"):
            parse_header(_raw(HEADER.replace("element vertex 4", "element vertex four")))

    def test_generated_gaussian_ply(self, gaussian_ply_sh1: Path):
        header = parse_header(gaussian_ply_sh1.read_bytes())
        assert header.vertex_count == 120
        assert header.sh_degree == ShDegree(1)
        assert header.schema.record_width() == 4 * (14 + 9)


class TestShDegree:
    @pytest.mark.parametrize("count,degree", [(0, 0), (9, 1), (24, 2), (45, 3)])
    def test_known_counts(self, count, degree):
        assert resolve_sh_degree(count) == ShDegree(degree)

    def test_unknown_count_is_surfaced(self):
        assert resolve_sh_degree(10) == UnresolvedShDegree(10)

    def test_unresolved_from_header(self):
        props = "".join(f"property float f_rest_{i}\n" for i in range(5))
        header = parse_header(_raw(HEADER.replace("end_header\n", props + "end_header\n")))
        assert header.sh_degree == UnresolvedShDegree(5)


class TestPropertyWidths:
    @pytest.mark.parametrize("token,width", [
        ("float32", 4), ("float", 4), ("float64", 8), ("double", 8),
        ("uint8", 1), ("uchar", 1), ("int32", 4), ("int", 4), ("uint32", 4),
    ])
    def test_known(self, token, width):
        assert property_width(token) == width

    def test_unknown_type_raises(self):
        with pytest.raises(UnknownPropertyType, match="float16"):
            property_width("float16", "x")

    def test_unknown_type_in_schema(self):
        schema = PropertySchema((("x", "float"), ("n", "half")))
        with pytest.raises(UnknownPropertyType) as exc_info:
            schema.record_width()
        assert exc_info.value.property_name == "n"

    def test_pairs_round_trip(self):
        schema = PropertySchema((("x", "float"), ("red", "uchar")))
        assert PropertySchema.from_pairs(schema.to_pairs()) == schema


# ---------------------------------------------------------------------------
# B. Rewriting
# ---------------------------------------------------------------------------

class TestRewriteVertexCount:
    def test_only_numeral_changes(self):
        rewritten = rewrite_vertex_count(HEADER, 123456)
        old_lines = HEADER.split("\n")
        new_lines = rewritten.split("\n")
        assert len(old_lines) == len(new_lines)
        for old, new in zip(old_lines, new_lines):
            if old.startswith("element vertex"):
                assert new == "element vertex 123456"
            else:
                assert new == old

    def test_preserves_whitespace(self):
        header = HEADER.replace("element vertex 4\n", "element  vertex\t4  \r\n")
        rewritten = rewrite_vertex_count(header, 9)
        assert "element  vertex\t9  \r\n" in rewritten
        assert rewritten.replace("\t9", "\t4") == header

    def test_other_elements_untouched(self):
        header = HEADER.replace("end_header\n", "element face 7\nproperty list uchar int vertex_indices\nend_header\n")
        rewritten = rewrite_vertex_count(header, 1)
        assert "element face 7\n" in rewritten
        assert "element vertex 1\n" in rewritten

    def test_appends_trailing_newline(self):
        assert rewrite_vertex_count(HEADER.rstrip("\n"), 2).endswith("end_header\n")

    def test_missing_vertex_line(self):
        with pytest.raises(HeaderParseError):
            rewrite_vertex_count("ply\nend_header\n", 3)


class TestReadDeclaredVertexCount:
    def test_reads_count(self):
        assert read_declared_vertex_count(_raw()) == 4

    def test_missing_line(self):
        assert read_declared_vertex_count(_raw(HEADER.replace("element vertex 4\n", ""))) is None

    def test_ignores_payload_text(self):
        raw = _raw(HEADER.replace("element vertex 4\n", ""), payload=b"element vertex 99")
        assert read_declared_vertex_count(raw) is None

    def test_ignores_comment_mentioning_vertex_element(self):
        header = HEADER.replace("comment generated for tests", "comment exported element vertex 7 by tool")
        assert read_declared_vertex_count(_raw(header)) == 4

    def test_indented_vertex_line(self):
        assert read_declared_vertex_count(_raw(HEADER.replace("element vertex 4", "  element vertex 4"))) == 4
