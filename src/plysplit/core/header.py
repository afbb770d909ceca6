"""PLY header codec: parse the ASCII header and rewrite its vertex count.

Only the ``element vertex`` numeral is ever touched on rewrite; every other
header byte (comments, whitespace, line order) is carried over verbatim.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, Union

from .errors import HeaderParseError, UnknownPropertyType

HEADER_TERMINATOR = b"end_header\n"

# Extra SH coefficients are stored as f_rest_0 .. f_rest_{n-1}
SH_PROPERTY_PREFIX = "f_rest_"
SH_DEGREE_BY_COUNT = {0: 0, 9: 1, 24: 2, 45: 3}

PROPERTY_WIDTHS = {
    "char": 1, "int8": 1,
    "uchar": 1, "uint8": 1,
    "short": 2, "int16": 2,
    "ushort": 2, "uint16": 2,
    "int": 4, "int32": 4,
    "uint": 4, "uint32": 4,
    "float": 4, "float32": 4,
    "double": 8, "float64": 8,
}

_VERTEX_LINE_RE = re.compile(r"^([ \t]*element[ \t]+vertex[ \t]+)(\d+)", re.MULTILINE)
_VERTEX_COUNT_BYTES_RE = re.compile(rb"^[ \t]*element[ \t]+vertex[ \t]+(\d+)", re.MULTILINE)


def property_width(type_token: str, property_name: str | None = None) -> int:
    """Byte width of a scalar PLY type token."""
    try:
        return PROPERTY_WIDTHS[type_token]
    except KeyError:
        raise UnknownPropertyType(type_token, property_name) from None


@dataclass(frozen=True)
class PropertySchema:
    """Ordered (name, type token) pairs in header declaration order."""

    entries: tuple[tuple[str, str], ...] = ()

    def __iter__(self) -> Iterator[tuple[str, str]]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self.entries]

    def record_width(self) -> int:
        """Bytes per vertex record; raises UnknownPropertyType on bad tokens."""
        return sum(property_width(type_token, name) for name, type_token in self.entries)

    def to_pairs(self) -> list[list[str]]:
        return [[name, type_token] for name, type_token in self.entries]

    @classmethod
    def from_pairs(cls, pairs) -> PropertySchema:
        return cls(tuple((str(name), str(type_token)) for name, type_token in pairs))


@dataclass(frozen=True)
class ShDegree:
    value: int


@dataclass(frozen=True)
class UnresolvedShDegree:
    """f_rest_* count that maps to no known spherical-harmonics degree."""

    count: int


ShDegreeResult = Union[ShDegree, UnresolvedShDegree]


def resolve_sh_degree(extra_property_count: int) -> ShDegreeResult:
    degree = SH_DEGREE_BY_COUNT.get(extra_property_count)
    if degree is None:
        return UnresolvedShDegree(extra_property_count)
    return ShDegree(degree)


@dataclass(frozen=True)
class PlyHeader:
    """Verbatim header text plus the facts derived from it."""

    text: str
    vertex_count: int
    schema: PropertySchema
    sh_degree: ShDegreeResult

    @property
    def size_bytes(self) -> int:
        return len(self.text.encode("utf-8"))


def split_header_bytes(raw: bytes) -> tuple[bytes, bytes]:
    """Split raw file bytes at the first header terminator.

    Returns (header bytes including the terminator, vertex payload).
    """
    idx = raw.find(HEADER_TERMINATOR)
    if idx < 0:
        raise HeaderParseError("PLY header terminator 'end_header' not found")
    end = idx + len(HEADER_TERMINATOR)
    return raw[:end], raw[end:]


def parse_header(raw: bytes) -> PlyHeader:
    """Parse the header of a PLY file given its raw bytes."""
    header_bytes, _ = split_header_bytes(raw)
    try:
        text = header_bytes.decode("utf-8")
    except UnicodeDecodeError as e:
        raise HeaderParseError(f"PLY header is not valid text: {e}") from e

    vertex_count: int | None = None
    entries: list[tuple[str, str]] = []
    extra_sh_names = 0

    for line in text.split("\n"):
        parts = line.split()
        if not parts:
            continue
        if parts[:2] == ["element", "vertex"]:
            if len(parts) < 3 or not parts[2].isdigit():
                raise HeaderParseError(f"Malformed vertex element line: {line.strip()!r}")
            vertex_count = int(parts[2])
        elif parts[0] == "property" and len(parts) >= 3:
            type_token, name = parts[1], parts[2]
            entries.append((name, type_token))
            if name.startswith(SH_PROPERTY_PREFIX):
                extra_sh_names += 1

    if vertex_count is None:
        raise HeaderParseError("PLY header has no 'element vertex' line")

    return PlyHeader(
        text=text,
        vertex_count=vertex_count,
        schema=PropertySchema(tuple(entries)),
        sh_degree=resolve_sh_degree(extra_sh_names),
    )


def rewrite_vertex_count(header_text: str, vertex_count: int) -> str:
    """Return header_text with only the vertex-count numeral replaced."""
    new_text, n = _VERTEX_LINE_RE.subn(
        lambda m: f"{m.group(1)}{vertex_count}", header_text, count=1
    )
    if n == 0:
        raise HeaderParseError("PLY header has no 'element vertex' line")
    if not new_text.endswith("\n"):
        new_text += "\n"
    return new_text


def read_declared_vertex_count(data: bytes) -> int | None:
    """Vertex count declared in a PLY file's header, or None if unreadable."""
    idx = data.find(HEADER_TERMINATOR)
    header = data[:idx] if idx >= 0 else data
    match = _VERTEX_COUNT_BYTES_RE.search(header)
    if match is None:
        return None
    return int(match.group(1))
