"""Parse and encode the "mappings" field of a source map

The field is a list of generated lines separated by ``;``, each a list of
segments separated by ``,``. A segment is 1, 4 or 5 Base64 VLQ integers:

  generated column, source index, original line, original column, name index

All values are deltas against the previous segment; only the generated
column starts over at 0 on every generated line.

"""

from dataclasses import dataclass
from itertools import groupby
from operator import attrgetter
from typing import Iterable, List, Optional, Tuple

from base64vlq import base64vlq_decode, base64vlq_encode


class MalformedSegmentError(ValueError):
    """A segment decoded to a field count other than 1, 4 or 5"""

    def __init__(self, segment: str, line: int, fields: int):
        super().__init__(
            f"Invalid segment {segment!r} on generated line {line}; "
            f"expected 1, 4 or 5 fields, got {fields}"
        )
        self.segment = segment
        self.line = line
        self.fields = fields


class IndexOutOfRangeError(IndexError):
    """A source or name index points outside the registered entries"""

    def __init__(self, kind: str, mapping: "Mapping", count: int):
        index = getattr(mapping, kind)
        super().__init__(
            f"{kind} index {index} out of range (have {count}) "
            f"at generated {mapping.generated_line}:{mapping.generated_column}"
        )
        self.kind = kind
        self.index = index
        self.count = count
        self.mapping = mapping


@dataclass(frozen=True)
class Mapping:
    generated_line: int
    generated_column: int
    source: Optional[int] = None
    original_line: Optional[int] = None
    original_column: Optional[int] = None
    name: Optional[int] = None

    def __post_init__(self):
        if self.generated_line < 0 or self.generated_column < 0:
            raise ValueError(
                f"Invalid mapping; negative generated position "
                f"{self.generated_line}:{self.generated_column}"
            )
        if self.source is not None and (
            self.original_line is None or self.original_column is None
        ):
            raise ValueError(
                "Invalid mapping; missing line and column for source file"
            )
        if self.name is not None and self.source is None:
            raise ValueError(
                "Invalid mapping; name entry without source location info"
            )

    @property
    def position(self) -> Tuple[int, int]:
        return self.generated_line, self.generated_column


def parse_mappings(
    mappings: str, line_offset: int = 0, column_offset: int = 0
) -> List[Mapping]:
    """Decode a mappings string into absolute records

    *line_offset* is added to every generated line, *column_offset* only to
    the columns of the first generated line (text inserted in front of it).
    """
    records = []
    add = records.append
    spos = sline = scol = npos = 0
    for gline, vlqs in enumerate(mappings.split(";")):
        if not vlqs:
            continue
        gcol = 0
        cshift = column_offset if gline == 0 else 0
        for segment in vlqs.split(","):
            fields = base64vlq_decode(segment)
            if len(fields) not in (1, 4, 5):
                raise MalformedSegmentError(segment, gline, len(fields))
            gcol += fields[0]
            if len(fields) == 1:
                # generated code without an original location
                add(Mapping(gline + line_offset, gcol + cshift))
                continue
            _, sd, sld, scd, *namedelta = fields
            spos, sline, scol = spos + sd, sline + sld, scol + scd
            name = None
            if namedelta:
                npos += namedelta[0]
                name = npos
            add(Mapping(gline + line_offset, gcol + cshift, spos, sline, scol, name))
    return records


def encode_mappings(mappings: Iterable[Mapping], line_count: int = 0) -> str:
    """Encode records into a mappings string

    At least *line_count* generated lines are written, so trailing lines
    without segments are kept.
    """
    lines = []
    spos = sline = scol = npos = 0
    ordered = sorted(mappings, key=attrgetter("position"))
    for gline, entries in groupby(ordered, key=attrgetter("generated_line")):
        lines += [""] * (gline - len(lines))
        gcol = 0
        segments = []
        for entry in entries:
            ds, gcol = [entry.generated_column - gcol], entry.generated_column
            if entry.source is not None:
                ds += (
                    entry.source - spos,
                    entry.original_line - sline,
                    entry.original_column - scol,
                )
                spos, sline, scol = (
                    entry.source,
                    entry.original_line,
                    entry.original_column,
                )
                if entry.name is not None:
                    ds += (entry.name - npos,)
                    npos = entry.name
            segments.append(base64vlq_encode(*ds))
        lines.append(",".join(segments))
    lines += [""] * (line_count - len(lines))
    return ";".join(lines)


def check_indices(mappings: Iterable[Mapping], sources: int, names: int) -> None:
    """Raise IndexOutOfRangeError for the first record outside the counts"""
    for mapping in mappings:
        if mapping.source is not None and not 0 <= mapping.source < sources:
            raise IndexOutOfRangeError("source", mapping, sources)
        if mapping.name is not None and not 0 <= mapping.name < names:
            raise IndexOutOfRangeError("name", mapping, names)
