"""Combine and re-encode source map mappings

A SourceMap starts out holding the mappings string it was built from,
untouched, so a map that is never modified is written back byte for byte
without being decoded. The first modification decodes it into a sorted list
of absolute records, which every later operation works on.

Sources and names are tracked as counts only; the caller owns the actual
arrays and concatenates them in the same order it registers them here.
"""

import logging
from bisect import bisect_left, bisect_right
from dataclasses import dataclass, field, replace
from heapq import merge
from operator import attrgetter
from typing import List, Optional, Tuple, Union

from mappings import Mapping, check_indices, encode_mappings, parse_mappings

logger = logging.getLogger(__name__)

_position = attrgetter("position")


@dataclass(frozen=True)
class _RawMappings:
    mappings: str
    sources: int
    names: int


@dataclass
class _ParsedMappings:
    sources: int = 0
    names: int = 0
    lines: int = 0
    entries: List[Mapping] = field(default_factory=list)
    positions: List[Tuple[int, int]] = field(default_factory=list)

    def extend(self, records: List[Mapping]) -> None:
        if not records:
            return
        records = sorted(records, key=_position)
        if self.positions and records[0].position < self.positions[-1]:
            self.entries = list(merge(self.entries, records, key=_position))
            self.reindex()
        else:
            self.entries += records
            self.positions += [r.position for r in records]
        self.lines = max(self.lines, self.positions[-1][0] + 1)

    def insert(self, mapping: Mapping) -> None:
        pos = bisect_right(self.positions, mapping.position)
        self.entries.insert(pos, mapping)
        self.positions.insert(pos, mapping.position)
        self.lines = max(self.lines, mapping.generated_line + 1)

    def reindex(self) -> None:
        self.positions = [m.position for m in self.entries]

    def line_span(self, line: int) -> Tuple[int, int]:
        return (
            bisect_left(self.positions, (line,)),
            bisect_left(self.positions, (line + 1,)),
        )

    def closest(self, line: int, column: int) -> Optional[int]:
        idx = bisect_right(self.positions, (line, column)) - 1
        if idx < 0 or self.positions[idx][0] != line:
            return None
        return idx


def _line_count(mappings: str, line_offset: int) -> int:
    if not mappings:
        return 0
    return mappings.count(";") + 1 + line_offset


def _renumber(mapping: Mapping, sources: int, names: int) -> Mapping:
    if mapping.source is None:
        return mapping
    if mapping.name is None:
        return replace(mapping, source=mapping.source + sources)
    return replace(
        mapping, source=mapping.source + sources, name=mapping.name + names
    )


def _parse(
    mappings: str,
    sources: int,
    names: int,
    line_offset: int = 0,
    column_offset: int = 0,
) -> _ParsedMappings:
    state = _ParsedMappings(sources, names, _line_count(mappings, line_offset))
    state.extend(parse_mappings(mappings, line_offset, column_offset))
    return state


class SourceMap:
    """Mappings of one generated file, with source and name counts"""

    def __init__(
        self,
        mappings: str,
        sources: int,
        names: int,
        line_offset: int = 0,
        column_offset: int = 0,
    ):
        self._state: Union[_RawMappings, _ParsedMappings]
        if line_offset or column_offset:
            # a shifted base cannot be written back verbatim
            self._state = _parse(mappings, sources, names, line_offset, column_offset)
        else:
            self._state = _RawMappings(mappings, sources, names)

    def __repr__(self) -> str:
        state = self._state
        parts = []
        if isinstance(state, _RawMappings):
            parts += ["raw"]
        else:
            parts += [f"len={len(state.entries)}"]
        parts += [f"sources={state.sources}", f"names={state.names}"]
        return f"<SourceMap({', '.join(parts)})>"

    def __len__(self) -> int:
        return len(self._view().entries)

    @property
    def is_raw(self) -> bool:
        return isinstance(self._state, _RawMappings)

    @property
    def sources(self) -> int:
        return self._state.sources

    @property
    def names(self) -> int:
        return self._state.names

    @property
    def mappings(self) -> List[Mapping]:
        """All records in generated order

        On an unmodified map this decodes the raw string every time.
        """
        return list(self._view().entries)

    def _view(self) -> _ParsedMappings:
        # read-only access; a raw map stays raw
        state = self._state
        if isinstance(state, _RawMappings):
            return _parse(state.mappings, state.sources, state.names)
        return state

    def _upgrade(self) -> _ParsedMappings:
        state = self._state
        if isinstance(state, _RawMappings):
            logger.debug(
                "Decoding raw mappings (%d chars, %d sources, %d names)",
                len(state.mappings),
                state.sources,
                state.names,
            )
            state = self._state = _parse(state.mappings, state.sources, state.names)
        return state

    def add_mappings(
        self,
        mappings: str,
        sources: int,
        names: int,
        line_offset: int = 0,
        column_offset: int = 0,
    ) -> None:
        """Merge another mappings string into this map

        Its source and name indices are moved past the ones registered so
        far, so the caller appends its sources and names arrays to ours.
        """
        state = self._upgrade()
        records = parse_mappings(mappings, line_offset, column_offset)
        soff, noff = state.sources, state.names
        if soff or noff:
            records = [_renumber(r, soff, noff) for r in records]
        logger.debug(
            "Merging %d mappings at %d:%d (sources +%d, names +%d)",
            len(records),
            line_offset,
            column_offset,
            soff,
            noff,
        )
        state.extend(records)
        state.sources += sources
        state.names += names
        state.lines = max(state.lines, _line_count(mappings, line_offset))

    def add_mapping(
        self, mapping: Mapping, line_offset: int = 0, column_offset: int = 0
    ) -> None:
        """Insert one record at its generated position, shifted by the offsets"""
        if line_offset or column_offset:
            mapping = replace(
                mapping,
                generated_line=mapping.generated_line + line_offset,
                generated_column=mapping.generated_column + column_offset,
            )
        self._upgrade().insert(mapping)

    def add_sources(self, count: int) -> range:
        """Register *count* more sources; return their indices"""
        state = self._upgrade()
        added = range(state.sources, state.sources + count)
        state.sources += count
        return added

    def add_names(self, count: int) -> range:
        """Register *count* more names; return their indices"""
        state = self._upgrade()
        added = range(state.names, state.names + count)
        state.names += count
        return added

    def offset_lines(self, line: int, offset: int) -> None:
        """Move every record on or after *line* by *offset* lines

        Moving up overwrites the lines in between; their records are dropped.
        """
        start = line + offset
        if start < 0:
            raise ValueError(f"line {line} + offset {offset} cannot be negative")
        state = self._upgrade()
        cut = bisect_left(state.positions, (min(line, start),))
        moved = bisect_left(state.positions, (line,))
        state.entries[cut:] = [
            replace(m, generated_line=m.generated_line + offset)
            for m in state.entries[moved:]
        ]
        state.reindex()
        if state.lines > line:
            state.lines += offset
        elif state.lines > start:
            # lines between start and line were overwritten
            last = state.positions[-1][0] + 1 if state.positions else 0
            state.lines = max(start, last)

    def offset_columns(self, line: int, column: int, offset: int) -> None:
        """Move records on *line* at or after *column* by *offset* columns"""
        start = column + offset
        if start < 0:
            raise ValueError(f"column {column} + offset {offset} cannot be negative")
        state = self._upgrade()
        lo, hi = state.line_span(line)
        cut = bisect_left(state.positions, (line, min(column, start)), lo, hi)
        moved = bisect_left(state.positions, (line, column), lo, hi)
        state.entries[cut:hi] = [
            replace(m, generated_column=m.generated_column + offset)
            for m in state.entries[moved:hi]
        ]
        state.reindex()

    def extends(self, other: "SourceMap") -> None:
        """Map original positions through *other*

        *other* maps the original files of this map further back. Every
        record with an original position takes the original position of the
        closest generated mapping in *other*, or loses it when there is none.
        Sources and names of *other* are registered after ours.
        """
        lookup = other._view()
        state = self._upgrade()
        soff, noff = state.sources, state.names
        entries = []
        for entry in state.entries:
            if entry.source is not None:
                idx = lookup.closest(entry.original_line, entry.original_column)
                target = None if idx is None else lookup.entries[idx]
                if target is None or target.source is None:
                    entry = Mapping(entry.generated_line, entry.generated_column)
                else:
                    entry = _renumber(
                        replace(
                            target,
                            generated_line=entry.generated_line,
                            generated_column=entry.generated_column,
                        ),
                        soff,
                        noff,
                    )
            entries.append(entry)
        logger.debug(
            "Remapped %d mappings through a map with %d sources, %d names",
            len(entries),
            lookup.sources,
            lookup.names,
        )
        state.entries = entries
        state.sources += lookup.sources
        state.names += lookup.names

    def find_closest_mapping(self, line: int, column: int) -> Optional[Mapping]:
        """The record at line:column, else the nearest one before it on line"""
        state = self._view()
        idx = state.closest(line, column)
        return None if idx is None else state.entries[idx]

    def __getitem__(self, idx: Union[int, Tuple[int, int]]) -> Mapping:
        try:
            l, c = idx
        except TypeError:
            l, c = idx, 0
        state = self._view()
        cidx = state.closest(l, c)
        if cidx is None:
            # nothing before the column; use the first record on the line
            lo, hi = state.line_span(l)
            if lo == hi:
                raise IndexError(idx)
            cidx = lo
        return state.entries[cidx]

    def check_indices(self) -> None:
        """Raise IndexOutOfRangeError if a record points past the counts"""
        state = self._view()
        check_indices(state.entries, state.sources, state.names)

    def encode(self) -> str:
        state = self._state
        if isinstance(state, _RawMappings):
            return state.mappings
        return encode_mappings(state.entries, state.lines)
