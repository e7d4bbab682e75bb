"""Tests for mappings.parse_mappings / encode_mappings."""

import pytest

from base64vlq import MalformedVLQError
from mappings import (
    IndexOutOfRangeError,
    MalformedSegmentError,
    Mapping,
    check_indices,
    encode_mappings,
    parse_mappings,
)

SIMPLE_MAPPINGS = "AAAA;AAAA,EAAA,OAAO,CAAC,GAAR,CAAY,aAAZ,CAAA,CAAA;AAAA"


class TestMapping:
    def test_generated_only(self) -> None:
        mapping = Mapping(3, 4)
        assert mapping.source is None
        assert mapping.original_line is None
        assert mapping.position == (3, 4)

    def test_source_requires_original_position(self) -> None:
        with pytest.raises(ValueError):
            Mapping(0, 0, source=0)

    def test_name_requires_source(self) -> None:
        with pytest.raises(ValueError):
            Mapping(0, 0, name=0)

    def test_negative_generated_position(self) -> None:
        with pytest.raises(ValueError):
            Mapping(0, -1)


class TestParse:
    def test_single_segment(self) -> None:
        assert parse_mappings("AAAA") == [Mapping(0, 0, 0, 0, 0)]

    def test_empty(self) -> None:
        assert parse_mappings("") == []
        assert parse_mappings(";;") == []

    def test_running_state(self) -> None:
        records = parse_mappings(SIMPLE_MAPPINGS)
        assert len(records) == 11
        line_one = [r for r in records if r.generated_line == 1]
        assert [r.generated_column for r in line_one] == [
            0, 2, 9, 10, 13, 14, 27, 28, 29,
        ]
        assert [r.original_column for r in line_one] == [
            0, 0, 7, 8, 0, 12, 0, 0, 0,
        ]
        assert records[-1] == Mapping(2, 0, 0, 0, 0)

    def test_generated_column_resets_per_line(self) -> None:
        records = parse_mappings("E;C")
        assert [r.position for r in records] == [(0, 2), (1, 1)]

    def test_generated_only_segments(self) -> None:
        assert parse_mappings("A,C") == [Mapping(0, 0), Mapping(0, 1)]

    def test_generated_only_segment_keeps_source_state(self) -> None:
        records = parse_mappings("ACEG;A;AAAA")
        assert records[1] == Mapping(1, 0)
        assert records[2] == Mapping(2, 0, 1, 2, 3)

    def test_names(self) -> None:
        records = parse_mappings("AAAAA,CAAAC;A;ACAAC")
        assert records == [
            Mapping(0, 0, 0, 0, 0, 0),
            Mapping(0, 1, 0, 0, 0, 1),
            Mapping(1, 0),
            Mapping(2, 0, 1, 0, 0, 2),
        ]

    def test_four_field_segment_has_no_name(self) -> None:
        records = parse_mappings("AAAAC,CAAA")
        assert records[1].name is None

    def test_offsets(self) -> None:
        records = parse_mappings("AAAA;AAAA", line_offset=2, column_offset=5)
        assert [r.position for r in records] == [(2, 5), (3, 0)]

    def test_column_offset_only_applies_to_first_line(self) -> None:
        records = parse_mappings(";AAAA", column_offset=5)
        assert [r.position for r in records] == [(1, 0)]


class TestParseErrors:
    @pytest.mark.parametrize(
        "mappings, line, fields",
        [
            ("AA", 0, 2),
            ("AAA", 0, 3),
            ("AAAA;AAAAAA", 1, 6),
            ("A,,A", 0, 0),
            ("A,", 0, 0),
        ],
    )
    def test_bad_field_count(self, mappings: str, line: int, fields: int) -> None:
        with pytest.raises(MalformedSegmentError) as exc_info:
            parse_mappings(mappings)
        assert exc_info.value.line == line
        assert exc_info.value.fields == fields

    def test_bad_character(self) -> None:
        with pytest.raises(MalformedVLQError):
            parse_mappings("AA!A")

    def test_negative_column(self) -> None:
        with pytest.raises(ValueError):
            parse_mappings("D")


class TestEncode:
    def test_canonical_input_roundtrips(self) -> None:
        assert encode_mappings(parse_mappings(SIMPLE_MAPPINGS)) == SIMPLE_MAPPINGS

    def test_empty_lines(self) -> None:
        assert encode_mappings([Mapping(2, 0, 0, 0, 0)]) == ";;AAAA"

    def test_line_count_keeps_trailing_lines(self) -> None:
        assert encode_mappings([Mapping(2, 0, 0, 0, 0)], line_count=5) == ";;AAAA;;"
        assert encode_mappings([], line_count=3) == ";;"

    def test_sorts_records(self) -> None:
        assert encode_mappings([Mapping(0, 4), Mapping(0, 0)]) == "A,I"

    def test_sparse_lines_and_names(self) -> None:
        records = [
            Mapping(12, 7, 0, 0, 5, 0),
            Mapping(25, 12),
            Mapping(15, 9, 1, 0, 5, 0),
        ]
        assert encode_mappings(records) == ";;;;;;;;;;;;OAAKA;;;SCAAA;;;;;;;;;;Y"

    def test_non_canonical_input_is_semantically_equal(self) -> None:
        # "gA" is a non-minimal encoding of 0
        records = parse_mappings("gAAAA")
        assert encode_mappings(records) == "AAAA"
        assert parse_mappings(encode_mappings(records)) == records

    def test_reparse_is_stable(self) -> None:
        records = parse_mappings("AAAAA,CAAAC;A;ACAAC;;GAEC")
        first = parse_mappings(encode_mappings(records))
        second = parse_mappings(encode_mappings(first))
        assert first == records
        assert second == first


class TestCheckIndices:
    def test_within_range(self) -> None:
        check_indices(parse_mappings("AAAAA;ACAAC"), 2, 2)

    def test_source_out_of_range(self) -> None:
        with pytest.raises(IndexOutOfRangeError) as exc_info:
            check_indices(parse_mappings("AAAA;ACAA"), 1, 0)
        assert exc_info.value.kind == "source"
        assert exc_info.value.index == 1

    def test_name_out_of_range(self) -> None:
        with pytest.raises(IndexOutOfRangeError) as exc_info:
            check_indices(parse_mappings("AAAAA"), 1, 0)
        assert exc_info.value.kind == "name"

    def test_negative_source(self) -> None:
        with pytest.raises(IndexError):
            check_indices(parse_mappings("ADAA"), 1, 0)
