"""Tests for pasted-text and Excel grade parsing."""

import pytest

from grade_import.core.exceptions import UploadError
from grade_import.services.grade_parser import (
    build_row,
    parse_grade_text,
    parse_grade_workbook,
    parse_marks,
)


class TestParseMarks:
    """Marks coercion."""

    @pytest.mark.parametrize("raw, expected", [
        ("50", 50.0),
        (" 7.5 ", 7.5),
        ("0", 0.0),
        ("0.8", 0.8),
        (12, 12.0),
        (3.25, 3.25),
        (".5", 0.5),
        ("-2", -2.0),
        ("1e2", 100.0),
    ])
    def test_numeric_values(self, raw, expected):
        assert parse_marks(raw) == expected

    @pytest.mark.parametrize("raw", ["", "   ", "null", "NULL", None])
    def test_empty_and_null_map_to_none(self, raw):
        assert parse_marks(raw) is None

    @pytest.mark.parametrize("raw, expected", [
        ("50%", 50.0),
        ("45 /50", 45.0),
        ("12/20", 12.0),
        ("50abc", 50.0),
        ("1_000", 1.0),
        ("7.5 marks", 7.5),
    ])
    def test_leading_number_is_used(self, raw, expected):
        assert parse_marks(raw) == expected

    @pytest.mark.parametrize("raw", ["abc", "fifty", "_1", "nan", "inf", "-Infinity", "1e999", True])
    def test_non_numeric_maps_to_none(self, raw):
        assert parse_marks(raw) is None


class TestParseGradeText:
    """Line parsing of studentId,marks[,comments]."""

    def test_example_rows(self):
        parsed = parse_grade_text("s1,50\ns2,,note")

        assert [row.model_dump() for row in parsed.rows] == [
            {"student_id": "s1", "marks_obtained": 50, "comments": None},
            {"student_id": "s2", "marks_obtained": None, "comments": "note"},
        ]

    def test_empty_student_id_is_dropped(self):
        parsed = parse_grade_text(",50\ns1,60")

        assert [row.student_id for row in parsed.rows] == ["s1"]
        assert parsed.skipped_lines == 1
        assert parsed.total_lines == 2

    def test_whitespace_only_student_id_is_dropped(self):
        parsed = parse_grade_text("   ,50")

        assert parsed.rows == []

    def test_blank_lines_are_ignored(self):
        parsed = parse_grade_text("\ns1,10\n\n   \ns2,20\n")

        assert [row.student_id for row in parsed.rows] == ["s1", "s2"]
        assert parsed.total_lines == 2
        assert parsed.skipped_lines == 0

    def test_one_row_per_valid_line(self):
        lines = [f"student-{i},{i * 5}" for i in range(1, 21)]

        parsed = parse_grade_text("\n".join(lines))

        assert len(parsed.rows) == 20
        assert parsed.rows[3].student_id == "student-4"
        assert parsed.rows[3].marks_obtained == 20

    def test_comment_keeps_commas(self):
        parsed = parse_grade_text("s1,45,good work, needs revision, see notes")

        assert parsed.rows[0].comments == "good work, needs revision, see notes"

    @pytest.mark.parametrize("separator", ["\x0c", "\x0b", "\x1e", "\x85", "\u2028"])
    def test_only_newlines_split_rows(self, separator):
        parsed = parse_grade_text(f"s1,50,good{separator}work\ns2,40")

        assert [row.student_id for row in parsed.rows] == ["s1", "s2"]
        assert parsed.rows[0].comments == f"good{separator}work"

    def test_crlf_input(self):
        assert parse_grade_text("s1,50\r\ns2,,note\r\n") == parse_grade_text("s1,50\ns2,,note")

    def test_non_numeric_marks_keep_row(self):
        parsed = parse_grade_text("s1,absent,sick")

        assert len(parsed.rows) == 1
        assert parsed.rows[0].marks_obtained is None
        assert parsed.rows[0].comments == "sick"

    def test_student_id_without_marks(self):
        parsed = parse_grade_text("s9")

        assert parsed.rows[0].student_id == "s9"
        assert parsed.rows[0].marks_obtained is None
        assert parsed.rows[0].comments is None

    def test_values_are_trimmed(self):
        parsed = parse_grade_text("  s1 ,  42.5 ,  late  ")

        row = parsed.rows[0]
        assert (row.student_id, row.marks_obtained, row.comments) == ("s1", 42.5, "late")

    def test_empty_comment_is_none(self):
        parsed = parse_grade_text("s1,40,   ")

        assert parsed.rows[0].comments is None

    @pytest.mark.parametrize("text", ["", None, "\n\n"])
    def test_nothing_to_parse(self, text):
        parsed = parse_grade_text(text)

        assert parsed.rows == []
        assert parsed.total_lines == 0


class TestBuildRow:
    def test_numeric_student_id_from_sheet(self):
        row = build_row(1001.0, 55)

        assert row.student_id == "1001"
        assert row.marks_obtained == 55

    def test_none_student_id(self):
        assert build_row(None, 55) is None


class TestParseGradeWorkbook:
    """Excel grade sheets."""

    def test_reads_rows_by_header(self, make_workbook):
        content = make_workbook(
            ["Student ID", "Marks Obtained", "Remarks"],
            [
                ["s1", 50, "good"],
                ["s2", None, None],
                [1003, "0.75", "fractions, too"],
            ],
        )

        parsed = parse_grade_workbook(content)

        assert [(r.student_id, r.marks_obtained, r.comments) for r in parsed.rows] == [
            ("s1", 50, "good"),
            ("s2", None, None),
            ("1003", 0.75, "fractions, too"),
        ]
        assert parsed.total_lines == 3

    def test_column_order_does_not_matter(self, make_workbook):
        content = make_workbook(
            ["Comments", "Marks", "Max Marks", "student_id"],
            [["well done", 18, 20, "s1"]],
        )

        parsed = parse_grade_workbook(content)

        row = parsed.rows[0]
        assert (row.student_id, row.marks_obtained, row.comments) == ("s1", 18, "well done")

    def test_drops_rows_without_student_id(self, make_workbook):
        content = make_workbook(
            ["studentId", "marks"],
            [[None, 40], ["s2", "n/a"]],
        )

        parsed = parse_grade_workbook(content)

        assert [r.student_id for r in parsed.rows] == ["s2"]
        assert parsed.rows[0].marks_obtained is None
        assert parsed.skipped_lines == 1

    def test_missing_marks_column(self, make_workbook):
        content = make_workbook(["Student ID", "Name"], [["s1", "Ada"]])

        with pytest.raises(UploadError) as exc_info:
            parse_grade_workbook(content)

        assert exc_info.value.details["missing_columns"] == ["marks"]

    def test_header_only(self, make_workbook):
        content = make_workbook(["Student ID", "Marks"], [])

        with pytest.raises(UploadError, match="at least one data row"):
            parse_grade_workbook(content)

    def test_not_an_excel_file(self):
        with pytest.raises(UploadError, match="Failed to parse Excel file"):
            parse_grade_workbook(b"studentId,marks\ns1,50\n")
