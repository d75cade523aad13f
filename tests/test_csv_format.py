"""
Tests for CSV field quoting and the record state machine.
"""

from logbook.portability.csv_format import (
    escape_field,
    iter_records,
    join_fields,
    parse_line,
)


class TestEscapeField:
    """Tests for writing fields."""

    def test_plain_field_unchanged(self):
        assert escape_field("Acme") == "Acme"

    def test_none_is_empty(self):
        assert escape_field(None) == ""

    def test_comma_is_quoted(self):
        assert escape_field("Acme, Inc.") == '"Acme, Inc."'

    def test_quotes_are_doubled(self):
        assert escape_field('say "hi"') == '"say ""hi"""'

    def test_line_breaks_are_quoted(self):
        assert escape_field("a\nb") == '"a\nb"'
        assert escape_field("a\rb") == '"a\rb"'

    def test_join_fields(self):
        assert join_fields(["1", None, "x,y"]) == '1,,"x,y"'


class TestParseLine:
    """Tests for splitting a single line."""

    def test_simple_fields(self):
        assert parse_line("a,b,c") == ["a", "b", "c"]

    def test_empty_fields_kept(self):
        assert parse_line("a,,c,") == ["a", "", "c", ""]

    def test_quoted_comma(self):
        assert parse_line('1,"Acme, Inc.",x') == ["1", "Acme, Inc.", "x"]

    def test_doubled_quote(self):
        assert parse_line('"say ""hi"""') == ['say "hi"']

    def test_empty_line(self):
        assert parse_line("") == [""]

    def test_round_trip_of_awkward_values(self):
        values = ['Acme, "The Best"', "line one\nline two", "", "plain"]
        assert parse_line(join_fields(values)) == values


class TestIterRecords:
    """Tests for the multi-line record reader."""

    def test_lines_become_records(self):
        records = list(iter_records("a,b\nc,d\n"))
        assert [r.fields for r in records] == [["a", "b"], ["c", "d"]]
        assert [r.line_number for r in records] == [1, 2]

    def test_crlf_and_cr_line_endings(self):
        records = list(iter_records("a\r\nb\rc"))
        assert [r.fields for r in records] == [["a"], ["b"], ["c"]]

    def test_quoted_newline_stays_in_one_record(self):
        text = 'id1,"first\nsecond",x\nid2,y,z\n'
        records = list(iter_records(text))

        assert len(records) == 2
        assert records[0].fields == ["id1", "first\nsecond", "x"]
        assert records[1].fields == ["id2", "y", "z"]
        assert records[1].line_number == 3

    def test_blank_records(self):
        records = list(iter_records("a\n\n  \nb"))
        assert [r.is_blank for r in records] == [False, True, True, False]

    def test_text_is_stripped_raw(self):
        records = list(iter_records("  CLIENTS  \n"))
        assert records[0].text == "CLIENTS"

    def test_unterminated_quote_confined_to_its_line(self):
        records = list(iter_records('a,"open\nstill open'))

        assert [r.fields for r in records] == [["a", "open"], ["still open"]]
        assert [r.line_number for r in records] == [1, 2]

    def test_unterminated_quote_on_last_line(self):
        records = list(iter_records('a,b\nc,"open'))
        assert [r.fields for r in records] == [["a", "b"], ["c", "open"]]

    def test_stray_quote_does_not_swallow_section_marker(self):
        """A quote closed by a later quoted field must not run over ENTRIES."""
        text = 'id1,Bob "the builder,,10\nid2,Ann,,5\n\nENTRIES\nid3,"x, y"\n'
        records = list(iter_records(text))

        assert records[0].fields == ["id1", "Bob the builder,,10"]
        assert records[1].fields == ["id2", "Ann", "", "5"]
        assert records[3].text == "ENTRIES"
        assert records[4].fields == ["id3", "x, y"]
        assert records[4].line_number == 5

    def test_multiline_field_after_stray_quote_still_read(self):
        text = 'bad,"oops\nENTRIES\nid,"two\nlines",end\n'
        records = list(iter_records(text))

        assert [r.text for r in records][1] == "ENTRIES"
        assert records[2].fields == ["id", "two\nlines", "end"]
