"""Unit tests for match rendering."""

import io

import pytest

from streamgrep.search.formatters import (
    CallbackFormatter,
    ContextFormatter,
    CountsFormatter,
    MatchEvent,
    NamesFormatter,
    OutputMode,
    PlainFormatter,
    create_formatter,
    show_link,
)


pytestmark = pytest.mark.unit


def make_event(data: bytes, needle: bytes, *, name: str = "f.py", line_number: int = 1) -> MatchEvent:
    buf = bytearray(data)
    pos = buf.index(needle)
    start = buf.rfind(b"\n", 0, pos) + 1
    nl = buf.find(b"\n", pos)
    end = len(buf) if nl < 0 else nl + 1
    return MatchEvent(
        buffer=buf,
        name=name,
        line_number=line_number,
        line_start=start,
        line_end=end,
        match_start=pos,
        base_offset=100,
    )


class TestMatchEvent:
    def test_line_and_stream_offset(self):
        event = make_event(b"a\nneedle here\nb\n", b"needle", line_number=2)

        assert event.line == b"needle here\n"
        assert event.stream_offset == 102

    def test_context_window(self):
        event = make_event(b"    a\n    needle\n    b\n", b"needle")

        window = event.context(1, 1)

        assert window.lines() == [b"a", b"needle", b"b"]


class TestShowLink:
    def test_plain_path(self):
        assert show_link("src/a b.py") == "/show/src/a%20b.py"

    def test_archive_member_and_query(self):
        link = show_link("/data/bundle.zip\x01inner/g.py", "x+y", 7)

        assert link == "/show/data/bundle.zip>inner/g.py?q=x%2By#L7"


class TestNamesFormatter:
    def test_writes_name_and_stops(self):
        out = io.StringIO()
        formatter = NamesFormatter(out)

        assert formatter.on_match(make_event(b"hit\n", b"hit")) is False
        assert out.getvalue() == "f.py\n"

    def test_markup_links_without_query(self):
        out = io.StringIO()
        NamesFormatter(out, markup=True, pattern="hit").on_match(make_event(b"hit\n", b"hit"))

        assert out.getvalue() == '<a href="/show/f.py">f.py</a>\n'


class TestCountsFormatter:
    def test_count_written_at_end_of_file(self):
        out = io.StringIO()
        formatter = CountsFormatter(out)

        assert formatter.on_match(make_event(b"hit\n", b"hit")) is True
        assert out.getvalue() == ""
        formatter.end_file("f.py", 3)
        assert out.getvalue() == "f.py: 3\n"

    def test_files_without_matches_are_silent(self):
        out = io.StringIO()
        CountsFormatter(out).end_file("f.py", 0)

        assert out.getvalue() == ""

    def test_markup(self):
        out = io.StringIO()
        CountsFormatter(out, markup=True, pattern="a b").end_file("f.py", 2)

        assert out.getvalue() == '<a href="/show/f.py?q=a%20b">f.py</a>: 2\n'


class TestPlainFormatter:
    def test_name_and_line_number(self):
        out = io.StringIO()
        PlainFormatter(out, line_numbers=True).on_match(make_event(b"x\nhit\n", b"hit", line_number=2))

        assert out.getvalue() == "f.py:2:hit\n"

    def test_without_names(self):
        out = io.StringIO()
        PlainFormatter(out, show_names=False).on_match(make_event(b"hit\n", b"hit"))

        assert out.getvalue() == "hit\n"

    def test_newline_added_to_final_line(self):
        out = io.StringIO()
        PlainFormatter(out, show_names=False).on_match(make_event(b"a\nhit", b"hit"))

        assert out.getvalue() == "hit\n"

    def test_markup_escapes_and_links(self):
        out = io.StringIO()
        formatter = PlainFormatter(out, markup=True, pattern="x<y")
        formatter.on_match(make_event(b"a<b hit\n", b"hit", line_number=4))

        assert formatter.needs_line_numbers is True
        assert out.getvalue() == '<a href="/show/f.py?q=x%3Cy#L4">f.py:4</a>:a&lt;b hit\n'

    def test_line_numbers_only_when_asked(self):
        assert PlainFormatter(io.StringIO()).needs_line_numbers is False
        assert PlainFormatter(io.StringIO(), line_numbers=True).needs_line_numbers is True


class TestContextFormatter:
    def test_header_and_indented_block(self):
        out = io.StringIO()
        formatter = ContextFormatter(out, context_before=1, context_after=1)
        data = b"  one\n  two MATCH\n  three\n"

        formatter.on_match(make_event(data, b"MATCH", line_number=2))

        assert out.getvalue() == "f.py:2:\n\t\tone\n\t>>\ttwo MATCH\n\t\tthree\n"

    def test_markup_header(self):
        out = io.StringIO()
        formatter = ContextFormatter(out, markup=True, pattern="m")
        formatter.on_match(make_event(b"<m>\n", b"m", line_number=1))

        assert out.getvalue() == '<a href="/show/f.py?q=m#L1">f.py:1</a>:\n\t>>\t&lt;m&gt;\n'


class TestCreateFormatter:
    def test_plain_with_context_becomes_context(self):
        formatter = create_formatter("plain", io.StringIO(), context_before=2)

        assert isinstance(formatter, ContextFormatter)
        assert formatter.context_before == 2

    @pytest.mark.parametrize(
        ("mode", "expected"),
        [
            (OutputMode.NAMES, NamesFormatter),
            (OutputMode.COUNTS, CountsFormatter),
            (OutputMode.PLAIN, PlainFormatter),
            (OutputMode.CONTEXT, ContextFormatter),
        ],
    )
    def test_mode_selects_formatter(self, mode, expected):
        assert isinstance(create_formatter(mode, io.StringIO()), expected)

    def test_callback_mode(self):
        events = []
        formatter = create_formatter("callback", callback=events.append)
        event = make_event(b"hit\n", b"hit")

        assert isinstance(formatter, CallbackFormatter)
        assert formatter.on_match(event) is True
        assert events == [event]

    def test_callback_mode_requires_callback(self):
        with pytest.raises(ValueError, match="callback"):
            create_formatter("callback")

    def test_rendering_modes_require_stdout(self):
        with pytest.raises(ValueError, match="output stream"):
            create_formatter("names")

    def test_unknown_mode(self):
        with pytest.raises(ValueError):
            create_formatter("bogus", io.StringIO())
