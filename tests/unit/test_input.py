"""Unit tests for reading input."""

import io

import pytest

from treemd import input as treemd_input
from treemd.input import InputError, process_input, read_source


class FakeTty(io.StringIO):
    def isatty(self):
        return True


class TestReadSource:
    """Test reading from files and standard input."""

    def test_read_file(self, tmp_path):
        """Test reading a UTF-8 file."""
        path = tmp_path / "doc.md"
        path.write_text("# Título\n", encoding="utf-8")
        assert read_source(str(path)) == "# Título\n"

    def test_missing_file(self, tmp_path):
        """Test a missing file raises InputError naming the path."""
        path = tmp_path / "nope.md"
        with pytest.raises(InputError) as exc_info:
            read_source(str(path))
        assert exc_info.value.source == str(path)
        assert "I/O error" in str(exc_info.value)

    def test_empty_file(self, tmp_path):
        """Test an empty file reads as empty text and wraps to an Input heading."""
        path = tmp_path / "empty.md"
        path.write_text("")
        text = read_source(str(path))

        assert text == ""
        assert process_input(text) == "# Input\n\n"

    def test_file_line_too_long(self, tmp_path, monkeypatch):
        """Test the per-line limit applies to files."""
        monkeypatch.setattr(treemd_input, "MAX_LINE_SIZE", 8)
        path = tmp_path / "long.md"
        path.write_text("# ok\n" + "x" * 9 + "\n")
        with pytest.raises(InputError, match="Line too long: 9 bytes"):
            read_source(str(path))

    def test_invalid_utf8(self, tmp_path):
        """Test undecodable bytes are reported."""
        path = tmp_path / "bad.md"
        path.write_bytes(b"# \xff\xfe\n")
        with pytest.raises(InputError, match="Invalid UTF-8"):
            read_source(str(path))

    def test_file_too_large(self, tmp_path, monkeypatch):
        """Test the size limit applies to files."""
        monkeypatch.setattr(treemd_input, "MAX_INPUT_SIZE", 10)
        path = tmp_path / "big.md"
        path.write_text("# " + "x" * 20)
        with pytest.raises(InputError, match="Input too large"):
            read_source(str(path))

    def test_dash_reads_stdin(self):
        """Test '-' reads the given stream."""
        assert read_source("-", stdin=io.StringIO("# A\n")) == "# A\n"

    def test_dash_reads_even_from_tty(self):
        """Test an explicit '-' does not require a pipe."""
        assert read_source("-", stdin=FakeTty("# A\n")) == "# A\n"

    def test_no_path_requires_pipe(self):
        """Test implicit stdin refuses an interactive terminal."""
        with pytest.raises(InputError, match="not being piped"):
            read_source(None, stdin=FakeTty("# A\n"))

    def test_empty_stdin(self):
        """Test empty standard input is rejected."""
        with pytest.raises(InputError) as exc_info:
            read_source(None, stdin=io.StringIO(""))
        assert exc_info.value.source == "<stdin>"

    def test_stdin_too_large(self, monkeypatch):
        """Test the size limit applies to standard input."""
        monkeypatch.setattr(treemd_input, "MAX_INPUT_SIZE", 10)
        with pytest.raises(InputError, match="Input too large"):
            read_source(None, stdin=io.StringIO("line one\nline two\n"))

    def test_stdin_line_too_long(self, monkeypatch):
        """Test an overlong stdin line is rejected even without a newline."""
        monkeypatch.setattr(treemd_input, "MAX_LINE_SIZE", 8)
        with pytest.raises(InputError, match="Line too long") as exc_info:
            read_source(None, stdin=io.StringIO("# ok\n" + "y" * 50))
        assert exc_info.value.source == "<stdin>"

    def test_stdin_line_at_limit(self, monkeypatch):
        """Test a line exactly at the limit is accepted; the newline is not counted."""
        monkeypatch.setattr(treemd_input, "MAX_LINE_SIZE", 8)
        assert read_source(None, stdin=io.StringIO("12345678\n")) == "12345678\n"


class TestProcessInput:
    """Test wrapping of non-markdown input."""

    def test_markdown_unchanged(self):
        """Test text with headings passes through."""
        markdown = "# Title\n\nContent here\n\n## Section\n"
        assert process_input(markdown) == markdown

    def test_heading_after_preamble(self):
        """Test a heading on a later line counts as markdown."""
        text = "preamble\n## Later\n"
        assert process_input(text) == text

    def test_plain_text_wrapped(self):
        """Test plain text gains an Input heading."""
        result = process_input("Just some plain text\nwith multiple lines")
        assert result.startswith("# Input\n\n")
        assert result.endswith("Just some plain text\nwith multiple lines")
