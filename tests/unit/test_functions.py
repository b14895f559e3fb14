"""Unit tests for built-in query functions."""

import pytest

from markdown_outline import Document
from treemd.query import EvalError, EvalErrorKind, FUNCTIONS, MapValue, Scalar, execute
from treemd.query.functions import FunctionMode, group_key


def values(result):
    return [item.value for item in result.items]


class TestRegistry:
    """Test the function table itself."""

    def test_every_function_has_help(self):
        """Test all registered functions describe themselves."""
        for function in FUNCTIONS.values():
            assert function.help

    def test_aggregates_are_marked(self):
        """Test count and group_by require materialized input."""
        assert FUNCTIONS["count"].mode is FunctionMode.AGGREGATE
        assert FUNCTIONS["group_by"].mode is FunctionMode.AGGREGATE

    def test_group_key(self):
        """Test map keys for non-string field values."""
        assert group_key(None) == "(none)"
        assert group_key(True) == "true"
        assert group_key(2) == "2"


class TestTextFunctions:
    """Test element-wise text functions."""

    def test_text_of_each_kind(self, sample_doc):
        """Test text for links, images and checkboxes."""
        assert values(execute(sample_doc, ".link | text")) == [
            "homepage",
            "setup",
            "Glossary",
            "us",
        ]
        assert values(execute(sample_doc, ".img | text")) == ["diagram"]
        assert values(execute(sample_doc, ".checkbox | text")) == [
            "Write docs",
            "Publish crate",
        ]

    def test_table_text(self, sample_doc):
        """Test a table's text is one line per row."""
        assert values(execute(sample_doc, ".table | text")) == ["Flag | Meaning\n-v | verbose"]

    def test_upper_lower(self, sample_doc):
        """Test case conversion of heading text."""
        assert values(execute(sample_doc, ".h2 | upper")) == ["INSTALL", "USAGE"]
        assert values(execute(sample_doc, ".h2 | text | lower")) == ["install", "usage"]

    def test_slugify(self):
        """Test slugify on heading text."""
        doc = Document.parse("# Getting Started!")
        assert values(execute(doc, ".h1 | slugify")) == ["getting-started"]

    def test_slug_is_document_unique(self):
        """Test slug returns the de-duplicated anchor."""
        doc = Document.parse("# Notes\n## Notes")
        assert values(execute(doc, ".h | slug")) == ["notes", "notes-1"]

    def test_level_and_kind(self, sample_doc):
        """Test level and kind accessors."""
        assert values(execute(sample_doc, ".h | level")) == [1, 2, 2, 3, 1]
        assert values(execute(sample_doc, ".h1 | kind")) == ["heading", "heading"]
        assert values(execute(sample_doc, ".link | kind")) == [
            "external",
            "anchor",
            "wikilink",
            "external",
        ]

    def test_url(self, sample_doc):
        """Test url for links and images."""
        assert values(execute(sample_doc, ".link[setup] | url")) == ["#install"]
        assert values(execute(sample_doc, ".img | url")) == ["img/diagram.png"]

    def test_url_on_heading_is_wrong_kind(self, sample_doc):
        """Test url rejects elements without a target."""
        with pytest.raises(EvalError) as exc_info:
            execute(sample_doc, ".h1 | url")
        assert exc_info.value.kind is EvalErrorKind.WRONG_KIND

    def test_lang_on_heading_is_wrong_kind(self, sample_doc):
        """Test lang only applies to code blocks."""
        with pytest.raises(EvalError) as exc_info:
            execute(sample_doc, ".h1 | lang")
        assert exc_info.value.kind is EvalErrorKind.WRONG_KIND

    def test_content(self):
        """Test content gives code bodies and raw section text."""
        doc = Document.parse("# A\nbody\n```sh\nls\n```\n# B\n")
        assert values(execute(doc, ".code | content")) == ["ls"]
        assert values(execute(doc, ".h1[0] | content")) == ["# A\nbody\n```sh\nls\n```\n"]

    def test_contains(self, sample_doc):
        """Test contains returns a boolean per item."""
        assert values(execute(sample_doc, '.h2 | contains("ALL")')) == [True, False]


class TestSequenceFunctions:
    """Test functions that operate on whole lists."""

    def test_limit_and_skip(self, sample_doc):
        """Test limit and skip on a stream."""
        assert values(execute(sample_doc, ".h | text | limit(2)")) == ["Project", "Install"]
        assert values(execute(sample_doc, ".h | text | skip(3)")) == ["Advanced", "Appendix"]

    def test_limit_beyond_length(self, sample_doc):
        """Test limit larger than the list keeps everything."""
        assert len(execute(sample_doc, ".h2 | limit(10)")) == 2

    def test_limit_rejects_negative(self, sample_doc):
        """Test a negative count is a bad argument."""
        with pytest.raises(EvalError) as exc_info:
            execute(sample_doc, ".h2 | limit(-1)")
        assert exc_info.value.kind is EvalErrorKind.BAD_ARGUMENT

    def test_limit_on_root_is_wrong_kind(self, sample_doc):
        """Test sequence functions need a list."""
        with pytest.raises(EvalError) as exc_info:
            execute(sample_doc, ". | limit(1)")
        assert exc_info.value.kind is EvalErrorKind.WRONG_KIND

    def test_select_contains(self, sample_doc):
        """Test select keeps items whose text contains the needle."""
        result = execute(sample_doc, '.h | select(contains("app"))')
        assert [ref.element.text for ref in result.items] == ["Appendix"]

    def test_where_is_select(self, sample_doc):
        """Test where behaves like select."""
        assert execute(sample_doc, '.h | where(contains("a"))') == execute(
            sample_doc, '.h | select(contains("a"))'
        )


class TestAggregates:
    """Test aggregating functions."""

    def test_group_by_language(self, sample_doc):
        """Test grouping code blocks, with untagged blocks under '(none)'."""
        result = execute(sample_doc, "[.code] | group_by(lang)")
        assert list(result.entries) == ["rust", "python", "(none)"]

    def test_group_by_level(self, sample_doc):
        """Test grouping headings by level."""
        result = execute(sample_doc, "[.h] | group_by(level)")
        assert {key: len(group) for key, group in result.entries.items()} == {
            "1": 2,
            "2": 2,
            "3": 1,
        }

    def test_group_by_unknown_field(self, sample_doc):
        """Test grouping by a field the elements lack."""
        with pytest.raises(EvalError) as exc_info:
            execute(sample_doc, "[.h] | group_by(url)")
        assert exc_info.value.kind is EvalErrorKind.WRONG_KIND

    def test_group_by_on_stream(self, sample_doc):
        """Test group_by needs a materialized list."""
        with pytest.raises(EvalError) as exc_info:
            execute(sample_doc, ".link | group_by(kind)")
        assert exc_info.value.kind is EvalErrorKind.WRONG_KIND


class TestRootAggregators:
    """Test whole-document summaries."""

    def test_stats(self, sample_doc):
        """Test stats counts every element kind."""
        stats = execute(sample_doc, ". | stats")
        assert isinstance(stats, MapValue)
        assert {key: value.value for key, value in stats.entries.items()} == {
            "headings": 5,
            "code_blocks": 3,
            "links": 4,
            "images": 1,
            "tables": 1,
            "checkboxes": 2,
            "total": 16,
        }

    def test_levels(self, sample_doc):
        """Test levels reports all six levels."""
        levels = execute(sample_doc, ". | levels")
        assert levels.entries["h1"] == Scalar(2)
        assert levels.entries["h3"] == Scalar(1)
        assert levels.entries["h6"] == Scalar(0)

    def test_langs(self, sample_doc):
        """Test langs counts blocks per language."""
        langs = execute(sample_doc, ". | langs")
        assert {key: value.value for key, value in langs.entries.items()} == {
            "rust": 1,
            "python": 1,
            "(none)": 1,
        }

    def test_langs_groups_case_insensitively(self):
        """Test language tags differing in case share a key."""
        doc = Document.parse("```Rust\n```\n```rust\n```\n")
        assert execute(doc, ". | langs").entries == {"rust": Scalar(2)}

    def test_root_aggregator_needs_root(self, sample_doc):
        """Test stats on a selector result is WRONG_KIND."""
        with pytest.raises(EvalError) as exc_info:
            execute(sample_doc, "[.h] | stats")
        assert exc_info.value.kind is EvalErrorKind.WRONG_KIND

    def test_empty_document(self):
        """Test summaries of an empty document."""
        doc = Document.parse("")
        assert execute(doc, ". | stats").entries["total"] == Scalar(0)
        assert execute(doc, ". | langs").entries == {}
