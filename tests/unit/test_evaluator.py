"""Unit tests for query evaluation."""

from textwrap import dedent

import pytest

from markdown_outline import Document, Heading
from treemd.query import (
    ElementRef,
    EvalError,
    EvalErrorKind,
    ListValue,
    MapValue,
    Scalar,
    execute,
)


def texts(value):
    """Plain Python strings out of a list of scalars."""
    assert isinstance(value, ListValue)
    return [item.value for item in value.items]


def heading_texts(value):
    assert isinstance(value, ListValue)
    return [item.element.text for item in value.items]


class TestEndToEnd:
    """Test the canonical examples."""

    def test_children_text(self):
        """Test '.h1 > .h2 | text' on a small document."""
        doc = Document.parse("# A\n## B\n## C")
        assert texts(execute(doc, ".h1 > .h2 | text")) == ["B", "C"]

    def test_descendant_code_language(self):
        """Test code blocks inside a nested section are found by '>>'."""
        doc = Document.parse("# A\n## B\n```rust\nfn main(){}\n```")
        assert texts(execute(doc, ".h1 >> .code | lang")) == ["rust"]

    def test_lang_round_trip(self):
        """Test languages come back in document order with untagged blocks marked."""
        doc = Document.parse("```rust\n```\n```python\n```\n```\n```\n")
        assert texts(execute(doc, ".code | lang")) == ["rust", "python", "(none)"]


class TestSelectors:
    """Test selectors against the sample document."""

    def test_headings_in_document_order(self, sample_doc):
        """Test .h returns every heading in order."""
        assert heading_texts(execute(sample_doc, ".h")) == [
            "Project",
            "Install",
            "Usage",
            "Advanced",
            "Appendix",
        ]

    def test_selector_output_is_a_stream(self, sample_doc):
        """Test a bare selector yields a non-materialized list."""
        result = execute(sample_doc, ".h2")
        assert isinstance(result, ListValue)
        assert not result.materialized

    def test_index_filters(self, sample_doc):
        """Test positive, negative and out-of-range indexes."""
        assert heading_texts(execute(sample_doc, ".h2[0]")) == ["Install"]
        assert heading_texts(execute(sample_doc, ".h2[-1]")) == ["Usage"]
        assert execute(sample_doc, ".h2[5]").items == ()
        assert execute(sample_doc, ".h2[-9]").items == ()

    def test_slice_filters(self, sample_doc):
        """Test slices clamp to the available range."""
        assert heading_texts(execute(sample_doc, ".h[1:3]")) == ["Install", "Usage"]
        assert heading_texts(execute(sample_doc, ".h[3:99]")) == ["Advanced", "Appendix"]
        assert execute(sample_doc, ".h[4:2]").items == ()

    def test_fuzzy_text_filter(self, sample_doc):
        """Test bare words match case-insensitive substrings."""
        assert heading_texts(execute(sample_doc, ".h[SAGE]")) == ["Usage"]

    def test_exact_text_filter(self, sample_doc):
        """Test quoted filters require whole-text equality."""
        assert heading_texts(execute(sample_doc, '.h["usage"]')) == ["Usage"]
        assert execute(sample_doc, '.h["Usag"]').items == ()

    def test_code_filter_matches_language(self, sample_doc):
        """Test code blocks are filtered by language tag."""
        result = execute(sample_doc, ".code[python]")
        assert [ref.element.content for ref in result.items] == ['print("hi")']

    def test_no_match_is_empty_not_error(self, sample_doc):
        """Test queries that match nothing return an empty list."""
        assert execute(sample_doc, ".h6").items == ()
        assert execute(sample_doc, ".h2[nothing-here] > .code").items == ()

    def test_leaf_kinds(self, sample_doc):
        """Test each leaf selector finds its elements."""
        assert len(execute(sample_doc, ".code")) == 3
        assert len(execute(sample_doc, ".link")) == 4
        assert len(execute(sample_doc, ".img")) == 1
        assert len(execute(sample_doc, ".table")) == 1
        assert len(execute(sample_doc, ".checkbox")) == 2

    def test_root(self, sample_doc):
        """Test '.' returns the document itself."""
        result = execute(sample_doc, ".")
        assert isinstance(result, ElementRef)
        assert result.element is sample_doc


class TestHierarchy:
    """Test '>' and '>>' semantics."""

    def test_child_headings_use_tree_edges(self, sample_doc):
        """Test '>' only follows parent/child edges."""
        assert heading_texts(execute(sample_doc, ".h1 > .h")) == ["Install", "Usage"]
        assert execute(sample_doc, ".h1 > .h3").items == ()

    def test_descendant_headings(self, sample_doc):
        """Test '>>' reaches every depth but excludes the heading itself."""
        assert heading_texts(execute(sample_doc, ".h1 >> .h")) == [
            "Install",
            "Usage",
            "Advanced",
        ]

    def test_child_leaves_are_directly_owned(self, sample_doc):
        """Test '>' on leaves takes only elements owned by that heading."""
        result = execute(sample_doc, ".h2[usage] > .img")
        assert result.items == ()
        result = execute(sample_doc, ".h2[usage] >> .img | url")
        assert texts(result) == ["img/diagram.png"]

    def test_right_side_filter_applies_per_left_element(self, sample_doc):
        """Test '.h2 > .code[0]' yields the first block of each h2."""
        result = execute(sample_doc, ".h2 > .code[0] | lang")
        assert texts(result) == ["rust", "python"]

    def test_chained_operators(self, sample_doc):
        """Test left-associative chains."""
        assert heading_texts(execute(sample_doc, ".h1 > .h2 > .h3")) == ["Advanced"]
        assert len(execute(sample_doc, ".h1 > .h2 >> .table")) == 1

    def test_no_duplicates_from_disjoint_scopes(self, sample_doc):
        """Test concatenation across sibling sections."""
        assert len(execute(sample_doc, ".h1 >> .link")) == 4

    def test_selector_after_pipe_scopes_to_sections(self, sample_doc):
        """Test a selector stage on headings searches inside their sections."""
        result = execute(sample_doc, ".h2[install] | .checkbox")
        assert [ref.element.text for ref in result.items] == ["Write docs", "Publish crate"]

    def test_selector_on_scalars_is_wrong_kind(self, sample_doc):
        """Test selectors reject non-heading input."""
        with pytest.raises(EvalError) as exc_info:
            execute(sample_doc, ".h2 | text | .code")
        assert exc_info.value.kind is EvalErrorKind.WRONG_KIND

    def test_leaf_on_left_is_wrong_kind(self, sample_doc):
        """Test '>' needs headings on its left."""
        with pytest.raises(EvalError) as exc_info:
            execute(sample_doc, ".code > .link")
        assert exc_info.value.kind is EvalErrorKind.WRONG_KIND


class TestMaterialization:
    """Test bracket wrapping and aggregates."""

    def test_bracket_materializes(self, sample_doc):
        """Test [..] produces a materialized list."""
        result = execute(sample_doc, "[.h2]")
        assert result.materialized
        assert len(result) == 2

    def test_count_needs_brackets(self, sample_doc):
        """Test count on a bare stream is WRONG_KIND."""
        with pytest.raises(EvalError) as exc_info:
            execute(sample_doc, ".h2 | count")
        assert exc_info.value.kind is EvalErrorKind.WRONG_KIND
        assert "[...]" in str(exc_info.value)

    def test_count(self, sample_doc):
        """Test counting a materialized list."""
        assert execute(sample_doc, "[.h2] | count") == Scalar(2)
        assert execute(sample_doc, "[.h6] | count") == Scalar(0)

    def test_levels_total_matches_heading_count(self, sample_doc):
        """Test levels' total agrees with counting every heading."""
        levels = execute(sample_doc, ". | levels")
        assert levels.entries["total"] == execute(sample_doc, "[.h] | count")

    def test_stats_total_is_sum_of_kinds(self, sample_doc):
        """Test stats' total sums the per-kind counts."""
        stats = execute(sample_doc, ". | stats")
        counts = {key: value.value for key, value in stats.entries.items()}
        total = counts.pop("total")
        assert total == sum(counts.values())
        assert counts["headings"] == 5
        assert counts["code_blocks"] == 3

    def test_group_by_kind(self, sample_doc):
        """Test grouping links by kind keeps first-seen order."""
        result = execute(sample_doc, "[.link] | group_by(kind)")
        assert isinstance(result, MapValue)
        assert list(result.entries) == ["external", "anchor", "wikilink"]
        assert len(result.entries["external"]) == 2

    def test_elementwise_keeps_materialized_tag(self, sample_doc):
        """Test mapping over a materialized list keeps it materialized."""
        result = execute(sample_doc, "[.h2] | text")
        assert result.materialized
        assert texts(result) == ["Install", "Usage"]

    def test_wrap_scalar(self, sample_doc):
        """Test wrapping a non-list makes a one-element list."""
        result = execute(sample_doc, "[[.h] | count]")
        assert result.materialized
        assert result.items == (Scalar(5),)


class TestPurity:
    """Test evaluation never changes the document."""

    def test_repeated_evaluation_is_stable(self, sample_doc):
        """Test the same query twice gives equal results."""
        first = execute(sample_doc, ".h1 >> .code | lang")
        second = execute(sample_doc, ".h1 >> .code | lang")
        assert first == second

    def test_document_unchanged(self):
        """Test the document compares equal before and after querying."""
        source = dedent(
            """\
            # A
            ## B
            text
            """
        )
        doc = Document.parse(source)
        snapshot = Document.parse(source)
        execute(doc, "[.h] | group_by(level)")
        assert doc == snapshot
        assert all(isinstance(h, Heading) for h in doc.headings)
