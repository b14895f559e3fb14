"""Query evaluation against a parsed Document.

Evaluation is pure: the Document is only read, so a single Document can be
shared by any number of evaluations.
"""

from typing import Any, Iterable, Sequence

from markdown_outline import Document, Heading

from treemd.query.ast import (
    Axis,
    BracketWrap,
    ElementKind,
    Filter,
    FunctionCall,
    Hierarchy,
    IndexFilter,
    Pipeline,
    Root,
    Selector,
    SliceFilter,
    Stage,
    TextFilter,
)
from treemd.query.errors import EvalError, EvalErrorKind
from treemd.query.functions import FUNCTIONS, FunctionMode
from treemd.query.values import ElementRef, ListValue, MapValue, Value, match_key


_LEAF_COLLECTIONS = {
    ElementKind.CODE: "code_blocks",
    ElementKind.LINK: "links",
    ElementKind.IMAGE: "images",
    ElementKind.TABLE: "tables",
    ElementKind.CHECKBOX: "checkboxes",
}


def evaluate(pipeline: Pipeline, doc: Document) -> Value:
    """Evaluate a parsed pipeline against a document.

    Args:
        pipeline: Parsed query
        doc: Document to query

    Returns:
        Result value. Queries that match nothing return an empty list.

    Raises:
        EvalError: If a stage is applied to a value of the wrong shape
    """
    return Evaluator(doc).run(pipeline, ElementRef(doc))


class Evaluator:
    """Applies pipeline stages to values for one document."""

    def __init__(self, doc: Document):
        self.doc = doc

    def run(self, pipeline: Pipeline, value: Value) -> Value:
        for stage in pipeline.stages:
            value = self.apply(stage, value)
        return value

    def apply(self, stage: Stage, value: Value) -> Value:
        if isinstance(stage, Root):
            return ElementRef(self.doc)
        if isinstance(stage, Selector):
            return ListValue(tuple(ElementRef(e) for e in self.select(stage, value)))
        if isinstance(stage, Hierarchy):
            return ListValue(tuple(ElementRef(e) for e in self.hierarchy(stage, value)))
        if isinstance(stage, BracketWrap):
            return self.materialize(self.run(stage.pipeline, value))
        if isinstance(stage, FunctionCall):
            return self.call(stage, value)
        raise TypeError(f"Unknown stage type: {type(stage).__name__}")

    # Selection

    def select(self, selector: Selector, value: Value) -> list[Any]:
        """Elements matching a selector, scoped by the input value.

        On the document root the selector covers the whole document; on a
        list of headings it covers those headings' sections.
        """
        if isinstance(value, ElementRef) and value.is_document:
            return self.apply_filters(self.candidates(selector), selector.filters)

        scopes = self._heading_scopes(value, f"selector '{_selector_name(selector)}'")
        results = []
        for heading in scopes:
            found = self.descendants(heading, selector)
            results.extend(self.apply_filters(found, selector.filters))
        return results

    def candidates(self, selector: Selector) -> list[Any]:
        """All elements of the selector's kind in document order (unfiltered)."""
        if selector.kind is ElementKind.HEADING:
            return [h for h in self.doc.headings if selector.matches_level(h.level)]
        return list(getattr(self.doc, _LEAF_COLLECTIONS[selector.kind]))

    def apply_filters(self, elements: Sequence[Any], filters: Iterable[Filter]) -> list[Any]:
        elements = list(elements)
        for item_filter in filters:
            if isinstance(item_filter, TextFilter):
                needle = item_filter.text.lower()
                if item_filter.exact:
                    elements = [e for e in elements if match_key(e).lower() == needle]
                else:
                    elements = [e for e in elements if needle in match_key(e).lower()]
            elif isinstance(item_filter, IndexFilter):
                index = item_filter.index
                if -len(elements) <= index < len(elements):
                    elements = [elements[index]]
                else:
                    elements = []
            elif isinstance(item_filter, SliceFilter):
                elements = elements[item_filter.start : item_filter.stop]
        return elements

    # Hierarchy

    def hierarchy(self, stage: Hierarchy, value: Value) -> list[Any]:
        """Evaluate ``left > right`` / ``left >> right``.

        Right-hand filters apply per left heading. Results are concatenated in
        left order, then document order, without de-duplication.
        """
        if isinstance(stage.left, Hierarchy):
            left = self.hierarchy(stage.left, value)
        else:
            left = self.select(stage.left, value)

        results = []
        for heading in left:
            if not isinstance(heading, Heading):
                raise EvalError(
                    EvalErrorKind.WRONG_KIND,
                    f"'{stage.axis.value}' needs headings on its left, got {type(heading).__name__}",
                )
            if stage.axis is Axis.CHILD:
                found = self.children(heading, stage.right)
            else:
                found = self.descendants(heading, stage.right)
            results.extend(self.apply_filters(found, stage.right.filters))
        return results

    def children(self, heading: Heading, selector: Selector) -> list[Any]:
        """Direct children: child headings by tree edge, or leaves owned by heading."""
        if selector.kind is ElementKind.HEADING:
            return [
                child
                for child in self.doc.children_of(heading)
                if selector.matches_level(child.level)
            ]
        return [e for e in self.candidates(selector) if e.heading == heading.index]

    def descendants(self, heading: Heading, selector: Selector) -> list[Any]:
        """Everything of the selector's kind inside the heading's section span."""
        if selector.kind is ElementKind.HEADING:
            # The heading's own line starts its span; it is not its own descendant
            return [
                h
                for h in self.candidates(selector)
                if h.index != heading.index and heading.contains(h.span[0])
            ]
        return [e for e in self.candidates(selector) if heading.contains(e.span[0])]

    def _heading_scopes(self, value: Value, what: str) -> list[Heading]:
        if isinstance(value, ElementRef) and isinstance(value.element, Heading):
            return [value.element]
        if isinstance(value, ListValue) and all(
            isinstance(item, ElementRef) and isinstance(item.element, Heading)
            for item in value.items
        ):
            return [item.element for item in value.items]
        raise EvalError(
            EvalErrorKind.WRONG_KIND,
            f"{what} can only be applied to the document or to headings",
        )

    # Lists and functions

    @staticmethod
    def materialize(value: Value) -> ListValue:
        if isinstance(value, ListValue):
            return ListValue(value.items, materialized=True)
        return ListValue((value,), materialized=True)

    def call(self, call: FunctionCall, value: Value) -> Value:
        function = FUNCTIONS.get(call.name)
        if function is None:
            raise EvalError(EvalErrorKind.WRONG_KIND, f"Unknown function '{call.name}'")
        if len(call.args) != function.arity:
            raise EvalError(
                EvalErrorKind.ARITY_MISMATCH,
                f"{call.name}() takes {function.arity} argument(s), got {len(call.args)}",
            )

        if function.mode is FunctionMode.ELEMENTWISE:
            if isinstance(value, ListValue):
                return value.with_items(
                    function.impl(item, call.args, self.doc) for item in value.items
                )
            if isinstance(value, MapValue):
                raise EvalError(
                    EvalErrorKind.WRONG_KIND, f"{call.name}() cannot be applied to a map"
                )
        return function.impl(value, call.args, self.doc)


def _selector_name(selector: Selector) -> str:
    if selector.kind is ElementKind.HEADING and selector.level:
        return f".h{selector.level}"
    return f".{selector.kind.value}"
