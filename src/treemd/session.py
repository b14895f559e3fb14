"""Document session: one parsed document plus the queries run against it."""

from pathlib import Path
from typing import Dict, Optional

from markdown_outline import Document, Heading, extract_section

from treemd.input import process_input, read_source
from treemd.query import Pipeline, Value, evaluate, parse
from treemd.utils.logging import get_logger


logger = get_logger(__name__)


class DocumentSession:
    """
    Hold a parsed Document and evaluate queries against it.

    Parsed pipelines are cached per session, so running the same query
    repeatedly (as an interactive front end does on every keystroke or
    refresh) only parses it once. The Document itself is immutable; a reload
    builds a fresh one from disk.

    Example:
        >>> session = DocumentSession.from_path(Path("README.md"))
        >>> session.query(".h2 | text")
        >>> if session.is_stale():
        ...     session.reload()
    """

    def __init__(self, text: str, path: Optional[Path] = None, resolve_links: bool = True):
        """
        Initialize session from markdown text.

        Args:
            text: Markdown source
            path: File the text was read from, if any
            resolve_links: Resolve relative link targets against the file's directory
        """
        self.path = path
        self.resolve_links = resolve_links
        self._pipelines: Dict[str, Pipeline] = {}
        self._mtime: Optional[float] = None
        self.document = self._build(text)

    @classmethod
    def from_path(cls, path: Optional[Path], resolve_links: bool = True) -> "DocumentSession":
        """
        Read and parse a markdown file (None or "-" reads standard input).

        Raises:
            InputError: If the input cannot be read
        """
        if path is None or str(path) == "-":
            return cls(process_input(read_source(None if path is None else "-")))

        session = cls(process_input(read_source(str(path))), path=path, resolve_links=resolve_links)
        session._mtime = path.stat().st_mtime
        return session

    @classmethod
    def from_text(cls, text: str) -> "DocumentSession":
        return cls(process_input(text))

    def _build(self, text: str) -> Document:
        base_dir = None
        if self.path is not None and self.resolve_links:
            base_dir = self.path.resolve().parent
        document = Document.parse(text, base_dir=base_dir)
        logger.info(
            "document_loaded",
            path=str(self.path) if self.path else None,
            headings=len(document.headings),
            code_blocks=len(document.code_blocks),
            links=len(document.links),
        )
        return document

    def query(self, query: str) -> Value:
        """
        Evaluate a query against the session's document.

        Raises:
            ParseError: If the query is malformed
            EvalError: If evaluation fails
        """
        pipeline = self._pipelines.get(query)
        if pipeline is None:
            pipeline = parse(query)
            self._pipelines[query] = pipeline
        else:
            logger.debug("query_cache_hit", query=query)

        result = evaluate(pipeline, self.document)
        logger.info("query_executed", query=query, result=type(result).__name__)
        return result

    def section(self, name: str) -> str:
        """
        Raw text of the first section whose heading matches ``name``.

        Raises:
            SectionNotFoundError: If no heading matches
        """
        return extract_section(self.document, name)

    def headings(self, max_level: Optional[int] = None, text_filter: Optional[str] = None) -> list[Heading]:
        """
        Headings in document order, optionally limited by depth and text.

        Args:
            max_level: Only headings at this level or shallower
            text_filter: Case-insensitive substring the heading text must contain
        """
        result = []
        for heading in self.document.headings:
            if max_level is not None and heading.level > max_level:
                continue
            if text_filter and text_filter.lower() not in heading.text.lower():
                continue
            result.append(heading)
        return result

    def is_stale(self) -> bool:
        """True if the backing file changed on disk (or vanished) since it was read."""
        if self.path is None or self._mtime is None:
            return False
        try:
            return self.path.stat().st_mtime != self._mtime
        except OSError as e:
            logger.warning("document_stat_failed", path=str(self.path), error=str(e))
            return True

    def reload(self) -> Document:
        """
        Re-read the backing file and rebuild the document.

        The query cache survives a reload; parsed pipelines do not depend on
        the document.

        Returns:
            The new Document

        Raises:
            ValueError: If the session was not created from a file
            InputError: If the file can no longer be read
        """
        if self.path is None:
            raise ValueError("Cannot reload a session without a backing file")

        text = process_input(read_source(str(self.path)))
        self._mtime = self.path.stat().st_mtime
        self.document = self._build(text)
        logger.info("document_reloaded", path=str(self.path))
        return self.document
