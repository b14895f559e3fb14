"""Shared test fixtures for all test modules."""

from textwrap import dedent

import pytest

from markdown_outline import Document
from treemd.utils.logging import configure_logging


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """
    Point HOME at a temporary directory for every test.

    Keeps log files and configuration lookups away from the real user's
    ~/.cache/treemd and ~/.config/treemd, and clears TREEMD_* overrides.
    """
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    for var in ("TREEMD_OUTPUT_FORMAT", "TREEMD_PARSER_RESOLVE_LINKS", "TREEMD_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    configure_logging()
    return home


SAMPLE_MARKDOWN = dedent(
    """\
    # Project

    Intro with a [homepage](https://example.com) link.

    ## Install

    ```rust
    cargo install project
    ```

    - [x] Write docs
    - [ ] Publish crate

    ## Usage

    See [setup](#install) and [[Glossary]].

    ```python
    print("hi")
    ```

    ```
    plain block
    ```

    ### Advanced

    ![diagram](img/diagram.png)

    | Flag | Meaning |
    | ---- | ------- |
    | -v   | verbose |

    # Appendix

    Contact [us](mailto:team@example.com).
    """
)


@pytest.fixture
def sample_markdown():
    return SAMPLE_MARKDOWN


@pytest.fixture
def sample_doc():
    """Parsed sample document with two roots, nested sections and every element kind."""
    return Document.parse(SAMPLE_MARKDOWN)
