"""treemd: navigate and query the structure of markdown documents."""

__version__ = "0.1.0"
