"""Data models for treemd."""
