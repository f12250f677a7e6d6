"""Bundled reference content."""
