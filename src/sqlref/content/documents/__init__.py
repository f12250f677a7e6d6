"""Markdown reference documents."""
