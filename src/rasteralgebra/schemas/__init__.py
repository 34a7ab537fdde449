"""Bundled JSON schemas for algebra job files."""
