# tests/fixtures/__init__.py
"""Shared test builders for flowstitch tests.

Builders live in tests.fixtures.factories; pytest fixtures that use them
live in tests/conftest.py.
"""
