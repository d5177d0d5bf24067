"""Integration test fixtures.

Integration tests run the real store, classifier, engine and app against the
in-memory SQLite database from tests/conftest.py; nothing is mocked except
the mail transport.
"""
