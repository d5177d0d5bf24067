"""Shared test fixtures and utilities for contract tests.

Note: Common fixtures are defined in tests/conftest.py and are
automatically available to all contract tests.
"""

# Contract tests can use fixtures from tests/conftest.py:
# - settings, app, client, probe_headers
# - store, make_sample, mail_sender
# - as_admin, as_editor, admin_identity, editor_identity
