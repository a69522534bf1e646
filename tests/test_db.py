# ==============================================================================
# Tests for Schema Management — db.py
# ==============================================================================
"""
Tests for schema rendering and initialization with psycopg2 mocked out.
"""

from unittest.mock import MagicMock, patch

import pytest

from webanalytics.utils import db


class TestRenderSchemaSql:
    """Tests for the Jinja2 schema template."""

    def test_substitutes_schema_name(self):
        sql = db.render_schema_sql("web")

        assert "CREATE SCHEMA IF NOT EXISTS web;" in sql
        assert "CREATE TABLE IF NOT EXISTS web.sessions" in sql
        assert "REFERENCES web.sessions (id)" in sql
        assert "{{" not in sql

    def test_missing_file_raises(self, monkeypatch):
        monkeypatch.setattr(db, "get_schema_file", lambda: None)
        with pytest.raises(RuntimeError, match="schema/init.sql"):
            db.render_schema_sql("web")


class TestEnsureSchema:
    """Tests for idempotent schema initialization."""

    def test_existing_schema_is_left_alone(self, monkeypatch):
        monkeypatch.setattr(db, "check_schema_exists", lambda: True)
        with patch.object(db.psycopg2, "connect") as mock_connect:
            assert db.ensure_schema() is False
        mock_connect.assert_not_called()

    def test_creates_missing_schema(self, monkeypatch):
        monkeypatch.setattr(db, "check_schema_exists", lambda: False)
        conn = MagicMock()
        cursor = conn.cursor.return_value.__enter__.return_value

        with patch.object(db.psycopg2, "connect") as mock_connect:
            mock_connect.return_value.__enter__.return_value = conn
            assert db.ensure_schema() is True

        executed = cursor.execute.call_args.args[0]
        assert "CREATE TABLE IF NOT EXISTS" in executed
        conn.commit.assert_called_once()
