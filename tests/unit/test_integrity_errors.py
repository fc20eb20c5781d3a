"""
Unit tests for IntegrityError classification.
"""

import sqlite3

import pytest
from sqlalchemy.exc import IntegrityError

from gamevault.modules.shared.base_repository import classify_integrity_error


class DriverError(Exception):
    """Stand-in for a PostgreSQL driver error carrying SQLSTATE metadata."""

    def __init__(self, message, sqlstate, constraint_name=None):
        super().__init__(message)
        self.sqlstate = sqlstate
        self.constraint_name = constraint_name


def wrap(orig):
    return IntegrityError("INSERT INTO player_cosmetics", None, orig)


class TestClassifyIntegrityError:
    @pytest.mark.parametrize(
        "message,expected",
        [
            ("UNIQUE constraint failed: player_cosmetics.player_id, player_cosmetics.cosmetic_id", "unique"),
            ("FOREIGN KEY constraint failed", "foreign_key"),
            ("CHECK constraint failed: quantity_positive", "check"),
            ("NOT NULL constraint failed: players.username", "not_null"),
            ("something else entirely", "unknown"),
        ],
    )
    def test_sqlite_messages(self, message, expected):
        kind, name = classify_integrity_error(wrap(sqlite3.IntegrityError(message)))

        assert kind == expected
        assert name is None

    @pytest.mark.parametrize(
        "sqlstate,constraint,expected",
        [
            ("23505", "pk_player_cosmetics", "unique"),
            ("23503", "fk_player_cosmetics_cosmetic_id_cosmetics_catalog", "foreign_key"),
            ("23514", "ck_inventory_quantity_positive", "check"),
        ],
    )
    def test_sqlstate_and_constraint_name(self, sqlstate, constraint, expected):
        kind, name = classify_integrity_error(wrap(DriverError("rejected", sqlstate, constraint)))

        assert kind == expected
        assert name == constraint

    def test_adapted_error_reads_driver_cause(self):
        # The asyncpg adapter raises its own error from the driver exception
        driver = DriverError("violates foreign key", "23503", "fk_x")
        adapted = Exception("adapted")
        adapted.__cause__ = driver

        assert classify_integrity_error(wrap(adapted)) == ("foreign_key", "fk_x")
