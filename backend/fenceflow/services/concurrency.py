# Overview: Row locking helper for stock-mutating operations.

from __future__ import annotations


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE (its writes are serialized
    per database), but PostgreSQL/MySQL will honor it.
    """
    return query.with_for_update()
