"""
Serialization of writes within one One-Best scope.

A scope is the ``(user, restaurant, dish_type)`` triple. On PostgreSQL the engine takes a
transaction-level advisory lock keyed on the triple, so two submissions for the same scope run one
after the other while different scopes never wait on each other. Lock waits are bounded by
``RANKING_LOCK_TIMEOUT_MS``.

SQLite already serializes writers for the whole database, so no extra lock is taken there.
"""

import hashlib

import structlog
from django.conf import settings
from django.db import connection


logger = structlog.get_logger(__name__)


def scope_lock_key(user_id: int, restaurant_id: int, dish_type: str) -> int:
    """
    Return a stable signed 64-bit key for a scope.

    The key must be identical across processes and hosts, so Python's salted ``hash()`` is not
    usable here.
    """
    raw = f"ranking-scope:{user_id}:{restaurant_id}:{dish_type}".encode()
    digest = hashlib.blake2b(raw, digest_size=8).digest()
    return int.from_bytes(digest, byteorder="big", signed=True)


def lock_ranking_scope(user_id: int, restaurant_id: int, dish_type: str) -> None:
    """
    Hold the scope lock until the surrounding transaction ends.

    Must be called inside ``transaction.atomic()``. A lock wait longer than the configured timeout
    makes the database raise, which the engine reports as ConflictAbort.
    """
    if connection.vendor != "postgresql":
        return

    key = scope_lock_key(user_id, restaurant_id, dish_type)
    timeout = f"{settings.RANKING_LOCK_TIMEOUT_MS}ms"
    with connection.cursor() as cursor:
        cursor.execute("SELECT set_config('lock_timeout', %s, true)", [timeout])
        cursor.execute("SELECT pg_advisory_xact_lock(%s)", [key])
    logger.debug(
        "ranking_scope_locked",
        user_id=user_id,
        restaurant_id=restaurant_id,
        dish_type=dish_type,
        key=key,
    )
