# backend/tripbooking/api/dependencies/database.py
"""Persistence dependency; overridden in tests with a gateway on SQLite."""

from ...database.gateway import PersistenceGateway, get_persistence_gateway


def get_persistence() -> PersistenceGateway:
    return get_persistence_gateway()
