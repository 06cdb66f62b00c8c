"""PersistenceGateway against a real SQLite engine."""

import pytest
from sqlalchemy import text

from tripbooking.core.exceptions import ValidationError
from tripbooking.models import Tourist


def test_execute_returns_rows_as_dicts(persistence, seed):
    rows = persistence.execute(
        "SELECT id, name FROM tourists WHERE email = :email", {"email": "ana@example.com"}
    )
    assert rows == [{"id": seed.tourist.id, "name": "Ana Tourist"}]


def test_execute_statement_without_rows(persistence, seed):
    assert (
        persistence.execute(
            text("UPDATE tourists SET name = :name WHERE id = :id"),
            {"name": "Ana T.", "id": seed.tourist.id},
        )
        == []
    )
    assert persistence.execute("SELECT name FROM tourists WHERE id = :id", {"id": seed.tourist.id}) == [
        {"name": "Ana T."}
    ]


def test_business_error_rolls_back_every_statement(db, persistence, seed):
    def _rename_then_fail(session):
        session.get(Tourist, seed.tourist.id).name = "Changed"
        session.flush()
        raise ValidationError("nope")

    with pytest.raises(ValidationError):
        persistence.with_transaction(_rename_then_fail)

    db.expire_all()
    assert db.get(Tourist, seed.tourist.id).name == "Ana Tourist"


def test_ping(persistence):
    assert persistence.ping() is True
    assert persistence.connect_with_backoff() is True
    assert persistence.degraded is False
