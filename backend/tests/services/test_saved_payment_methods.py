"""Saved payment methods: listing, default promotion, and ownership."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from tripbooking.core.exceptions import ConflictError, ForbiddenError, NotFoundError
from tripbooking.core.ulid_helper import generate_ulid
from tripbooking.models import SavedPaymentMethod
from tripbooking.repositories.payment_repository import SavedPaymentMethodRepository

BASE_TIME = datetime(2030, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def add_method(db):
    def _add(tourist_id, last4, *, is_default=False, age_minutes=0):
        method = SavedPaymentMethod(
            id=generate_ulid(),
            tourist_id=tourist_id,
            card_type="Visa",
            last4=last4,
            expiry_month=12,
            expiry_year=2031,
            is_default=is_default,
            created_at=BASE_TIME - timedelta(minutes=age_minutes),
        )
        db.add(method)
        db.commit()
        return method.id

    return _add


def _defaults(db, tourist_id):
    db.expire_all()
    rows = db.query(SavedPaymentMethod).filter(SavedPaymentMethod.tourist_id == tourist_id).all()
    return {row.last4: row.is_default for row in rows}


def test_list_puts_default_first(saved_method_service, add_method, seed, tourist):
    add_method(seed.tourist.id, "1111", age_minutes=1)
    add_method(seed.tourist.id, "2222", is_default=True, age_minutes=30)
    add_method(seed.other_tourist.id, "9999", is_default=True)

    methods = saved_method_service.list_methods(tourist)

    assert [m.last4 for m in methods] == ["2222", "1111"]


def test_deleting_default_promotes_most_recent(db, saved_method_service, add_method, seed, tourist):
    default_id = add_method(seed.tourist.id, "1111", is_default=True, age_minutes=60)
    add_method(seed.tourist.id, "2222", age_minutes=30)
    add_method(seed.tourist.id, "3333", age_minutes=5)

    saved_method_service.delete_method(tourist, default_id)

    assert _defaults(db, seed.tourist.id) == {"2222": False, "3333": True}


def test_deleting_non_default_keeps_default(db, saved_method_service, add_method, seed, tourist):
    add_method(seed.tourist.id, "1111", is_default=True)
    other = add_method(seed.tourist.id, "2222", age_minutes=5)

    saved_method_service.delete_method(tourist, other)

    assert _defaults(db, seed.tourist.id) == {"1111": True}


def test_deleting_last_method(db, saved_method_service, add_method, seed, tourist):
    only = add_method(seed.tourist.id, "1111", is_default=True)
    saved_method_service.delete_method(tourist, only)
    assert _defaults(db, seed.tourist.id) == {}


def test_set_default_moves_the_flag(db, saved_method_service, add_method, seed, tourist):
    add_method(seed.tourist.id, "1111", is_default=True)
    other = add_method(seed.tourist.id, "2222")

    updated = saved_method_service.set_default(tourist, other)

    assert updated.is_default is True
    assert _defaults(db, seed.tourist.id) == {"1111": False, "2222": True}


def test_methods_of_other_tourists_are_not_found(saved_method_service, add_method, seed, tourist):
    theirs = add_method(seed.other_tourist.id, "9999", is_default=True)
    with pytest.raises(NotFoundError):
        saved_method_service.delete_method(tourist, theirs)
    with pytest.raises(NotFoundError):
        saved_method_service.set_default(tourist, theirs)


def test_only_tourists(saved_method_service, driver, admin):
    for actor in (driver, admin):
        with pytest.raises(ForbiddenError):
            saved_method_service.list_methods(actor)


def test_database_allows_one_default_per_tourist(db, add_method, seed):
    add_method(seed.tourist.id, "1111", is_default=True)
    add_method(seed.tourist.id, "2222")
    add_method(seed.other_tourist.id, "9999", is_default=True)

    with pytest.raises(IntegrityError):
        add_method(seed.tourist.id, "3333", is_default=True)
    db.rollback()

    assert _defaults(db, seed.tourist.id) == {"1111": True, "2222": False}


def test_concurrent_default_change_is_a_conflict(db, saved_method_service, add_method, seed, tourist, monkeypatch):
    add_method(seed.tourist.id, "1111", is_default=True)
    other = add_method(seed.tourist.id, "2222")
    # Another writer set a default between our clear and our update
    monkeypatch.setattr(SavedPaymentMethodRepository, "clear_defaults", lambda self, tourist_id: 0)

    with pytest.raises(ConflictError):
        saved_method_service.set_default(tourist, other)

    assert _defaults(db, seed.tourist.id) == {"1111": True, "2222": False}


def test_default_changes_lock_the_tourist_row(saved_method_service, add_method, seed, tourist, monkeypatch):
    locked = []
    original = SavedPaymentMethodRepository.lock_tourist

    def _record(self, tourist_id):
        locked.append(tourist_id)
        return original(self, tourist_id)

    monkeypatch.setattr(SavedPaymentMethodRepository, "lock_tourist", _record)
    first = add_method(seed.tourist.id, "1111", is_default=True)
    second = add_method(seed.tourist.id, "2222")

    saved_method_service.set_default(tourist, second)
    saved_method_service.delete_method(tourist, first)

    assert locked == [seed.tourist.id, seed.tourist.id]
