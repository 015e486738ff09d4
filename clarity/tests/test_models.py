"""Schema-level tests: cascades, defaults, uniqueness and stored formats."""

from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from clarity.models import (
    Connection,
    ConnectionTypeEnum,
    EventLog,
    ProcessingStatusEnum,
    User,
    Website,
    utcnow,
)


def _event(website_id, event_id="evt_1", **kwargs):
    data = {
        "website_id": website_id,
        "event_id": event_id,
        "event_name": "Purchase",
        "event_time": datetime(2026, 9, 30, 8, 0),
    }
    data.update(kwargs)
    return EventLog(**data)


def test_user_defaults(test_db_session, test_user):
    assert test_user.is_onboarded is False
    assert test_user.registered_at is not None


def test_clerk_id_is_unique(test_db_session, test_user):
    test_db_session.add(User(clerk_id=test_user.clerk_id, email="dupe@store.com"))
    with pytest.raises(IntegrityError):
        test_db_session.commit()
    test_db_session.rollback()


def test_website_defaults(test_db_session, test_website):
    assert test_website.currency == "USD"
    assert test_website.timezone == "UTC"
    assert test_website.created_at is not None


def test_website_requires_existing_user(test_db_session):
    test_db_session.add(Website(user_id=424242, url="https://ghost.example.com", name="Ghost"))
    with pytest.raises(IntegrityError):
        test_db_session.commit()
    test_db_session.rollback()


def test_connection_defaults(test_db_session, test_website):
    connection = Connection(website_id=test_website.id, platform="meta", type=ConnectionTypeEnum.destination)
    test_db_session.add(connection)
    test_db_session.commit()
    test_db_session.refresh(connection)

    assert connection.config == {}
    assert connection.is_active is True
    assert connection.encrypted_access_token is None


def test_event_log_defaults_to_pending(test_db_session, test_website):
    event = _event(test_website.id)
    test_db_session.add(event)
    test_db_session.commit()
    test_db_session.refresh(event)

    assert event.status == ProcessingStatusEnum.pending
    assert event.received_at is not None


def test_decimal_value_round_trips_as_text(test_db_session, test_website):
    event = _event(test_website.id, value="19.99", currency="EUR")
    test_db_session.add(event)
    test_db_session.commit()

    test_db_session.expire_all()
    stored = test_db_session.query(EventLog).filter(EventLog.event_id == "evt_1").one()
    assert stored.value == "19.99"
    assert isinstance(stored.value, str)


def test_event_time_is_independent_of_received_at(test_db_session, test_website):
    event_time = utcnow() - timedelta(days=3)
    event = _event(test_website.id, event_time=event_time)
    test_db_session.add(event)
    test_db_session.commit()
    test_db_session.refresh(event)

    assert event.event_time == event_time
    assert event.event_time < event.received_at


def test_deleting_user_cascades_to_everything_below(test_db_session, test_user, test_website):
    test_db_session.add(Connection(website_id=test_website.id, platform="shopify", type=ConnectionTypeEnum.source))
    test_db_session.add(_event(test_website.id))
    test_db_session.commit()

    test_db_session.delete(test_user)
    test_db_session.commit()

    assert test_db_session.query(Website).count() == 0
    assert test_db_session.query(Connection).count() == 0
    assert test_db_session.query(EventLog).count() == 0


def test_deleting_website_leaves_other_websites(test_db_session, test_user, test_website):
    keep = Website(user_id=test_user.id, url="https://keep.example.com", name="Keep")
    test_db_session.add(keep)
    test_db_session.commit()
    test_db_session.add_all([_event(test_website.id, "evt_a"), _event(keep.id, "evt_b")])
    test_db_session.commit()

    test_db_session.delete(test_website)
    test_db_session.commit()

    remaining = test_db_session.query(EventLog).all()
    assert [e.event_id for e in remaining] == ["evt_b"]
