"""Tests for the user activity store."""

import pytest

from catalogrec.recommender.activity import ActivityStore, ActivityType, UserActivity
from catalogrec.recommender.store import InMemoryDocumentStore


@pytest.fixture
def activity_store() -> ActivityStore:
    return ActivityStore(InMemoryDocumentStore())


def test_unknown_user_has_no_record(activity_store):
    assert activity_store.get_activity("nobody") is None


def test_first_activity_creates_record(activity_store):
    activity = activity_store.record_activity("u1", "p1", "view")

    assert activity.user_id == "u1"
    assert activity.viewed_products == {"p1"}
    assert activity.browsing_history == ["p1"]
    assert activity.purchased_products == set()
    assert activity_store.get_activity("u1") == activity


def test_repeated_view_is_idempotent(activity_store):
    """Test that viewing the same product again changes nothing."""
    activity_store.record_activity("u1", "p1", ActivityType.VIEW)
    activity_store.record_activity("u1", "p2", ActivityType.VIEW)
    before = activity_store.get_activity("u1")

    activity_store.record_activity("u1", "p1", ActivityType.VIEW)

    assert activity_store.get_activity("u1") == before
    assert before.browsing_history == ["p1", "p2"]


def test_purchase_does_not_touch_browsing(activity_store):
    activity_store.record_activity("u1", "p1", "purchase")
    activity_store.record_activity("u1", "p1", "purchase")

    activity = activity_store.get_activity("u1")
    assert activity.purchased_products == {"p1"}
    assert activity.viewed_products == set()
    assert activity.browsing_history == []


def test_cart_add_records_nothing(activity_store):
    """Test that cart_add is accepted and creates an empty record."""
    activity = activity_store.record_activity("u1", "p1", "cart_add")

    assert activity == UserActivity(user_id="u1")
    assert activity_store.get_activity("u1") == UserActivity(user_id="u1")


def test_unknown_activity_type_is_rejected(activity_store):
    with pytest.raises(ValueError):
        activity_store.record_activity("u1", "p1", "wishlist")

    assert activity_store.get_activity("u1") is None


def test_records_are_independent(activity_store):
    activity_store.record_activity("u1", "p1", "view")
    activity_store.record_activity("u2", "p2", "view")

    assert activity_store.get_activity("u1").viewed_products == {"p1"}
    assert activity_store.get_activity("u2").viewed_products == {"p2"}


def test_recent_history_keeps_last_entries():
    activity = UserActivity(user_id="u1", browsing_history=[f"p{i}" for i in range(15)])

    assert activity.recent_history() == [f"p{i}" for i in range(5, 15)]
    assert activity.recent_history(3) == ["p12", "p13", "p14"]
