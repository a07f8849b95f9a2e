"""DB-backed store and activity log against the SQLite test database."""
from datetime import datetime, timedelta

import pytest

from models.subscription import Preferences, Subscription
from services.activity_logger import list_activities, log_activity
from services.notification_service import NotificationService
from services.subscription_db_service import SubscriptionDBService
from services.subscription_store import DuplicateSubscriptionError, get_subscription_store, in_memory_store


@pytest.mark.asyncio
async def test_store_selection(db_session):
    assert isinstance(get_subscription_store(db_session), SubscriptionDBService)
    assert get_subscription_store(None) is in_memory_store


@pytest.mark.asyncio
async def test_add_get_and_duplicate(db_session):
    store = SubscriptionDBService(db_session)
    sub = await store.add(Subscription(email="a@example.com"))

    assert sub.id is not None
    assert sub.subscribed_at is not None
    assert sub.preferences == Preferences()

    fetched = await store.get_by_email("a@example.com")
    assert fetched.id == sub.id
    assert await store.get_by_email("missing@example.com") is None

    with pytest.raises(DuplicateSubscriptionError):
        await store.add(Subscription(email="a@example.com"))


@pytest.mark.asyncio
async def test_both_stores_raise_the_same_duplicate_error(db_session, memory_store):
    for store in (SubscriptionDBService(db_session), memory_store):
        await store.add(Subscription(email="dup@example.com"))
        with pytest.raises(DuplicateSubscriptionError):
            await store.add(Subscription(email="dup@example.com"))


@pytest.mark.asyncio
async def test_matcher_filters_on_active_and_preference(db_session):
    store = SubscriptionDBService(db_session)
    a = await store.add(Subscription(email="a@example.com", preferences=Preferences(gamingZone=True)))
    await store.add(Subscription(email="b@example.com", preferences=Preferences(gamingZone=False)))
    off = await store.add(Subscription(email="c@example.com"))
    off.is_active = False
    await store.save(off)

    matched = await store.find_active_by_preference("gamingZone")

    assert [s.email for s in matched] == [a.email]
    with pytest.raises(ValueError):
        await store.find_active_by_preference("parking")


@pytest.mark.asyncio
async def test_mark_notified_touches_only_given_rows(db_session):
    store = SubscriptionDBService(db_session)
    a = await store.add(Subscription(email="a@example.com"))
    b = await store.add(Subscription(email="b@example.com"))
    when = datetime(2026, 3, 1, 10, 30)

    assert await store.mark_notified([a.id], when) == 1
    assert await store.mark_notified([], when) == 0

    db_session.expire_all()
    assert (await store.get_by_email(a.email)).last_notified == when
    assert (await store.get_by_email(b.email)).last_notified is None


@pytest.mark.asyncio
async def test_counts_and_preference_totals(db_session):
    store = SubscriptionDBService(db_session)
    assert await store.preference_totals() == {"pgHostels": 0, "messCafe": 0, "gamingZone": 0, "specialOffers": 0}

    a = await store.add(Subscription(email="a@example.com", preferences=Preferences(messCafe=False)))
    b = await store.add(Subscription(email="b@example.com", preferences=Preferences(specialOffers=False)))
    c = await store.add(Subscription(email="c@example.com"))
    c.is_active = False
    await store.save(c)

    since = datetime(2026, 3, 1, 12, 0)
    await store.mark_notified([a.id], since + timedelta(seconds=1))
    await store.mark_notified([b.id, c.id], since)

    assert await store.count_active() == 2
    assert await store.count_notified_since(since) == 1
    assert await store.preference_totals() == {"pgHostels": 2, "messCafe": 1, "gamingZone": 2, "specialOffers": 1}


@pytest.mark.asyncio
async def test_list_subscriptions_paginates_newest_first(db_session):
    store = SubscriptionDBService(db_session)
    base = datetime(2026, 1, 1)
    for i in range(5):
        await store.add(Subscription(email=f"u{i}@example.com", subscribed_at=base + timedelta(days=i)))

    page1, total = await store.list_subscriptions(active=True, page=1, limit=2)
    page3, _ = await store.list_subscriptions(active=True, page=3, limit=2)
    inactive, inactive_total = await store.list_subscriptions(active=False)

    assert total == 5
    assert [s.email for s in page1] == ["u4@example.com", "u3@example.com"]
    assert [s.email for s in page3] == ["u0@example.com"]
    assert inactive == [] and inactive_total == 0


@pytest.mark.asyncio
async def test_dispatch_against_database(db_session):
    store = SubscriptionDBService(db_session)
    await store.add(Subscription(email="a@example.com", preferences=Preferences(pgHostels=True)))
    await store.add(Subscription(email="b@example.com", preferences=Preferences(pgHostels=False)))
    await store.add(Subscription(email="c@example.com", preferences=Preferences(pgHostels=True)))
    started = datetime.utcnow()

    result = await NotificationService().notify_new_listing(store, "room", {"title": "Room", "price": 4000})

    assert result["success"] is True
    assert result["notified_count"] == 2
    db_session.expire_all()
    assert (await store.get_by_email("a@example.com")).last_notified >= started
    assert (await store.get_by_email("b@example.com")).last_notified is None
    assert (await store.get_by_email("c@example.com")).last_notified >= started


@pytest.mark.asyncio
async def test_activity_log_roundtrip_and_filters(db_session):
    await log_activity(db_session, "CREATE", "SUBSCRIPTION", resource_id="1", details="New subscription")
    await log_activity(db_session, "READ", "ACTIVITY", user_id="admin1", ip_address="10.0.0.1")
    await log_activity(db_session, "DELETE", "SUBSCRIPTION", user_id="admin1", status="FAILED")

    items, total = await list_activities(db_session)
    assert total == 3
    assert items[0]["action"] == "DELETE"

    items, total = await list_activities(db_session, resource="SUBSCRIPTION", user_id="admin1")
    assert total == 1
    assert items[0]["status"] == "FAILED"


@pytest.mark.asyncio
async def test_activity_log_rejects_unknown_action_without_raising(db_session):
    assert await log_activity(db_session, "EXPLODE", "SUBSCRIPTION") is None
    assert await log_activity(None, "CREATE", "SUBSCRIPTION") is None
    _, total = await list_activities(db_session)
    assert total == 0
