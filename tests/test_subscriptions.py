import time

import pytest


@pytest.mark.asyncio
async def test_subscribe_then_unsubscribe_success(client):
    """Full flow: subscribe once, check status, then successfully unsubscribe."""
    resp = await client.post("/api/subscription/subscribe", json={"email": "  Student@Example.com "})
    assert resp.status_code == 201
    data = resp.json()
    assert data.get("ok") is True
    sub = data["data"]["subscription"]
    assert sub["email"] == "student@example.com"
    assert sub["preferences"] == {"pgHostels": True, "messCafe": True, "gamingZone": True, "specialOffers": True}

    status = await client.get("/api/subscription/status", params={"email": "student@example.com"})
    assert status.status_code == 200
    assert status.json()["data"]["is_subscribed"] is True

    resp_unsub = await client.post("/api/subscription/unsubscribe", json={"email": "student@example.com"})
    assert resp_unsub.status_code == 200
    msg = resp_unsub.json()["data"]["message"].lower()
    assert "unsubscribed" in msg

    status = await client.get("/api/subscription/status", params={"email": "student@example.com"})
    assert status.json()["data"]["is_subscribed"] is False


@pytest.mark.asyncio
async def test_duplicate_subscription_is_rejected(client):
    payload = {"email": "dup@example.com"}
    resp1 = await client.post("/api/subscription/subscribe", json=payload)
    assert resp1.status_code == 201

    resp2 = await client.post("/api/subscription/subscribe", json=payload)
    assert resp2.status_code == 400
    assert resp2.json()["error"]["message"] == "This email is already subscribed to our newsletter"


@pytest.mark.asyncio
async def test_resubscribe_reactivates(client):
    await client.post("/api/subscription/subscribe", json={"email": "back@example.com"})
    await client.post("/api/subscription/unsubscribe", json={"email": "back@example.com"})

    resp = await client.post("/api/subscription/subscribe", json={"email": "back@example.com"})
    assert resp.status_code == 200
    assert "reactivated" in resp.json()["data"]["message"]
    assert resp.json()["data"]["subscription"]["is_active"] is True


@pytest.mark.asyncio
@pytest.mark.parametrize("email", ["", "not-an-email", "a@b"])
async def test_subscribe_requires_valid_email(client, email):
    resp = await client.post("/api/subscription/subscribe", json={"email": email})
    assert resp.status_code == 400
    assert resp.json()["ok"] is False


@pytest.mark.asyncio
@pytest.mark.parametrize("email", ["a" * 50 + "!", "a-" * 40 + "@" + "b-" * 40 + "!"])
async def test_long_malformed_email_is_rejected_quickly(client, email):
    started = time.monotonic()
    resp = await client.post("/api/subscription/subscribe", json={"email": email})
    assert resp.status_code == 400
    assert resp.json()["error"]["message"] == "Please enter a valid email address"
    assert time.monotonic() - started < 1.0


@pytest.mark.asyncio
async def test_unsubscribe_not_found(client):
    resp = await client.post("/api/subscription/unsubscribe", json={"email": "nobody@example.com"})
    assert resp.status_code == 404
    assert resp.json()["error"]["message"] == "Email not found in our subscription list"


@pytest.mark.asyncio
async def test_status_requires_email(client):
    resp = await client.get("/api/subscription/status")
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_update_preferences_merges_known_keys(client):
    await client.post("/api/subscription/subscribe", json={"email": "prefs@example.com"})

    resp = await client.put(
        "/api/subscription/preferences",
        json={"email": "prefs@example.com", "preferences": {"gamingZone": False, "parking": True}},
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["preferences"] == {
        "pgHostels": True,
        "messCafe": True,
        "gamingZone": False,
        "specialOffers": True,
    }

    missing = await client.put(
        "/api/subscription/preferences", json={"email": "ghost@example.com", "preferences": {"messCafe": False}}
    )
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_responses_carry_request_id(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "data": {"status": "ok"}, "error": None}
    assert resp.headers.get("X-Request-ID")
