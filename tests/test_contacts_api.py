"""Contact and note endpoint tests: CRUD, pagination, search, isolation, cascade."""

from __future__ import annotations

import pytest
from sqlalchemy import func, select

from src.app.crm.models import DealModel, NoteModel


async def _create_contact(client, user, **fields) -> dict:
    payload = {"name": "Someone", "email": "someone@example.com"}
    payload.update(fields)
    response = await client.post("/contacts", json=payload, headers=user["headers"])
    assert response.status_code == 201, response.text
    return response.json()


# ── CRUD ─────────────────────────────────────────────────────────────────────


async def test_create_contact_defaults(client, alice):
    contact = await _create_contact(client, alice, name="Grace", email="grace@example.com")
    assert contact["ownerId"] == alice["id"]
    assert contact["company"] == ""
    assert contact["phone"] == ""
    assert contact["createdAt"] is not None


async def test_create_contact_ignores_owner_in_body(client, alice, bob):
    contact = await _create_contact(client, alice, ownerId=bob["id"])
    assert contact["ownerId"] == alice["id"]


@pytest.mark.parametrize(
    "payload",
    [
        {"email": "no-name@example.com"},
        {"name": "", "email": "empty@example.com"},
        {"name": "Bad Email", "email": "not-an-email"},
    ],
)
async def test_create_contact_validation(client, alice, payload):
    response = await client.post("/contacts", json=payload, headers=alice["headers"])
    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_FAILED"


async def test_get_contact(client, alice, alice_contact):
    response = await client.get(f"/contacts/{alice_contact['id']}", headers=alice["headers"])
    assert response.status_code == 200
    assert response.json() == alice_contact


async def test_patch_contact_only_supplied_fields(client, alice, alice_contact):
    response = await client.patch(
        f"/contacts/{alice_contact['id']}",
        json={"phone": "+1 555 0100"},
        headers=alice["headers"],
    )
    assert response.status_code == 200
    body = response.json()
    assert body["phone"] == "+1 555 0100"
    assert body["name"] == alice_contact["name"]
    assert body["company"] == alice_contact["company"]


async def test_patch_contact_empty_body(client, alice, alice_contact):
    response = await client.patch(
        f"/contacts/{alice_contact['id']}", json={}, headers=alice["headers"]
    )
    assert response.status_code == 200
    assert response.json() == alice_contact


@pytest.mark.parametrize(
    "bad_id", ["abc", "0", "-3", "1.5", "2147483648", "3000000000", "9" * 25, "1" * 5000]
)
async def test_invalid_id(client, alice, bad_id):
    response = await client.get(f"/contacts/{bad_id}", headers=alice["headers"])
    assert response.status_code == 400
    assert response.json() == {"error": "invalid id", "code": "INVALID_INPUT", "details": None}


async def test_missing_contact_is_forbidden(client, alice):
    response = await client.get("/contacts/999999", headers=alice["headers"])
    assert response.status_code == 403


# ── Listing ──────────────────────────────────────────────────────────────────


async def test_pagination(client, alice):
    for i in range(15):
        await _create_contact(client, alice, name=f"Contact {i:02d}", email=f"c{i}@example.com")

    response = await client.get(
        "/contacts", params={"page": 2, "pageSize": 10}, headers=alice["headers"]
    )
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 15
    assert body["page"] == 2
    assert body["pageSize"] == 10
    assert len(body["items"]) == 5
    # Newest first: page 2 holds the five oldest
    assert [c["name"] for c in body["items"]] == [f"Contact {i:02d}" for i in range(4, -1, -1)]


async def test_list_default_page(client, alice):
    for i in range(12):
        await _create_contact(client, alice, email=f"d{i}@example.com")
    body = (await client.get("/contacts", headers=alice["headers"])).json()
    assert len(body["items"]) == 10
    assert body["total"] == 12


@pytest.mark.parametrize("params", [{"pageSize": 51}, {"pageSize": 0}, {"page": 0}, {"page": "x"}])
async def test_list_invalid_paging(client, alice, params):
    response = await client.get("/contacts", params=params, headers=alice["headers"])
    assert response.status_code == 400


async def test_search(client, alice):
    await _create_contact(client, alice, name="Ada", email="ada@example.com", company="Engines")
    await _create_contact(client, alice, name="Grace", email="grace@navy.example.com")
    await _create_contact(client, alice, name="Alan", email="alan@example.com", company="Navy Labs")

    by_company = await client.get("/contacts", params={"search": "Navy"}, headers=alice["headers"])
    assert [c["name"] for c in by_company.json()["items"]] == ["Alan"]

    by_email = await client.get("/contacts", params={"search": "navy"}, headers=alice["headers"])
    assert [c["name"] for c in by_email.json()["items"]] == ["Grace"]

    by_name = await client.get("/contacts", params={"search": "Ad"}, headers=alice["headers"])
    body = by_name.json()
    assert body["total"] == 1
    assert body["items"][0]["name"] == "Ada"


async def test_search_treats_wildcards_literally(client, alice):
    await _create_contact(client, alice, name="100% Match", email="pct@example.com")
    await _create_contact(client, alice, name="Other", email="other@example.com")
    response = await client.get("/contacts", params={"search": "%"}, headers=alice["headers"])
    assert [c["name"] for c in response.json()["items"]] == ["100% Match"]


# ── Isolation ────────────────────────────────────────────────────────────────


async def test_list_only_shows_own_contacts(client, alice, bob, alice_contact):
    await _create_contact(client, bob, name="Bob's", email="bobs@example.com")
    body = (await client.get("/contacts", headers=alice["headers"])).json()
    assert body["total"] == 1
    assert body["items"][0]["id"] == alice_contact["id"]


async def test_other_user_cannot_touch_contact(client, alice, bob, alice_contact):
    url = f"/contacts/{alice_contact['id']}"
    assert (await client.get(url, headers=bob["headers"])).status_code == 403
    assert (
        await client.patch(url, json={"name": "Mine"}, headers=bob["headers"])
    ).status_code == 403
    assert (await client.delete(url, headers=bob["headers"])).status_code == 403
    assert (await client.get(f"{url}/notes", headers=bob["headers"])).status_code == 403
    assert (
        await client.post(f"{url}/notes", json={"body": "hi"}, headers=bob["headers"])
    ).status_code == 403

    unchanged = await client.get(url, headers=alice["headers"])
    assert unchanged.json()["name"] == alice_contact["name"]


# ── Notes ────────────────────────────────────────────────────────────────────


async def test_notes_create_and_list(client, alice, alice_contact):
    url = f"/contacts/{alice_contact['id']}/notes"
    first = await client.post(url, json={"body": "first"}, headers=alice["headers"])
    second = await client.post(url, json={"body": "second"}, headers=alice["headers"])
    assert first.status_code == 201
    note = second.json()
    assert note["contactId"] == alice_contact["id"]
    assert note["authorId"] == alice["id"]

    listing = await client.get(url, headers=alice["headers"])
    assert listing.status_code == 200
    assert [n["body"] for n in listing.json()["items"]] == ["second", "first"]


async def test_note_empty_body(client, alice, alice_contact):
    response = await client.post(
        f"/contacts/{alice_contact['id']}/notes", json={"body": ""}, headers=alice["headers"]
    )
    assert response.status_code == 400


# ── Cascade Delete ───────────────────────────────────────────────────────────


async def test_delete_contact_removes_notes_and_deals(
    client, alice, alice_contact, session_factory
):
    contact_url = f"/contacts/{alice_contact['id']}"
    note = await client.post(f"{contact_url}/notes", json={"body": "n"}, headers=alice["headers"])
    assert note.status_code == 201
    deal = await client.post(
        "/deals",
        json={"title": "Deal", "amount": 10, "contactId": alice_contact["id"]},
        headers=alice["headers"],
    )
    assert deal.status_code == 201
    deal_id = deal.json()["id"]

    response = await client.delete(contact_url, headers=alice["headers"])
    assert response.status_code == 200
    assert response.json() == {"ok": True}

    assert (await client.get(contact_url, headers=alice["headers"])).status_code == 403
    assert (await client.get(f"{contact_url}/notes", headers=alice["headers"])).status_code == 403
    assert (await client.get(f"/deals/{deal_id}", headers=alice["headers"])).status_code == 403
    deals = (await client.get("/deals", headers=alice["headers"])).json()
    assert deals["total"] == 0

    # Rows are gone from the tables, not just hidden behind the missing contact
    async with session_factory() as session:
        notes_left = await session.scalar(
            select(func.count()).select_from(NoteModel).where(NoteModel.contact_id == alice_contact["id"])
        )
        deals_left = await session.scalar(
            select(func.count()).select_from(DealModel).where(DealModel.contact_id == alice_contact["id"])
        )
    assert notes_left == 0
    assert deals_left == 0


async def test_delete_contact_leaves_other_contacts(client, alice, alice_contact):
    other = await _create_contact(client, alice, name="Keep", email="keep@example.com")
    await client.post(
        "/deals",
        json={"title": "Kept deal", "contactId": other["id"]},
        headers=alice["headers"],
    )
    await client.delete(f"/contacts/{alice_contact['id']}", headers=alice["headers"])

    deals = (await client.get("/deals", headers=alice["headers"])).json()
    assert [d["title"] for d in deals["items"]] == ["Kept deal"]
