"""
Wine endpoints: create, stock-in, stock-out, update, package, delete, list.
"""
import pytest
from sqlalchemy import select, func, update

from conftest import API
from winestock.core.ledger import MAX_BOXES
from winestock.models.history import History
from winestock.models.wine import Wine, WineStatus

FIELDS = ("unpackagedBoxes", "packagedBoxes", "remainingWater")


async def _history(client, headers, **params):
    r = await client.get(f"{API}/history", params=params, headers=headers)
    assert r.status_code == 200, r.text
    return r.json()["histories"]


async def _history_count(session) -> int:
    return await session.scalar(select(func.count()).select_from(History))


def _assert_consistent(entry, wine):
    details = entry["details"]
    for f in FIELDS:
        assert details["after"][f] == pytest.approx(details["before"][f] + details["change"][f])
        assert wine[f] == pytest.approx(details["after"][f])
    assert wine["totalStock"] == wine["unpackagedBoxes"] + wine["packagedBoxes"]


# ─── Auth ─────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_wine_routes_require_bearer_token(client):
    r = await client.get(f"{API}/wine")
    assert r.status_code == 401
    assert "message" in r.json()

    r = await client.get(f"{API}/wine", headers={"Authorization": "Bearer not.a.jwt"})
    assert r.status_code == 401


# ─── Create ───────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_create_wine_records_stock_in_from_zero(client, operator_headers, operator_user):
    r = await client.post(
        f"{API}/wine",
        json={"name": "  Merlot  ", "type": "red", "unpackagedBoxes": 10,
              "packagedBoxes": 4, "remainingWater": 2.5, "remark": "first batch"},
        headers=operator_headers,
    )
    assert r.status_code == 201
    body = r.json()
    assert body["message"]
    wine = body["wine"]
    assert wine["name"] == "Merlot"
    assert wine["status"] == "in_stock"
    assert wine["totalStock"] == 14
    assert wine["remainingWater"] == 2.5

    [entry] = await _history(client, operator_headers)
    assert entry["action"] == "stock_in"
    assert entry["wineId"] == wine["id"]
    assert entry["wineName"] == "Merlot"
    assert entry["operator"] == operator_user.username
    assert entry["remark"] == "first batch"
    assert entry["details"]["before"] == {"unpackagedBoxes": 0, "packagedBoxes": 0, "remainingWater": 0}
    assert entry["details"]["change"] == entry["details"]["after"]
    _assert_consistent(entry, wine)


@pytest.mark.asyncio
async def test_create_wine_defaults_quantities_to_zero(make_wine):
    wine = await make_wine("Rosé", "rose")
    assert (wine["unpackagedBoxes"], wine["packagedBoxes"], wine["remainingWater"]) == (0, 0, 0)
    assert wine["totalStock"] == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [
    {"type": "red"},
    {"name": "Merlot"},
    {"name": "   ", "type": "red"},
    {"name": "Merlot", "type": "red", "packagedBoxes": -1},
    {"name": "Merlot", "type": "red", "remainingWater": -0.5},
])
async def test_create_wine_rejects_invalid_body(client, operator_headers, session, body):
    r = await client.post(f"{API}/wine", json=body, headers=operator_headers)
    assert r.status_code == 422
    assert "message" in r.json()
    assert await session.scalar(select(func.count()).select_from(Wine)) == 0
    assert await _history_count(session) == 0


# ─── Stock in ─────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_stock_in_adds_deltas(client, operator_headers, make_wine):
    wine = await make_wine(unpackagedBoxes=3, packagedBoxes=1, remainingWater=0.1)
    r = await client.put(
        f"{API}/wine/{wine['id']}/stock-in",
        json={"unpackagedBoxes": 2, "remainingWater": 0.2, "remark": "delivery"},
        headers=operator_headers,
    )
    assert r.status_code == 200
    updated = r.json()["wine"]
    assert updated["unpackagedBoxes"] == 5
    assert updated["packagedBoxes"] == 1
    assert updated["remainingWater"] == pytest.approx(0.3)
    assert updated["versionId"] == wine["versionId"] + 1

    entry = (await _history(client, operator_headers))[0]
    assert entry["action"] == "stock_in"
    assert entry["details"]["change"] == {"unpackagedBoxes": 2, "packagedBoxes": 0, "remainingWater": 0.2}
    _assert_consistent(entry, updated)


@pytest.mark.asyncio
async def test_stock_in_puts_wine_back_in_stock(client, operator_headers, make_wine, session):
    wine = await make_wine()
    await session.execute(update(Wine).where(Wine.id == wine["id"]).values(status=WineStatus.OUT_OF_STOCK))
    await session.commit()

    r = await client.put(f"{API}/wine/{wine['id']}/stock-in", json={"packagedBoxes": 1},
                         headers=operator_headers)
    assert r.status_code == 200
    assert r.json()["wine"]["status"] == "in_stock"


@pytest.mark.asyncio
async def test_stock_in_rejects_negative_delta(client, operator_headers, make_wine):
    wine = await make_wine(unpackagedBoxes=3)
    r = await client.put(f"{API}/wine/{wine['id']}/stock-in", json={"unpackagedBoxes": -2},
                         headers=operator_headers)
    assert r.status_code == 422


@pytest.mark.asyncio
@pytest.mark.parametrize("method,suffix,body", [
    ("GET", "", None),
    ("PUT", "", {"packagedBoxes": 1}),
    ("PUT", "/stock-in", {"packagedBoxes": 1}),
    ("PUT", "/stock-out", {"packagedBoxes": 1}),
    ("PUT", "/package", {"packagedBoxes": 1}),
    ("DELETE", "", None),
])
async def test_unknown_wine_is_not_found(client, operator_headers, session, method, suffix, body):
    r = await client.request(method, f"{API}/wine/missing-id{suffix}", json=body, headers=operator_headers)
    assert r.status_code == 404
    assert r.json() == {"message": "Wine not found"}
    assert await _history_count(session) == 0


# ─── Update (absolute set) ────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_update_sets_only_supplied_fields(client, operator_headers, make_wine):
    wine = await make_wine(unpackagedBoxes=8, packagedBoxes=2, remainingWater=1.5)
    r = await client.put(f"{API}/wine/{wine['id']}", json={"packagedBoxes": 5, "remainingWater": 0.25},
                         headers=operator_headers)
    assert r.status_code == 200
    updated = r.json()["wine"]
    assert updated["unpackagedBoxes"] == 8
    assert updated["packagedBoxes"] == 5
    assert updated["remainingWater"] == 0.25
    assert updated["totalStock"] == 13

    entry = (await _history(client, operator_headers))[0]
    assert entry["action"] == "update_stock"
    assert entry["details"]["change"] == {"unpackagedBoxes": 0, "packagedBoxes": 3, "remainingWater": -1.25}
    _assert_consistent(entry, updated)


@pytest.mark.asyncio
async def test_update_rejects_negative_value(client, operator_headers, make_wine, session):
    wine = await make_wine(unpackagedBoxes=8)
    r = await client.put(f"{API}/wine/{wine['id']}", json={"unpackagedBoxes": -1}, headers=operator_headers)
    assert r.status_code == 422
    assert (await session.get(Wine, wine["id"])).unpackaged_boxes == 8


# ─── Stock out ────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_stock_out_records_negated_deduction(client, operator_headers, make_wine):
    wine = await make_wine(unpackagedBoxes=6, packagedBoxes=4, remainingWater=3)
    r = await client.put(
        f"{API}/wine/{wine['id']}/stock-out",
        json={"unpackagedBoxes": 6, "packagedBoxes": 1, "remainingWater": 0.5},
        headers=operator_headers,
    )
    assert r.status_code == 200
    updated = r.json()["wine"]
    assert (updated["unpackagedBoxes"], updated["packagedBoxes"], updated["remainingWater"]) == (0, 3, 2.5)
    # status is not flipped by stock-out
    assert updated["status"] == "in_stock"

    entry = (await _history(client, operator_headers, action="stock_out"))[0]
    assert entry["details"]["change"] == {"unpackagedBoxes": -6, "packagedBoxes": -1, "remainingWater": -0.5}
    _assert_consistent(entry, updated)


@pytest.mark.asyncio
@pytest.mark.parametrize("deduction", [
    {"unpackagedBoxes": 7},
    {"packagedBoxes": 5},
    {"remainingWater": 3.001},
    {"unpackagedBoxes": 1, "packagedBoxes": 1, "remainingWater": 10},
])
async def test_stock_out_insufficient_changes_nothing(client, operator_headers, make_wine, session, deduction):
    wine = await make_wine(unpackagedBoxes=6, packagedBoxes=4, remainingWater=3)
    history_before = await _history_count(session)

    r = await client.put(f"{API}/wine/{wine['id']}/stock-out", json=deduction, headers=operator_headers)
    assert r.status_code == 400
    assert r.json()["message"] == "Insufficient stock"

    current = (await client.get(f"{API}/wine/{wine['id']}", headers=operator_headers)).json()
    assert current == wine
    assert await _history_count(session) == history_before


# ─── Package ──────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_package_moves_boxes(client, operator_headers, make_wine):
    wine = await make_wine(unpackagedBoxes=10, packagedBoxes=2, remainingWater=4)
    r = await client.put(f"{API}/wine/{wine['id']}/package", json={"packagedBoxes": 6},
                         headers=operator_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["packaged"] == 6
    updated = body["wine"]
    assert (updated["unpackagedBoxes"], updated["packagedBoxes"], updated["remainingWater"]) == (4, 8, 4)
    assert updated["totalStock"] == wine["totalStock"]

    entry = (await _history(client, operator_headers))[0]
    assert entry["action"] == "update_stock"
    assert entry["remark"] == "New packaging"
    assert entry["details"]["change"] == {"unpackagedBoxes": -6, "packagedBoxes": 6, "remainingWater": 0}
    _assert_consistent(entry, updated)


@pytest.mark.asyncio
async def test_package_can_set_remaining_water(client, operator_headers, make_wine):
    wine = await make_wine(unpackagedBoxes=10, remainingWater=4)
    r = await client.put(
        f"{API}/wine/{wine['id']}/package",
        json={"packagedBoxes": 10, "remainingWater": 1.75, "remark": "line 2"},
        headers=operator_headers,
    )
    assert r.status_code == 200
    updated = r.json()["wine"]
    assert updated["remainingWater"] == 1.75

    entry = (await _history(client, operator_headers))[0]
    assert entry["remark"] == "line 2"
    assert entry["details"]["change"]["remainingWater"] == -2.25
    _assert_consistent(entry, updated)


@pytest.mark.asyncio
@pytest.mark.parametrize("amount,message", [
    (0, "Packaging amount must be greater than 0"),
    (-3, "Packaging amount must be greater than 0"),
    (11, "Packaging amount cannot exceed unpackaged boxes (10)"),
])
async def test_package_rejects_bad_amount(client, operator_headers, make_wine, session, amount, message):
    wine = await make_wine(unpackagedBoxes=10)
    r = await client.put(f"{API}/wine/{wine['id']}/package", json={"packagedBoxes": amount},
                         headers=operator_headers)
    assert r.status_code == 400
    assert r.json()["message"] == message
    assert (await session.get(Wine, wine["id"])).unpackaged_boxes == 10
    assert await _history_count(session) == 1


@pytest.mark.asyncio
async def test_package_rejects_out_of_stock_wine(client, operator_headers, make_wine, session):
    wine = await make_wine(unpackagedBoxes=10)
    await session.execute(update(Wine).where(Wine.id == wine["id"]).values(status=WineStatus.OUT_OF_STOCK))
    await session.commit()

    r = await client.put(f"{API}/wine/{wine['id']}/package", json={"packagedBoxes": 1},
                         headers=operator_headers)
    assert r.status_code == 400
    assert "out of stock" in r.json()["message"]
    assert await _history_count(session) == 1


# ─── Delete / list / get ──────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_delete_keeps_history(client, operator_headers, make_wine):
    wine = await make_wine("Pinot Noir", unpackagedBoxes=2)
    await client.put(f"{API}/wine/{wine['id']}/stock-in", json={"packagedBoxes": 1}, headers=operator_headers)
    before = await _history(client, operator_headers)

    r = await client.delete(f"{API}/wine/{wine['id']}", headers=operator_headers)
    assert r.status_code == 200
    assert r.json() == {"message": "Wine deleted"}

    r = await client.get(f"{API}/wine/{wine['id']}", headers=operator_headers)
    assert r.status_code == 404

    after = await _history(client, operator_headers)
    assert after == before
    assert {e["wineName"] for e in after} == {"Pinot Noir"}


@pytest.mark.asyncio
async def test_list_shows_in_stock_wines_and_searches_name_or_type(client, operator_headers, make_wine, session):
    red = await make_wine("Cabernet", "Red")
    white = await make_wine("Chardonnay", "white")
    gone = await make_wine("Old Cabernet", "red")
    await session.execute(update(Wine).where(Wine.id == gone["id"]).values(status=WineStatus.OUT_OF_STOCK))
    await session.commit()

    r = await client.get(f"{API}/wine", headers=operator_headers)
    assert r.status_code == 200
    assert {w["id"] for w in r.json()} == {red["id"], white["id"]}

    r = await client.get(f"{API}/wine", params={"search": "cabern"}, headers=operator_headers)
    assert [w["id"] for w in r.json()] == [red["id"]]

    r = await client.get(f"{API}/wine", params={"search": "WHITE"}, headers=operator_headers)
    assert [w["id"] for w in r.json()] == [white["id"]]


@pytest.mark.asyncio
async def test_list_orders_by_most_recent_update(client, operator_headers, make_wine):
    first = await make_wine("First")
    second = await make_wine("Second")
    await client.put(f"{API}/wine/{first['id']}/stock-in", json={"packagedBoxes": 1}, headers=operator_headers)

    r = await client.get(f"{API}/wine", headers=operator_headers)
    assert [w["id"] for w in r.json()] == [first["id"], second["id"]]


@pytest.mark.asyncio
async def test_total_stock_tracks_every_save(client, operator_headers, make_wine):
    wine = await make_wine(unpackagedBoxes=5, packagedBoxes=5)
    wid = wine["id"]
    steps = [
        ("stock-in", {"unpackagedBoxes": 3}),
        ("package", {"packagedBoxes": 4}),
        ("stock-out", {"packagedBoxes": 2}),
        ("", {"unpackagedBoxes": 1}),
    ]
    for suffix, body in steps:
        path = f"{API}/wine/{wid}/{suffix}" if suffix else f"{API}/wine/{wid}"
        r = await client.put(path, json=body, headers=operator_headers)
        assert r.status_code == 200, r.text
        current = r.json()["wine"]
        assert current["totalStock"] == current["unpackagedBoxes"] + current["packagedBoxes"]

    history = await _history(client, operator_headers, limit=100)
    assert len(history) == 5


# ─── Column limits ────────────────────────────────────────────────────────────

@pytest.mark.asyncio
@pytest.mark.parametrize("quantities", [
    {"unpackagedBoxes": 2**63},
    {"packagedBoxes": MAX_BOXES + 1},
    {"remainingWater": 1e15},
    {"remainingWater": 0.1234},
])
async def test_create_rejects_unstorable_quantities(client, operator_headers, session, quantities):
    r = await client.post(f"{API}/wine", json={"name": "Huge", "type": "red", **quantities},
                          headers=operator_headers)
    assert r.status_code == 422
    assert r.json()["message"] == "Invalid request"
    assert await session.scalar(select(func.count()).select_from(Wine)) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("suffix,body", [
    ("/stock-in", {"unpackagedBoxes": 2**40}),
    ("/stock-out", {"packagedBoxes": MAX_BOXES + 1}),
    ("", {"packagedBoxes": 2**63}),
    ("/package", {"packagedBoxes": 2**63}),
    ("", {"remainingWater": 1234567890.5}),
])
async def test_mutations_reject_out_of_range_input(client, operator_headers, make_wine, suffix, body):
    wine = await make_wine(unpackagedBoxes=3)
    r = await client.put(f"{API}/wine/{wine['id']}{suffix}", json=body, headers=operator_headers)
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_repeated_stock_in_cannot_overflow_total(client, operator_headers, make_wine, session):
    wine = await make_wine(unpackagedBoxes=MAX_BOXES - 1)

    r = await client.put(f"{API}/wine/{wine['id']}/stock-in", json={"packagedBoxes": 2},
                         headers=operator_headers)
    assert r.status_code == 400
    assert r.json()["message"] == "Stock quantities exceed the storable maximum: total_stock"

    current = (await client.get(f"{API}/wine/{wine['id']}", headers=operator_headers)).json()
    assert current == wine
    assert await _history_count(session) == 1

    r = await client.put(f"{API}/wine/{wine['id']}/stock-in", json={"packagedBoxes": 1},
                         headers=operator_headers)
    assert r.status_code == 200
    assert r.json()["wine"]["totalStock"] == MAX_BOXES
