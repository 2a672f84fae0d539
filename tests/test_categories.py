from app.models import CategoryRule
from app.services.category_service import sync_categories


def test_sync_only_adds_missing_categories(db, make_deal):
    make_deal(category="Kitchen")
    make_deal(category="Audio")
    make_deal(category=None)
    db.add(CategoryRule(category="Kitchen", is_published=False))
    db.commit()

    assert sync_categories(db) == 1
    rules = {r.category: r.is_published for r in db.query(CategoryRule).all()}
    assert rules == {"Kitchen": False, "Audio": True}
    assert sync_categories(db) == 0


def test_admin_categories_flow(client, admin_headers, make_deal):
    make_deal(category="Kitchen")
    make_deal(category="Audio")

    rules = client.get("/admin/categories", headers=admin_headers).json()["rules"]
    assert [r["category"] for r in rules] == ["Audio", "Kitchen"]

    kitchen = next(r for r in rules if r["category"] == "Kitchen")
    resp = client.patch(
        f"/admin/categories/{kitchen['id']}",
        json={"is_published": False},
        headers=admin_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["rule"]["is_published"] is False

    assert client.get("/categories").json() == {"categories": ["Audio"]}


def test_admin_categories_errors(client, admin_headers, user_headers):
    assert client.post("/admin/categories/sync", headers=user_headers).status_code == 403
    assert client.post("/admin/categories/sync", headers=admin_headers).json() == {"added": 0}
    resp = client.patch("/admin/categories/missing", json={"is_published": True}, headers=admin_headers)
    assert resp.status_code == 404
    resp = client.patch("/admin/categories/missing", json={}, headers=admin_headers)
    assert resp.status_code == 400
