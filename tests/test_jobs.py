from datetime import datetime, timedelta
from io import BytesIO

import httpx
from PIL import Image

from app.core import config
from app.jobs_images import verify_deal_images
from app.jobs_stale import check_stale_deals
from app.models import Deal
from app.services import alert_service, image_proxy_service


def _png(width=50, height=50) -> bytes:
    buf = BytesIO()
    Image.new("RGB", (width, height)).save(buf, format="PNG")
    return buf.getvalue()


def _use_transport(monkeypatch, handler):
    monkeypatch.setattr(
        image_proxy_service,
        "_make_client",
        lambda timeout=8.0: httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


def test_verifies_stored_image(db, make_deal, monkeypatch):
    deal = make_deal()
    _use_transport(monkeypatch, lambda request: httpx.Response(200, content=_png()))

    result = verify_deal_images()

    assert result["processed"] == 1
    assert result["verified"] == 1
    db.expire_all()
    refreshed = db.get(Deal, deal.id)
    assert refreshed.image_ready is True
    assert refreshed.verified_image_url == "https://m.media-amazon.com/images/I/earbuds.jpg"
    assert refreshed.image_last_checked is not None


def test_falls_back_to_cdn_candidate(db, make_deal, monkeypatch):
    deal = make_deal(image_url="https://via.placeholder.com/300x300?text=No+Image")
    good = "https://m.media-amazon.com/images/I/B0ABCDEF12._AC_SL1000_.jpg"

    def handler(request):
        if str(request.url) == good:
            return httpx.Response(200, content=_png())
        return httpx.Response(404)

    _use_transport(monkeypatch, handler)
    verify_deal_images(deal_id=deal.id)

    db.expire_all()
    refreshed = db.get(Deal, deal.id)
    assert refreshed.verified_image_url == good
    assert refreshed.image_url == good


def test_failure_increments_retry_counter(db, make_deal, monkeypatch):
    deal = make_deal(image_retry_count=1)
    _use_transport(monkeypatch, lambda request: httpx.Response(404))

    result = verify_deal_images()

    assert result["retry"] == 1
    db.expire_all()
    refreshed = db.get(Deal, deal.id)
    assert refreshed.image_ready is False
    assert refreshed.image_retry_count == 2


def test_exhausted_and_ready_deals_are_skipped(make_deal, monkeypatch):
    make_deal(image_retry_count=5)
    make_deal(image_ready=True)
    _use_transport(monkeypatch, lambda request: httpx.Response(200, content=_png()))

    assert verify_deal_images(max_retries=5)["processed"] == 0


def test_admin_can_trigger_verification(client, admin_headers, make_deal, monkeypatch):
    make_deal()
    _use_transport(monkeypatch, lambda request: httpx.Response(200, content=_png()))

    resp = client.post("/admin/verify-deal-images", json={"batchSize": 5}, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["verified"] == 1


def test_stale_check_fresh_deals(make_deal):
    make_deal(fetched_at=datetime.utcnow() - timedelta(hours=1))
    result = check_stale_deals()
    assert result["message"] == "Deals are fresh"
    assert result["alert_sent"] is False


def test_stale_check_empty_store():
    assert check_stale_deals()["message"] == "No deals in database"


def test_stale_check_sends_alert(make_deal, monkeypatch):
    make_deal(fetched_at=datetime.utcnow() - timedelta(hours=8))
    sent = []

    def fake_post(self, url, json=None, **kwargs):
        sent.append((url, json))
        return httpx.Response(204, request=httpx.Request("POST", url))

    monkeypatch.setattr(config, "ALERT_WEBHOOK_URL", "https://discord.test/api/webhooks/1/abc")
    monkeypatch.setattr(httpx.Client, "post", fake_post)

    result = check_stale_deals()

    assert result["alert_sent"] is True
    assert float(result["hours_since_update"]) >= 8
    url, payload = sent[0]
    assert url == "https://discord.test/api/webhooks/1/abc"
    assert payload["embeds"][0]["title"].startswith("No new deals")


def test_alert_failure_is_swallowed():
    def boom(request):
        raise httpx.ConnectError("down", request=request)

    with httpx.Client(transport=httpx.MockTransport(boom)) as client:
        assert alert_service.send_webhook_alert("t", "d", webhook_url="https://x.test/hook", client=client) is False
    assert alert_service.send_webhook_alert("t", "d", webhook_url="") is False
