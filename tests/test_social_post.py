from types import SimpleNamespace

import anthropic
import httpx
import pytest
from fastapi.testclient import TestClient

from app.core import config
from app.services import social_post_service
from app.services.social_post_service import build_prompt
from main import app

DEAL = {"title": "Robot Vacuum", "brand": "Cleanly", "price": 199, "originalPrice": 299, "discount": 33.4}
PAYLOAD = {"deal": DEAL, "trackedUrl": "https://relay.test/go/1", "pageUrl": "https://relay.test/deal/1"}


class FakeMessages:
    def __init__(self, text=None, error=None):
        self.text = text
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(content=[SimpleNamespace(type="text", text=self.text)])


def _use_client(monkeypatch, messages):
    monkeypatch.setattr(social_post_service, "_get_client", lambda: SimpleNamespace(messages=messages))


def _status_error(cls, status, message):
    response = httpx.Response(status, request=httpx.Request("POST", "https://api.anthropic.com/v1/messages"))
    return cls(message, response=response, body=None)


def test_prompt_mentions_deal_and_platform_link():
    prompt = build_prompt(DEAL, "https://relay.test/deal/1", "whatsapp")
    assert "Product: Robot Vacuum" in prompt
    assert "Original Price: $299.00" in prompt
    assert "Discount: 33% OFF" in prompt
    assert "WhatsApp" in prompt
    assert "https://relay.test/deal/1" in prompt


def test_generates_post(client, monkeypatch):
    messages = FakeMessages(text="  Huge savings on the Robot Vacuum!  ")
    _use_client(monkeypatch, messages)

    resp = client.post("/generate-social-post", json=PAYLOAD)

    assert resp.status_code == 200
    assert resp.json() == {"text": "Huge savings on the Robot Vacuum!", "url": "https://relay.test/go/1"}
    assert messages.calls[0]["model"] == config.SOCIAL_POST_MODEL


def test_missing_deal_is_400(client, monkeypatch):
    _use_client(monkeypatch, FakeMessages(text="unused"))
    assert client.post("/generate-social-post", json={"trackedUrl": "x"}).status_code == 400
    assert client.post("/generate-social-post", json={"deal": {"price": 1}}).status_code == 400


@pytest.mark.parametrize(
    "error, status",
    [
        (_status_error(anthropic.RateLimitError, 429, "rate limited"), 429),
        (_status_error(anthropic.APIStatusError, 402, "payment required"), 402),
        (_status_error(anthropic.BadRequestError, 400, "Your credit balance is too low"), 402),
        (_status_error(anthropic.InternalServerError, 500, "overloaded"), 500),
    ],
)
def test_upstream_error_mapping(client, monkeypatch, error, status):
    _use_client(monkeypatch, FakeMessages(error=error))
    resp = client.post("/generate-social-post", json=PAYLOAD)
    assert resp.status_code == status
    assert "error" in resp.json()


def test_missing_api_key_is_500(client, monkeypatch):
    monkeypatch.setattr(config, "ANTHROPIC_API_KEY", None)
    resp = client.post("/generate-social-post", json=PAYLOAD)
    assert resp.status_code == 500
    assert resp.json() == {"error": "ANTHROPIC_API_KEY is not configured"}


def test_non_numeric_discount_is_left_out_of_prompt(client, monkeypatch):
    messages = FakeMessages(text="Deal!")
    _use_client(monkeypatch, messages)

    deal = {"title": "X", "price": "n/a", "discount": "abc"}
    resp = client.post("/generate-social-post", json=dict(PAYLOAD, deal=deal))

    assert resp.status_code == 200
    prompt = messages.calls[0]["messages"][0]["content"]
    assert "Discount:" not in prompt
    assert "Current Price: N/A" in prompt


def test_unexpected_error_is_json_500(monkeypatch):
    def explode(*args, **kwargs):
        raise ValueError("boom")

    monkeypatch.setattr(social_post_service, "build_prompt", explode)
    with TestClient(app, raise_server_exceptions=False) as c:
        resp = c.post("/generate-social-post", json=PAYLOAD)

    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal server error"}
    assert resp.headers["access-control-allow-origin"] == "*"
