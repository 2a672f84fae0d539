import asyncio
from io import BytesIO

import httpx
from PIL import Image

from app.services.image_resolver import (
    PLACEHOLDER_IMAGE,
    build_image_proxy_url,
    is_placeholder_image_url,
    prefetch_image,
    resolve_deal_image,
)

AMAZON_PRODUCT = "https://www.amazon.com/dp/B0ABCDEF12"


def _png(width, height) -> bytes:
    buf = BytesIO()
    Image.new("RGB", (width, height), color=(200, 30, 30)).save(buf, format="PNG")
    return buf.getvalue()


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_placeholder_detection():
    assert is_placeholder_image_url(None)
    assert is_placeholder_image_url("")
    assert is_placeholder_image_url("https://via.placeholder.com/300x300?text=No+Image")
    assert is_placeholder_image_url("https://cdn.example.com/PLACEHOLDER.SVG")
    assert is_placeholder_image_url("https://cdn.example.com/x.png?label=No%20Image")
    assert not is_placeholder_image_url("https://m.media-amazon.com/images/I/abc.jpg")


def test_verified_url_has_priority():
    url = resolve_deal_image(
        "https://cdn.example.com/stored.jpg",
        AMAZON_PRODUCT,
        "Title",
        verified_image_url="https://m.media-amazon.com/images/I/verified.jpg",
    )
    assert url == "https://m.media-amazon.com/images/I/verified.jpg"


def test_malformed_verified_url_is_skipped():
    url = resolve_deal_image(
        "https://cdn.example.com/stored.jpg", AMAZON_PRODUCT, "Title", verified_image_url="not a url"
    )
    assert url == "https://cdn.example.com/stored.jpg"


def test_placeholder_image_falls_back_to_proxy_for_amazon_products():
    url = resolve_deal_image(
        "https://via.placeholder.com/300x300?text=No+Image", AMAZON_PRODUCT, "Wireless Earbuds"
    )
    assert url.startswith("https://api.relay.test/image-proxy?")
    assert "url=https%3A%2F%2Fwww.amazon.com%2Fdp%2FB0ABCDEF12" in url
    assert "title=Wireless+Earbuds" in url


def test_non_amazon_product_gets_static_placeholder():
    assert resolve_deal_image(None, "https://shop.example.com/item/1", "T") == PLACEHOLDER_IMAGE
    assert resolve_deal_image(None, "https://amazon.evil.com/dp/B0ABCDEF12", "T") == PLACEHOLDER_IMAGE
    assert resolve_deal_image(None, None, None) == PLACEHOLDER_IMAGE


def test_cache_bust_parameter():
    assert "&cb=" in build_image_proxy_url(AMAZON_PRODUCT, "T", cache_bust=True)
    assert "cb=" not in build_image_proxy_url(AMAZON_PRODUCT, "T")


def test_prefetch_accepts_real_image():
    body = _png(40, 30)

    async def run():
        async with _client(lambda request: httpx.Response(200, content=body)) as client:
            return await prefetch_image("https://img.example.com/a.png", client=client)

    assert asyncio.run(run()) is True


def test_prefetch_rejects_tracking_pixel():
    body = _png(1, 1)

    async def run():
        async with _client(lambda request: httpx.Response(200, content=body)) as client:
            return await prefetch_image("https://img.example.com/pixel.png", client=client)

    assert asyncio.run(run()) is False


def test_prefetch_failures_return_false():
    def not_found(request):
        return httpx.Response(404)

    def garbage(request):
        return httpx.Response(200, content=b"<html>not an image</html>")

    def network_error(request):
        raise httpx.ConnectError("boom", request=request)

    async def run(handler):
        async with _client(handler) as client:
            return await prefetch_image("https://img.example.com/a.png", client=client)

    assert asyncio.run(run(not_found)) is False
    assert asyncio.run(run(garbage)) is False
    assert asyncio.run(run(network_error)) is False
    assert asyncio.run(prefetch_image("not-a-url")) is False


def test_prefetch_times_out():
    async def slow(request):
        await asyncio.sleep(1)
        return httpx.Response(200, content=_png(10, 10))

    async def run():
        async with _client(slow) as client:
            return await prefetch_image("https://img.example.com/slow.png", timeout=0.05, client=client)

    assert asyncio.run(run()) is False
