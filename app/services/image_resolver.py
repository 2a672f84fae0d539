"""
Image Resolver - Choix de l'image affichée pour un deal.

Priorité stricte:
1. URL vérifiée (job verify_deal_images) si bien formée
2. image_url stockée si bien formée et pas un placeholder
3. URL image-proxy, seulement pour un produit sur un domaine Amazon reconnu
4. Placeholder statique
"""
import asyncio
import time
from io import BytesIO
from typing import Optional
from urllib.parse import urlencode, urlsplit

import httpx
from loguru import logger
from PIL import Image

from app.core import config
from app.services.image_proxy_service import is_amazon_store_url

PLACEHOLDER_IMAGE = "/placeholder.svg"
DEFAULT_IMAGE_URL = "https://via.placeholder.com/300x300?text=No+Image"

PLACEHOLDER_PATTERNS = [
    "placeholder.svg",
    "via.placeholder.com",
    "No+Image",
    "No%20Image",
]

PREFETCH_TIMEOUT = 8.0


def is_placeholder_image_url(url: Optional[str]) -> bool:
    if not url:
        return True
    u = url.lower()
    return any(p.lower() in u for p in PLACEHOLDER_PATTERNS)


def is_well_formed_url(url: Optional[str]) -> bool:
    """URL absolue http(s) avec un host."""
    if not url or not isinstance(url, str):
        return False
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and bool(parts.netloc)


def build_image_proxy_url(product_url: str, title: str, cache_bust: bool = False) -> str:
    params = {"url": product_url, "title": title or ""}
    if cache_bust:
        params["cb"] = str(int(time.time() * 1000))
    return f"{config.PUBLIC_API_URL}/image-proxy?{urlencode(params)}"


def resolve_deal_image(
    image_url: Optional[str],
    product_url: Optional[str],
    title: Optional[str],
    verified_image_url: Optional[str] = None,
    cache_bust: bool = False,
) -> str:
    if is_well_formed_url(verified_image_url):
        return verified_image_url

    if is_well_formed_url(image_url) and not is_placeholder_image_url(image_url):
        return image_url

    if is_well_formed_url(product_url) and is_amazon_store_url(product_url):
        return build_image_proxy_url(product_url, title or "", cache_bust)

    return PLACEHOLDER_IMAGE


def resolve_for_deal(deal, cache_bust: bool = False) -> str:
    return resolve_deal_image(
        deal.image_url,
        deal.product_url,
        deal.title,
        verified_image_url=deal.verified_image_url,
        cache_bust=cache_bust,
    )


def _has_real_dimensions(content: bytes) -> bool:
    with Image.open(BytesIO(content)) as img:
        width, height = img.size
    return width > 1 and height > 1


async def prefetch_image(
    src: str,
    timeout: float = PREFETCH_TIMEOUT,
    client: Optional[httpx.AsyncClient] = None,
) -> bool:
    """
    Précharge une image avec un timeout borné.

    True seulement si la ressource se décode en une image de plus d'un pixel
    de large et de haut. Ne lève jamais.
    """
    if not is_well_formed_url(src):
        return False

    async def _load(c: httpx.AsyncClient) -> bool:
        resp = await c.get(src)
        if resp.status_code != 200:
            return False
        return _has_real_dimensions(resp.content)

    try:
        if client is not None:
            return await asyncio.wait_for(_load(client), timeout)
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as c:
            return await asyncio.wait_for(_load(c), timeout)
    except Exception as e:
        logger.debug(f"Prefetch failed: {src} -> {type(e).__name__}: {e}")
        return False
