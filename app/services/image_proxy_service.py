"""
Image Proxy Service - Récupère l'image d'un produit Amazon.

Stratégies, dans l'ordre:
1. ASIN extrait de l'URL produit -> URLs CDN Amazon directes
2. Scraping de la page produit (og:image, landingImage, hiRes...)
3. Placeholder SVG

Aucun cache en mémoire: chaque requête est indépendante.
"""
import asyncio
import ipaddress
import re
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import urlsplit

import httpx
from loguru import logger

from app.core.exceptions import RelayError, ValidationError

MAX_URL_LENGTH = 2048

# Domaines e-commerce reconnus pour le proxy d'images (host exact ou sous-domaine).
# Liste distincte du marqueur d'affiliation de tracking_code.py, voir DESIGN.md.
AMAZON_STORE_DOMAINS = [
    "amazon.com",
    "amazon.co.uk",
    "amazon.ca",
    "amazon.de",
    "amazon.fr",
    "amazon.co.jp",
    "amazon.in",
    "amazon.com.br",
    "amazon.es",
    "amazon.it",
    "amazon.com.mx",
    "amazon.com.au",
]

# Hôtes autorisés pour une image trouvée dans la page produit
AMAZON_IMAGE_DOMAINS = [
    "media-amazon.com",
    "ssl-images-amazon.com",
    "images-amazon.com",
]

USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 Chrome/120.0.0.0 Safari/537.36",
]

ASIN_PATTERNS = [
    re.compile(r"/dp/([A-Z0-9]{10})", re.IGNORECASE),
    re.compile(r"/gp/product/([A-Z0-9]{10})", re.IGNORECASE),
    re.compile(r"/product-reviews/([A-Z0-9]{10})", re.IGNORECASE),
    re.compile(r"/d/([A-Z0-9]{10})", re.IGNORECASE),
    re.compile(r"/product/([A-Z0-9]{10})", re.IGNORECASE),
    re.compile(r"/ASIN/([A-Z0-9]{10})", re.IGNORECASE),
    re.compile(r"[?&]asin=([A-Z0-9]{10})", re.IGNORECASE),
]

CDN_PREFIXES = [
    "https://m.media-amazon.com/images/I/",
    "https://images-na.ssl-images-amazon.com/images/I/",
]
CDN_SUFFIXES = [
    "._AC_SL1500_.jpg",
    "._AC_SL1200_.jpg",
    "._AC_SL1000_.jpg",
    "._AC_SL800_.jpg",
    "._AC_SL500_.jpg",
    "._AC_SX679_.jpg",
    "._AC_SX522_.jpg",
    ".jpg",
]

SCRAPE_PATTERNS = [
    re.compile(r'<meta[^>]*property="og:image"[^>]*content="([^"]+)"', re.IGNORECASE),
    re.compile(r'<img[^>]*id="landingImage"[^>]*src="([^"]+)"', re.IGNORECASE),
    re.compile(r'"largeImage":"(https://[^"]+)"'),
    re.compile(r'"hiRes":"(https://[^"]+)"'),
    re.compile(r'data-old-hires="(https://[^"]+)"', re.IGNORECASE),
    re.compile(r'"large":"(https://[^"]+)"'),
]

PLACEHOLDER_SVG = """<svg width="400" height="400" xmlns="http://www.w3.org/2000/svg">
  <rect width="400" height="400" fill="#f0f0f0"/>
  <text x="200" y="200" text-anchor="middle" font-family="Arial" font-size="18" fill="#666">Image unavailable</text>
</svg>"""

FETCH_TIMEOUT = 8.0


@dataclass
class ProxiedImage:
    content: bytes
    content_type: str
    source: str  # amazon-cdn, scraped, placeholder


def _make_client(timeout: float = FETCH_TIMEOUT) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=timeout, follow_redirects=True)


def is_amazon_store_host(hostname: Optional[str]) -> bool:
    if not hostname:
        return False
    hostname = hostname.lower()
    return any(hostname == d or hostname.endswith("." + d) for d in AMAZON_STORE_DOMAINS)


def is_amazon_store_url(url: Optional[str]) -> bool:
    if not url:
        return False
    try:
        return is_amazon_store_host(urlsplit(url).hostname)
    except ValueError:
        return False


def is_amazon_image_url(url: str) -> bool:
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    hostname = (parts.hostname or "").lower()
    return parts.scheme in ("http", "https") and any(
        hostname == d or hostname.endswith("." + d) for d in AMAZON_IMAGE_DOMAINS
    )


def validate_product_url(url: Optional[str]) -> str:
    """
    Valide l'URL produit soumise au proxy (anti-SSRF).

    Raises:
        ValidationError: URL absente, trop longue ou malformée (400)
        RelayError: domaine non autorisé ou IP directe (403)
    """
    if not url:
        raise ValidationError("Missing url parameter", field="url")
    if len(url) > MAX_URL_LENGTH:
        raise ValidationError("URL too long", field="url")

    try:
        parts = urlsplit(url)
        hostname = parts.hostname
    except ValueError:
        raise ValidationError("Invalid URL format", field="url")
    if parts.scheme not in ("http", "https") or not hostname:
        raise ValidationError("Invalid URL format", field="url")

    try:
        ipaddress.ip_address(hostname)
        raise RelayError("Direct IP addresses are not allowed", status_code=403)
    except ValueError:
        pass

    if not is_amazon_store_host(hostname):
        logger.warning(f"Image proxy: domain not allowed: {hostname}")
        raise RelayError("Only Amazon domains are allowed", status_code=403)

    return url


def extract_asin(url: str) -> Optional[str]:
    for pattern in ASIN_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1).upper()
    return None


def amazon_cdn_urls(asin: str) -> List[str]:
    return [f"{prefix}{asin}{suffix}" for prefix in CDN_PREFIXES for suffix in CDN_SUFFIXES]


def _browser_headers(accept: str, referer: Optional[str] = None) -> dict:
    headers = {
        "User-Agent": USER_AGENTS[0],
        "Accept": accept,
        "Accept-Language": "en-US,en;q=0.9",
    }
    if referer:
        headers["Referer"] = referer
    return headers


async def scrape_image_url(client: httpx.AsyncClient, product_url: str) -> Optional[str]:
    """Extrait une URL d'image depuis le HTML de la page produit."""
    from app.services.image_resolver import is_placeholder_image_url

    try:
        resp = await client.get(product_url, headers=_browser_headers("text/html,application/xhtml+xml"))
    except httpx.HTTPError as e:
        logger.warning(f"Image scrape failed: {product_url} -> {e}")
        return None
    if resp.status_code != 200:
        logger.warning(f"Image scrape failed: {product_url} -> {resp.status_code}")
        return None

    html = resp.text
    for pattern in SCRAPE_PATTERNS:
        match = pattern.search(html)
        if match:
            image_url = match.group(1).replace("\\u002F", "/").replace("\\", "").replace("&amp;", "&")
            if not is_amazon_image_url(image_url):
                logger.warning(f"Image scrape: ignoring off-CDN image {image_url}")
                continue
            if not is_placeholder_image_url(image_url):
                return image_url
    return None


async def _fetch_image(client: httpx.AsyncClient, url: str) -> Optional[httpx.Response]:
    try:
        resp = await client.get(
            url,
            headers=_browser_headers("image/webp,image/apng,image/*,*/*;q=0.8", "https://www.amazon.com/"),
        )
    except httpx.HTTPError as e:
        logger.debug(f"Image fetch error: {url} -> {e}")
        return None
    content_type = resp.headers.get("content-type", "")
    if resp.status_code == 200 and content_type.startswith("image/"):
        return resp
    return None


async def fetch_product_image(product_url: str) -> ProxiedImage:
    """
    Récupère l'image d'un produit Amazon (URL déjà validée).

    Ne lève pas pour les échecs réseau: retombe sur le placeholder.
    """
    async with _make_client() as client:
        asin = extract_asin(product_url)
        if asin:
            for cdn_url in amazon_cdn_urls(asin):
                resp = await _fetch_image(client, cdn_url)
                if resp is not None:
                    logger.info(f"Image proxy: CDN hit for ASIN {asin}")
                    return ProxiedImage(resp.content, resp.headers["content-type"], "amazon-cdn")

        scraped_url = await scrape_image_url(client, product_url)
        if scraped_url:
            resp = await _fetch_image(client, scraped_url)
            if resp is not None:
                return ProxiedImage(resp.content, resp.headers["content-type"], "scraped")

    logger.warning(f"Image proxy: all strategies failed for {product_url}")
    return ProxiedImage(PLACEHOLDER_SVG.encode(), "image/svg+xml", "placeholder")


async def first_reachable(urls: List[str], check, batch_size: int = 4) -> Optional[str]:
    """
    Teste les URLs par lots concurrents; renvoie la première qui passe `check`
    (ordre de la liste respecté à l'intérieur d'un lot).
    """
    for i in range(0, len(urls), batch_size):
        batch = urls[i:i + batch_size]
        results = await asyncio.gather(*(check(url) for url in batch))
        for url, ok in zip(batch, results):
            if ok:
                return url
    return None
