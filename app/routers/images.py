"""
Image Proxy - Sert l'image d'un produit Amazon (CDN, scraping, ou placeholder).
Endpoint: /image-proxy
"""
from typing import Optional

from fastapi import APIRouter, Response

from app.services.image_proxy_service import fetch_product_image, validate_product_url

router = APIRouter(tags=["images"])

CACHE_IMAGE = "public, max-age=2592000"  # 30 jours
CACHE_PLACEHOLDER = "public, max-age=3600"


@router.get("/image-proxy")
async def image_proxy(url: Optional[str] = None, title: Optional[str] = None):
    """
    Usage: /image-proxy?url=https://www.amazon.com/dp/B0XXXXXXXX&title=...

    `title` n'est utilisé que pour le logging côté client.
    """
    product_url = validate_product_url(url)
    image = await fetch_product_image(product_url)

    cache = CACHE_PLACEHOLDER if image.source == "placeholder" else CACHE_IMAGE
    return Response(
        content=image.content,
        media_type=image.content_type,
        headers={
            "Cache-Control": cache,
            "X-Image-Source": image.source,
        },
    )
