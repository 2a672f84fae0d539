"""
Jobs de vérification d'images.

Pour chaque deal sans image vérifiée, teste les candidats dans l'ordre:
1. image_url stockée (si ce n'est pas un placeholder)
2. URLs CDN Amazon dérivées de l'ASIN, par lots de 4
3. image scrapée sur la page produit

Le premier candidat qui se précharge devient verified_image_url.
Sinon le compteur de retry augmente; au-delà de max_retries le deal n'est
plus repris.
"""
import asyncio
from datetime import datetime
from typing import Dict, List, Optional

import httpx
from sqlalchemy.exc import SQLAlchemyError

from app.core.logging import get_logger, set_trace_id, timed
from app.db import session as db_session
from app.models.deal import Deal
from app.repositories.deal_repository import DealRepository
from app.services import image_proxy_service
from app.services.image_resolver import is_placeholder_image_url, prefetch_image

logger = get_logger(__name__)

DEFAULT_BATCH_SIZE = 10
DEFAULT_MAX_RETRIES = 5
CDN_BATCH_SIZE = 4


async def find_working_image(client: httpx.AsyncClient, deal: Deal) -> Optional[str]:
    """Premier candidat dont le préchargement réussit, ou None."""

    async def check(url: str) -> bool:
        return await prefetch_image(url, client=client)

    if deal.image_url and not is_placeholder_image_url(deal.image_url):
        if await check(deal.image_url):
            return deal.image_url

    asin = image_proxy_service.extract_asin(deal.product_url or "")
    if asin:
        found = await image_proxy_service.first_reachable(
            image_proxy_service.amazon_cdn_urls(asin), check, batch_size=CDN_BATCH_SIZE
        )
        if found:
            return found

    if deal.product_url and image_proxy_service.is_amazon_store_url(deal.product_url):
        scraped = await image_proxy_service.scrape_image_url(client, deal.product_url)
        if scraped and await check(scraped):
            return scraped

    return None


async def _verify_batch(deals: List[Deal]) -> List[Dict]:
    results = []
    async with image_proxy_service._make_client() as client:
        for deal in deals:
            now = datetime.utcnow()
            found = await find_working_image(client, deal)
            deal.image_last_checked = now
            if found:
                deal.verified_image_url = found
                deal.image_url = found
                deal.image_ready = True
                results.append({"id": deal.id, "status": "verified", "image_url": found})
                logger.info("Image verified", deal_id=deal.id)
            else:
                deal.image_retry_count = (deal.image_retry_count or 0) + 1
                results.append({"id": deal.id, "status": "retry", "retry_count": deal.image_retry_count})
                logger.info(
                    "Image verification failed, will retry",
                    deal_id=deal.id,
                    retry_count=deal.image_retry_count,
                )
    return results


@timed(logger)
def verify_deal_images(
    batch_size: int = DEFAULT_BATCH_SIZE,
    max_retries: int = DEFAULT_MAX_RETRIES,
    deal_id: Optional[str] = None,
) -> Dict:
    """
    Job RQ: vérifie les images d'un lot de deals (ou d'un seul deal).

    Returns:
        {"processed", "verified", "retry", "results"}
    """
    set_trace_id()
    session = db_session.SessionLocal()
    try:
        repo = DealRepository(session)
        if deal_id:
            deal = repo.get(deal_id)
            deals = [deal] if deal else []
        else:
            deals = repo.needing_image_check(batch_size, max_retries)

        if not deals:
            logger.info("No deals need image verification")
            return {"processed": 0, "verified": 0, "retry": 0, "results": []}

        results = asyncio.run(_verify_batch(deals))
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Image verification batch failed: {e}", error_type=type(e).__name__)
        raise
    finally:
        session.close()

    verified = sum(1 for r in results if r["status"] == "verified")
    logger.info(
        f"Verification complete. Verified: {verified}, Need retry: {len(results) - verified}",
    )
    return {
        "processed": len(results),
        "verified": verified,
        "retry": len(results) - verified,
        "results": results,
    }
