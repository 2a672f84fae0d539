"""
Alert Service - Alertes opérationnelles envoyées sur un webhook Discord.

Best-effort: un échec d'envoi est loggé et renvoie False.
"""
from typing import Optional, List, Dict

import httpx
from loguru import logger

from app.core import config

COLOR_WARNING = 0xF59E0B
WEBHOOK_TIMEOUT = 10


def send_webhook_alert(
    title: str,
    description: str,
    fields: Optional[List[Dict]] = None,
    webhook_url: Optional[str] = None,
    client: Optional[httpx.Client] = None,
) -> bool:
    url = webhook_url or config.ALERT_WEBHOOK_URL
    if not url:
        logger.debug("No alert webhook configured, alert skipped")
        return False

    embed = {
        "title": title[:256],
        "description": description,
        "color": COLOR_WARNING,
        "fields": fields or [],
        "footer": {"text": "Relay Station"},
    }

    try:
        if client is not None:
            response = client.post(url, json={"embeds": [embed]})
        else:
            with httpx.Client(timeout=WEBHOOK_TIMEOUT) as c:
                response = c.post(url, json={"embeds": [embed]})
    except httpx.HTTPError as e:
        logger.error(f"Alert webhook error: {e}")
        return False

    if response.status_code not in (200, 204):
        logger.error(f"Alert webhook rejected: {response.status_code} {response.text[:200]}")
        return False

    logger.info(f"Alert sent: {title}")
    return True
