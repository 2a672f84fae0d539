"""
Job de surveillance de la fraîcheur des deals.

Si le deal le plus récent a été récupéré il y a plus de STALE_AFTER_HOURS,
une alerte part sur le webhook configuré.
"""
from datetime import datetime
from typing import Dict

from app.core import config
from app.core.logging import get_logger, set_trace_id, timed
from app.db import session as db_session
from app.repositories.deal_repository import DealRepository
from app.services.alert_service import send_webhook_alert

logger = get_logger(__name__)


@timed(logger)
def check_stale_deals() -> Dict:
    set_trace_id()
    session = db_session.SessionLocal()
    try:
        latest = DealRepository(session).latest_fetched()
    finally:
        session.close()

    if latest is None:
        logger.info("No deals found in database")
        return {"message": "No deals in database", "hours_since_update": None, "alert_sent": False}

    hours = (datetime.utcnow() - latest.fetched_at).total_seconds() / 3600
    hours_str = f"{hours:.2f}"

    if hours < config.STALE_AFTER_HOURS:
        logger.info(f"Deals are fresh ({hours_str}h since last fetch)")
        return {"message": "Deals are fresh", "hours_since_update": hours_str, "alert_sent": False}

    logger.warning(f"Stale deals: {hours_str}h since last fetch", deal_id=latest.id)
    sent = send_webhook_alert(
        title=f"No new deals for over {config.STALE_AFTER_HOURS:g} hours",
        description=(
            f"No new deals have been synced in the last **{hours:.1f} hours**. "
            "Check the deal sync job."
        ),
        fields=[
            {"name": "Last deal", "value": latest.title[:100], "inline": False},
            {"name": "Fetched at", "value": latest.fetched_at.isoformat(), "inline": True},
        ],
    )
    return {
        "message": "Alert sent" if sent else "Deals are stale, alert not sent",
        "hours_since_update": hours_str,
        "alert_sent": sent,
    }
