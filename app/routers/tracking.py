"""
Tracking Router - Redirection affiliée et analytics de partage.
Endpoints: /track-click, /track-share
"""
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.core.rate_limiter import get_client_ip, rate_limit_track_click
from app.db.deps import get_db
from app.services.click_tracking_service import ClickContext, track_click, track_share

router = APIRouter(tags=["tracking"])


class TrackClickIn(BaseModel):
    dealId: Optional[str] = None
    projectId: Optional[str] = None
    targetUrl: Optional[str] = None


class TrackShareIn(BaseModel):
    projectId: Optional[str] = None
    platform: Optional[str] = None


@router.post("/track-click")
def track_click_redirect(payload: TrackClickIn, request: Request, db: Session = Depends(get_db)):
    """
    Enregistre le clic puis redirige (302) vers l'URL marchande,
    tracking code appliqué côté serveur.
    """
    rate_limit_track_click(request)

    context = ClickContext(
        user_agent=request.headers.get("user-agent"),
        referer=request.headers.get("referer"),
        ip_address=get_client_ip(request),
    )
    result = track_click(db, payload.dealId, payload.projectId, payload.targetUrl, context)
    return RedirectResponse(url=result.redirect_url, status_code=302)


@router.post("/track-share")
def track_share_event(payload: TrackShareIn, db: Session = Depends(get_db)):
    return {"tracked": track_share(db, payload.projectId, payload.platform)}
