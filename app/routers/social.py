"""
Social Router - Génération de posts sociaux par IA.
Endpoint: /generate-social-post
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter
from pydantic import BaseModel

from app.services.social_post_service import generate_social_post

router = APIRouter(tags=["social"])


class SocialPostIn(BaseModel):
    deal: Optional[Dict[str, Any]] = None
    trackedUrl: Optional[str] = None
    pageUrl: Optional[str] = None
    platform: Optional[str] = None


@router.post("/generate-social-post")
def generate_post(payload: SocialPostIn):
    return generate_social_post(
        payload.deal,
        payload.trackedUrl,
        payload.pageUrl,
        payload.platform,
    )
