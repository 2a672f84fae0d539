"""
Deals Router - Consultation publique des deals.
Endpoints: /deals, /deals/{deal_id}, /deals/{deal_id}/price-history, /og-image
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session

from app.core.exceptions import ValidationError
from app.db.deps import get_db
from app.models.deal import Deal
from app.repositories.deal_repository import DealRepository
from app.services.deal_service import get_deal_or_404
from app.services.image_resolver import resolve_for_deal
from app.services.og_card import render_og_card

router = APIRouter(tags=["deals"])


def deal_to_public_dict(deal: Deal) -> dict:
    data = deal.to_api_dict()
    data["display_image_url"] = resolve_for_deal(deal)
    return data


@router.get("/deals")
def list_deals(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    category: Optional[str] = None,
    search: Optional[str] = None,
    in_stock: bool = False,
    db: Session = Depends(get_db),
):
    """Deals visibles (catégories publiées), les plus récents d'abord."""
    deals, total = DealRepository(db).list_visible(
        page=page,
        per_page=per_page,
        category=category,
        search=search,
        in_stock_only=in_stock,
    )
    return {
        "items": [deal_to_public_dict(d) for d in deals],
        "total": total,
        "page": page,
        "per_page": per_page,
    }


@router.get("/deals/{deal_id}")
def get_deal(deal_id: str, db: Session = Depends(get_db)):
    return deal_to_public_dict(get_deal_or_404(db, deal_id))


@router.get("/deals/{deal_id}/price-history")
def get_price_history(deal_id: str, db: Session = Depends(get_db)):
    get_deal_or_404(db, deal_id)
    history = DealRepository(db).price_history(deal_id)
    return {"deal_id": deal_id, "history": [h.to_api_dict() for h in history]}


@router.get("/og-image", response_class=HTMLResponse)
def og_image(dealId: Optional[str] = None, db: Session = Depends(get_db)):
    """Carte de prévisualisation HTML (Open Graph) d'un deal."""
    if not dealId:
        raise ValidationError("dealId is required", field="dealId")
    deal = get_deal_or_404(db, dealId)
    return HTMLResponse(
        content=render_og_card(deal),
        headers={"Cache-Control": "public, max-age=3600"},
    )
