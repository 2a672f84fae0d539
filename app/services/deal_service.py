"""
Service des deals - ajout / édition admin, remise, historique de prix.

Chaque endpoint fait au plus une écriture principale (insert ou update)
plus une écriture secondaire best-effort (ligne d'historique) qui ne
défait jamais l'écriture principale en cas d'échec.
"""
import math
from datetime import datetime
from typing import Optional, Dict, Any
from urllib.parse import urlsplit

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError, UpstreamError, ValidationError
from app.models.deal import Deal
from app.repositories.deal_repository import DealRepository
from app.services.image_resolver import DEFAULT_IMAGE_URL

MAX_TITLE_LENGTH = 500
MAX_DESCRIPTION_LENGTH = 5000
DEFAULT_CATEGORY = "Manual"

# Champs dont la modification invalide l'image vérifiée
_IMAGE_FIELDS = ("image_url", "product_url")
_PRICE_FIELDS = {"price", "original_price", "discount"}
_EDITABLE_FIELDS = (
    "title", "description", "price", "original_price", "discount", "image_url",
    "product_url", "category", "brand", "coupon_code", "in_stock",
)


def _is_http_url(url: str) -> bool:
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and bool(parts.netloc)


def validate_deal_data(data: Dict[str, Any]) -> None:
    """
    Valide les données d'un deal.

    Raises:
        ValidationError: premier champ invalide rencontré
    """
    title = data.get("title")
    if not title or not title.strip():
        raise ValidationError("Title is required", field="title")
    if len(title) > MAX_TITLE_LENGTH:
        raise ValidationError("Title too long (max 500 characters)", field="title")

    price = data.get("price")
    if price is None or math.isnan(price) or price < 0:
        raise ValidationError("Valid price is required (must be >= 0)", field="price")

    product_url = data.get("product_url")
    if not product_url or not _is_http_url(product_url):
        raise ValidationError("Valid product URL is required", field="product_url")

    image_url = data.get("image_url")
    if image_url and image_url != DEFAULT_IMAGE_URL and not _is_http_url(image_url):
        raise ValidationError("Image URL must use HTTP or HTTPS", field="image_url")

    original_price = data.get("original_price")
    if original_price is not None and (math.isnan(original_price) or original_price < 0):
        raise ValidationError("Original price must be a positive number", field="original_price")

    discount = data.get("discount")
    if discount is not None and (math.isnan(discount) or discount < 0 or discount > 100):
        raise ValidationError("Discount must be between 0 and 100", field="discount")

    description = data.get("description")
    if description and len(description) > MAX_DESCRIPTION_LENGTH:
        raise ValidationError("Description too long (max 5000 characters)", field="description")


def compute_discount(
    price: Optional[float],
    original_price: Optional[float],
    fallback: Optional[float] = None,
) -> Optional[int]:
    """
    Pourcentage de remise arrondi (demi vers le haut).
    Sans prix d'origine supérieur au prix, on garde la remise fournie.

    >>> compute_discount(80, 100)
    20
    """
    if price and original_price and original_price > price:
        return int(math.floor((original_price - price) / original_price * 100 + 0.5))
    if fallback is None:
        return None
    return int(round(fallback))


def _record_price_history(db: Session, deal: Deal) -> bool:
    """Écriture secondaire best-effort, dans sa propre transaction."""
    try:
        DealRepository(db).append_price_history(deal)
        db.commit()
        return True
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Price history insert failed for deal {deal.id}: {e}")
        return False


def add_deal(db: Session, data: Dict[str, Any]) -> Deal:
    """
    Crée un deal (id généré côté serveur) puis son premier point d'historique.

    Raises:
        ValidationError, UpstreamError
    """
    validate_deal_data(data)

    now = datetime.utcnow()
    deal = Deal(
        title=data["title"].strip(),
        description=data.get("description"),
        price=data["price"],
        original_price=data.get("original_price"),
        discount=compute_discount(data["price"], data.get("original_price"), data.get("discount")),
        product_url=data["product_url"],
        image_url=data.get("image_url") or DEFAULT_IMAGE_URL,
        category=data.get("category") or DEFAULT_CATEGORY,
        brand=data.get("brand"),
        coupon_code=data.get("coupon_code"),
        in_stock=data["in_stock"] if data.get("in_stock") is not None else True,
        fetched_at=data.get("fetched_at") or now,
        posted_at=data.get("posted_at") or now,
    )

    try:
        DealRepository(db).add(deal)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Deal insert failed: {e}")
        raise UpstreamError("Failed to save deal")

    logger.info(f"Deal added: {deal.id} - {deal.title[:50]}")
    _record_price_history(db, deal)
    return deal


def edit_deal(db: Session, data: Dict[str, Any]) -> Deal:
    """
    Met à jour un deal existant avec les seuls champs envoyés; les champs
    absents gardent leur valeur. Un changement de prix, prix d'origine ou
    remise ajoute un point d'historique.

    Raises:
        ValidationError, NotFoundError, UpstreamError
    """
    deal_id = data.get("id")
    if not deal_id or not isinstance(deal_id, str) or not deal_id.strip():
        raise ValidationError("Valid deal ID is required", field="id")

    repo = DealRepository(db)
    try:
        deal = repo.get(deal_id)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Deal lookup failed for {deal_id}: {e}")
        raise UpstreamError("Failed to load deal")
    if deal is None:
        raise NotFoundError("Deal not found")

    updates = {k: v for k, v in data.items() if k in _EDITABLE_FIELDS}
    if "image_url" in updates:
        updates["image_url"] = updates["image_url"] or DEFAULT_IMAGE_URL
    if updates.get("in_stock", True) is None:
        del updates["in_stock"]

    merged = {f: getattr(deal, f) for f in _EDITABLE_FIELDS}
    merged.update(updates)
    validate_deal_data(merged)

    previous_prices = (deal.price, deal.original_price, deal.discount)
    previous_image = tuple(getattr(deal, f) for f in _IMAGE_FIELDS)

    for field, value in updates.items():
        setattr(deal, field, value)
    deal.title = merged["title"].strip()
    if _PRICE_FIELDS & updates.keys():
        deal.discount = compute_discount(merged["price"], merged["original_price"], merged["discount"])
    deal.updated_at = datetime.utcnow()

    if tuple(getattr(deal, f) for f in _IMAGE_FIELDS) != previous_image:
        deal.image_ready = False
        deal.verified_image_url = None
        deal.image_retry_count = 0

    prices_changed = (deal.price, deal.original_price, deal.discount) != previous_prices

    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Deal update failed for {deal_id}: {e}")
        raise UpstreamError("Failed to update deal")

    logger.info(f"Deal updated: {deal.id} (prices_changed={prices_changed})")
    if prices_changed:
        _record_price_history(db, deal)
    return deal


def get_deal_or_404(db: Session, deal_id: str) -> Deal:
    try:
        deal = DealRepository(db).get(deal_id)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Deal lookup failed for {deal_id}: {e}")
        raise UpstreamError("Failed to load deal")
    if deal is None:
        raise NotFoundError("Deal not found")
    return deal
