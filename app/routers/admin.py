"""
Admin Router - Endpoints réservés aux admins.

Endpoints:
- /admin-add-deal, /admin-edit-deal, /admin-create-user
- /admin/verify-deal-images, /admin/check-stale-deals
- /admin/categories/*

Tous passent par require_admin (rôle admin lu en base).
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.core.authz import require_admin
from app.core.logging import get_logger
from app.db.deps import get_db
from app.jobs_images import DEFAULT_BATCH_SIZE, DEFAULT_MAX_RETRIES, verify_deal_images
from app.jobs_stale import check_stale_deals
from app.models.user import User
from app.services import category_service
from app.services.deal_service import add_deal, edit_deal
from app.services.user_service import create_user

logger = get_logger(__name__)

router = APIRouter(tags=["admin"])


class DealIn(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = None
    original_price: Optional[float] = None
    discount: Optional[float] = None
    image_url: Optional[str] = None
    product_url: Optional[str] = None
    category: Optional[str] = None
    brand: Optional[str] = None
    coupon_code: Optional[str] = None
    in_stock: Optional[bool] = None
    fetched_at: Optional[datetime] = None
    posted_at: Optional[datetime] = None


class DealEditIn(DealIn):
    id: Optional[str] = None


class CreateUserIn(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    makeAdmin: bool = False


class VerifyImagesIn(BaseModel):
    batchSize: int = DEFAULT_BATCH_SIZE
    maxRetries: int = DEFAULT_MAX_RETRIES
    dealId: Optional[str] = None


class CategoryRuleUpdate(BaseModel):
    is_published: Optional[bool] = None


# =============================================================================
# DEALS
# =============================================================================

@router.post("/admin-add-deal")
def admin_add_deal(
    payload: DealIn,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    deal = add_deal(db, payload.model_dump())
    logger.info("Admin added deal", deal_id=deal.id, user_id=admin.id)
    return {"success": True, "deal": deal.to_api_dict()}


@router.post("/admin-edit-deal")
def admin_edit_deal(
    payload: DealEditIn,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    deal = edit_deal(db, payload.model_dump(exclude_unset=True))
    logger.info("Admin edited deal", deal_id=deal.id, user_id=admin.id)
    return {"success": True, "deal": deal.to_api_dict()}


# =============================================================================
# USERS
# =============================================================================

@router.post("/admin-create-user")
def admin_create_user(
    payload: CreateUserIn,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user, is_admin = create_user(db, payload.email, payload.password, payload.makeAdmin)
    logger.info("Admin created user", user_id=admin.id, created_user_id=user.id, is_admin=is_admin)
    return {
        "success": True,
        "user": {"id": user.id, "email": user.email},
        "isAdmin": is_admin,
    }


# =============================================================================
# JOBS (exécution immédiate)
# =============================================================================

@router.post("/admin/verify-deal-images")
def admin_verify_deal_images(
    payload: Optional[VerifyImagesIn] = None,
    admin: User = Depends(require_admin),
):
    payload = payload or VerifyImagesIn()
    return verify_deal_images(
        batch_size=payload.batchSize,
        max_retries=payload.maxRetries,
        deal_id=payload.dealId,
    )


@router.post("/admin/check-stale-deals")
def admin_check_stale_deals(admin: User = Depends(require_admin)):
    return check_stale_deals()


# =============================================================================
# CATEGORIES
# =============================================================================

@router.get("/admin/categories")
def admin_list_categories(
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Synchronise puis liste les règles."""
    category_service.sync_categories(db)
    return {"rules": [r.to_dict() for r in category_service.list_rules(db)]}


@router.post("/admin/categories/sync")
def admin_sync_categories(
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return {"added": category_service.sync_categories(db)}


@router.patch("/admin/categories/{rule_id}")
def admin_update_category(
    rule_id: str,
    payload: CategoryRuleUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    rule = category_service.set_published(db, rule_id, payload.is_published)
    return {"success": True, "rule": rule.to_dict()}
