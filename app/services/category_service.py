"""
Category Service - Règles de publication des catégories.

La synchro ajoute les catégories présentes dans les deals qui n'ont pas
encore de règle (publiées par défaut). Elle ne supprime ni ne modifie rien.
"""
from typing import List

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError, UpstreamError, ValidationError
from app.models.category_rule import CategoryRule
from app.repositories.deal_repository import DealRepository


def sync_categories(db: Session) -> int:
    """Crée les règles manquantes. Retourne le nombre de règles ajoutées."""
    try:
        existing = {c for (c,) in db.query(CategoryRule.category).all()}
        missing = [c for c in DealRepository(db).distinct_categories() if c not in existing]
        for category in missing:
            db.add(CategoryRule(category=category, is_published=True))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Category sync failed: {e}")
        raise UpstreamError("Failed to sync categories")

    if missing:
        logger.info(f"Category sync: {len(missing)} new rules ({', '.join(missing)})")
    return len(missing)


def list_rules(db: Session) -> List[CategoryRule]:
    return db.query(CategoryRule).order_by(CategoryRule.category.asc()).all()


def published_categories(db: Session) -> List[str]:
    """Catégories visibles publiquement (deals présents et règle non masquée)."""
    hidden = {
        c for (c,) in db.query(CategoryRule.category).filter(CategoryRule.is_published.is_(False)).all()
    }
    return [c for c in DealRepository(db).distinct_categories() if c not in hidden]


def set_published(db: Session, rule_id: str, is_published) -> CategoryRule:
    if not isinstance(is_published, bool):
        raise ValidationError("is_published must be a boolean", field="is_published")

    rule = db.query(CategoryRule).filter(CategoryRule.id == rule_id).first()
    if rule is None:
        raise NotFoundError("Category rule not found")

    rule.is_published = is_published
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Category rule update failed for {rule_id}: {e}")
        raise UpstreamError("Failed to update category rule")

    logger.info(f"Category '{rule.category}' published={is_published}")
    return rule
