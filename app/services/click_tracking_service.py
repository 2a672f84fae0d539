"""
Click Tracking Service - Résolution de la cible et enregistrement des clics.

Le tracking est best-effort: une panne du store ne bloque jamais la
redirection. Seul un deal absent (réponse explicite du store) est une erreur.
"""
import uuid
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import DEFAULT_TRACKING_CODE
from app.core.exceptions import NotFoundError, ValidationError
from app.core.logging import get_logger
from app.models.deal import Deal
from app.models.project import Project
from app.models.tracking import ClickTracking, ShareTracking
from app.services.tracking_code import replace_tracking_code

logger = get_logger(__name__)

MAX_DEAL_ID_LENGTH = 100
MAX_TARGET_URL_LENGTH = 2048
MAX_HEADER_LENGTH = 500

SHARE_PLATFORMS = ("copy_link", "twitter", "facebook", "whatsapp", "email", "native_share")


@dataclass
class ClickContext:
    """Métadonnées de la requête, lues dans les headers."""
    user_agent: Optional[str]
    referer: Optional[str]
    ip_address: str


@dataclass
class ClickResult:
    redirect_url: str
    tracked: bool
    project_id: Optional[str] = None


def _is_uuid(value: str) -> bool:
    try:
        uuid.UUID(value)
    except (ValueError, AttributeError, TypeError):
        return False
    return True


def validate_click_input(deal_id, project_id, target_url) -> None:
    if not deal_id or not isinstance(deal_id, str):
        raise ValidationError("Invalid dealId format", field="dealId")
    if len(deal_id) > MAX_DEAL_ID_LENGTH:
        raise ValidationError("dealId too long", field="dealId")

    if project_id is not None:
        if not isinstance(project_id, str):
            raise ValidationError("Invalid projectId format", field="projectId")
        if not _is_uuid(project_id):
            raise ValidationError("projectId must be a valid UUID", field="projectId")

    if not target_url or not isinstance(target_url, str):
        raise ValidationError("Invalid targetUrl format", field="targetUrl")
    if len(target_url) > MAX_TARGET_URL_LENGTH:
        raise ValidationError("targetUrl too long", field="targetUrl")
    try:
        parts = urlsplit(target_url)
    except ValueError:
        raise ValidationError("Invalid URL format", field="targetUrl")
    if parts.scheme not in ("http", "https"):
        raise ValidationError("Invalid URL protocol", field="targetUrl")
    if not parts.netloc:
        raise ValidationError("Invalid URL format", field="targetUrl")


def _truncate(value: Optional[str]) -> Optional[str]:
    return value[:MAX_HEADER_LENGTH] if value else value


def _deal_exists(db: Session, deal_id: str) -> Optional[bool]:
    """True/False selon le store, None si le store ne répond pas."""
    try:
        return db.query(Deal.id).filter(Deal.id == deal_id).first() is not None
    except SQLAlchemyError as e:
        db.rollback()
        logger.best_effort_failed("Deal lookup", e, deal_id=deal_id)
        return None


def _active_project(db: Session, project_id: Optional[str]) -> Optional[Project]:
    if not project_id:
        return None
    try:
        project = db.query(Project).filter(
            Project.id == project_id,
            Project.is_active.is_(True),
        ).first()
    except SQLAlchemyError as e:
        db.rollback()
        logger.best_effort_failed("Project lookup", e, project_id=project_id)
        return None
    if project is None:
        logger.warning(
            "Project not found or inactive, using default tracking code",
            project_id=project_id,
        )
    return project


def track_click(
    db: Session,
    deal_id: str,
    project_id: Optional[str],
    target_url: str,
    context: ClickContext,
) -> ClickResult:
    """
    Résout l'URL de redirection côté serveur et enregistre le clic.

    Raises:
        ValidationError: entrée invalide
        NotFoundError: le store confirme que le deal n'existe pas
    """
    validate_click_input(deal_id, project_id, target_url)

    exists = _deal_exists(db, deal_id)
    if exists is False:
        logger.warning("Deal not found", deal_id=deal_id)
        raise NotFoundError("Deal not found")

    tracking_code = DEFAULT_TRACKING_CODE
    verified_project_id = None
    project = _active_project(db, project_id)
    if project is not None:
        tracking_code = project.tracking_code
        verified_project_id = project.id

    redirect_url = replace_tracking_code(target_url, tracking_code)

    tracked = False
    try:
        db.add(ClickTracking(
            deal_id=deal_id,
            project_id=verified_project_id,
            user_agent=_truncate(context.user_agent),
            referer=_truncate(context.referer),
            ip_address=context.ip_address,
        ))
        db.commit()
        tracked = True
        logger.info("Click tracked", deal_id=deal_id, project_id=verified_project_id)
    except SQLAlchemyError as e:
        db.rollback()
        logger.best_effort_failed("Click insert", e, deal_id=deal_id)

    return ClickResult(redirect_url=redirect_url, tracked=tracked, project_id=verified_project_id)


def track_share(db: Session, project_id, platform) -> bool:
    """Enregistre un partage. Ne lève jamais: renvoie False en cas d'échec."""
    if platform not in SHARE_PLATFORMS or not isinstance(project_id, str) or not _is_uuid(project_id):
        logger.warning("Share ignored: invalid input", project_id=project_id, platform=platform)
        return False
    try:
        db.add(ShareTracking(project_id=project_id, platform=platform))
        db.commit()
        return True
    except SQLAlchemyError as e:
        db.rollback()
        logger.best_effort_failed("Share insert", e, project_id=project_id)
        return False
