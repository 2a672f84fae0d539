"""
Authorization - Dépendances FastAPI pour l'identité et le rôle admin.

Le privilège vient uniquement de la table user_roles: les claims du token
et les champs du body ne sont jamais consultés.
"""
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import AuthenticationError, AuthorizationError, UpstreamError
from app.core.logging import get_logger
from app.core.security import decode_access_token
from app.db.deps import get_db
from app.models.user import User, UserRole, ADMIN_ROLE

logger = get_logger(__name__)

bearer = HTTPBearer(auto_error=False)


def _user_from_credentials(
    creds: Optional[HTTPAuthorizationCredentials],
    db: Session,
) -> Optional[User]:
    if not creds or not creds.credentials:
        return None
    user_id = decode_access_token(creds.credentials)
    if not user_id:
        return None
    try:
        return db.query(User).filter(User.id == user_id).first()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"User lookup failed: {e}", exc_info=False)
        raise UpstreamError("Failed to verify credentials")


def get_current_user(
    creds: HTTPAuthorizationCredentials = Depends(bearer),
    db: Session = Depends(get_db),
) -> User:
    """Utilisateur authentifié, sinon 401."""
    user = _user_from_credentials(creds, db)
    if user is None:
        raise AuthenticationError()
    return user


def has_role(db: Session, user_id: str, role: str) -> bool:
    try:
        return db.query(UserRole.id).filter(
            UserRole.user_id == user_id,
            UserRole.role == role,
        ).first() is not None
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Role lookup failed: {e}", exc_info=False)
        raise UpstreamError("Failed to verify permissions")


def require_admin(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> User:
    """
    Garde des endpoints admin.

    401 sans token valide ou utilisateur inconnu, 403 sans rôle admin.
    """
    if not has_role(db, user.id, ADMIN_ROLE):
        logger.warning("Admin access denied", user_id=user.id)
        raise AuthorizationError()
    return user
