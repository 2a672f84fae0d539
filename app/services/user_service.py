"""User Service - Création de comptes par un admin."""
from typing import Optional, Tuple

from loguru import logger
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import UpstreamError, ValidationError
from app.core.security import hash_password
from app.models.user import User, UserRole, ADMIN_ROLE


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()


def grant_role(db: Session, user_id: str, role: str) -> bool:
    """Ajoute un rôle. Best-effort: False en cas d'échec."""
    try:
        db.add(UserRole(user_id=user_id, role=role))
        db.commit()
        return True
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Role grant '{role}' failed for user {user_id}: {e}")
        return False


def create_user(db: Session, email: Optional[str], password: Optional[str], make_admin: bool = False) -> Tuple[User, bool]:
    """
    Crée un utilisateur, et lui donne le rôle admin si demandé.

    Returns:
        (user, is_admin)

    Raises:
        ValidationError: email / mot de passe manquant, email déjà pris
        UpstreamError: échec d'écriture du compte
    """
    if not email or not password:
        raise ValidationError("Email and password are required")

    email = email.strip().lower()
    if get_user_by_email(db, email):
        raise ValidationError("A user with this email already exists", field="email")

    user = User(email=email, password_hash=hash_password(password))
    try:
        db.add(user)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValidationError("A user with this email already exists", field="email")
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"User insert failed: {e}")
        raise UpstreamError("Failed to create user")

    logger.info(f"User created: {user.id} ({email})")

    is_admin = False
    if make_admin:
        is_admin = grant_role(db, user.id, ADMIN_ROLE)

    return user, is_admin
