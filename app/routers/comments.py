"""
Comments Router - Commentaires sur les deals.
Endpoints: /deals/{deal_id}/comments, /comments/{comment_id}
"""
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.authz import get_current_user
from app.core.exceptions import AuthorizationError, NotFoundError, UpstreamError, ValidationError
from app.core.logging import get_logger
from app.db.deps import get_db
from app.models.comment import Comment
from app.models.user import User
from app.services.deal_service import get_deal_or_404

logger = get_logger(__name__)

router = APIRouter(tags=["comments"])

MAX_COMMENT_LENGTH = 2000


class CommentIn(BaseModel):
    content: Optional[str] = None


@router.get("/deals/{deal_id}/comments")
def list_comments(deal_id: str, db: Session = Depends(get_db)):
    comments = (
        db.query(Comment)
        .filter(Comment.deal_id == deal_id)
        .order_by(Comment.created_at.desc())
        .all()
    )
    return {"comments": [c.to_dict() for c in comments]}


@router.post("/deals/{deal_id}/comments")
def add_comment(
    deal_id: str,
    payload: CommentIn,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    content = (payload.content or "").strip()
    if not content:
        raise ValidationError("Comment content is required", field="content")
    if len(content) > MAX_COMMENT_LENGTH:
        raise ValidationError("Comment too long (max 2000 characters)", field="content")

    get_deal_or_404(db, deal_id)

    comment = Comment(
        deal_id=deal_id,
        user_id=user.id,
        display_name=user.display_name,
        content=content,
    )
    try:
        db.add(comment)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Comment insert failed: {e}", deal_id=deal_id, exc_info=False)
        raise UpstreamError("Failed to save comment")

    return {"success": True, "comment": comment.to_dict()}


@router.delete("/comments/{comment_id}")
def delete_comment(
    comment_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Seul l'auteur peut supprimer son commentaire."""
    comment = db.query(Comment).filter(Comment.id == comment_id).first()
    if comment is None:
        raise NotFoundError("Comment not found")
    if comment.user_id != user.id:
        raise AuthorizationError("You can only delete your own comments")

    try:
        db.delete(comment)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Comment delete failed: {e}", exc_info=False)
        raise UpstreamError("Failed to delete comment")

    return {"success": True}
