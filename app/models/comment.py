"""Comment model - Commentaires utilisateurs sur un deal."""
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Text, ForeignKey, Index

from app.models.user import Base, new_id


class Comment(Base):
    """Commentaire. Supprimable uniquement par son auteur."""

    __tablename__ = "comments"

    id = Column(String(36), primary_key=True, default=new_id)
    deal_id = Column(String(36), ForeignKey("deals.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    display_name = Column(String(100), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_comments_deal_created", "deal_id", "created_at"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "deal_id": self.deal_id,
            "user_id": self.user_id,
            "display_name": self.display_name,
            "content": self.content,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
