"""CategoryRule model - Visibilité des deals par catégorie."""
from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime

from app.models.user import Base, new_id


class CategoryRule(Base):
    """
    Règle de publication d'une catégorie.

    Synchronisée paresseusement depuis les catégories distinctes des deals:
    une catégorie sans règle reste visible jusqu'à la prochaine synchro.
    """

    __tablename__ = "category_rules"

    id = Column(String(36), primary_key=True, default=new_id)
    category = Column(String(100), unique=True, nullable=False)
    is_published = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "category": self.category,
            "is_published": self.is_published,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
