"""Project model - Canaux de publication avec leur propre tracking code."""
from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime, Text, ForeignKey

from app.models.user import Base, new_id


class Project(Base):
    """Projet de publication (site, compte social...)."""

    __tablename__ = "projects"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=True)
    description = Column(Text, nullable=True)

    # Tracking code appliqué côté serveur aux clics attribués à ce projet
    tracking_code = Column(String(100), nullable=False)
    is_active = Column(Boolean, default=True)

    created_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<Project {self.slug or self.id} tag={self.tracking_code}>"
