"""
Tracking models - Sinks analytiques write-once.

L'application écrit ces lignes mais ne les relit jamais.
"""
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey, Index

from app.models.user import Base, new_id


class ClickTracking(Base):
    """Clic sur un lien sortant de deal."""

    __tablename__ = "click_tracking"

    id = Column(String(36), primary_key=True, default=new_id)
    deal_id = Column(String(36), ForeignKey("deals.id", ondelete="CASCADE"), nullable=False)
    project_id = Column(String(36), ForeignKey("projects.id", ondelete="SET NULL"), nullable=True)

    user_agent = Column(String(500), nullable=True)
    referer = Column(String(500), nullable=True)
    ip_address = Column(String(100), nullable=True)

    clicked_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_click_tracking_deal", "deal_id"),
        Index("ix_click_tracking_project", "project_id"),
    )


class ShareTracking(Base):
    """Partage d'un projet. Pas de user agent ni referer stockés."""

    __tablename__ = "share_tracking"

    id = Column(String(36), primary_key=True, default=new_id)
    project_id = Column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    platform = Column(String(30), nullable=False)  # copy_link, twitter, facebook, whatsapp, email, native_share
    shared_at = Column(DateTime, default=datetime.utcnow)
