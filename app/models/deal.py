from datetime import datetime
from typing import Optional
from sqlalchemy import String, Float, Integer, Text, DateTime, Index, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from app.models.user import Base, new_id


class Deal(Base):
    """
    Modèle persistant pour un deal affilié.

    Modifié uniquement par les endpoints admin (add/edit) et par le job de
    vérification d'images. Chaque changement de prix/remise ajoute une ligne
    dans PriceHistory.
    """
    __tablename__ = "deals"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)

    # Données produit
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    brand: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    coupon_code: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    price: Mapped[float] = mapped_column(Float, nullable=False)
    original_price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    discount: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # pourcentage

    product_url: Mapped[str] = mapped_column(Text, nullable=False)
    image_url: Mapped[str] = mapped_column(Text, nullable=False)

    rating: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    review_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    in_stock: Mapped[bool] = mapped_column(default=True)

    # Vérification d'image (job verify_deal_images)
    image_ready: Mapped[bool] = mapped_column(default=False)
    verified_image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    image_retry_count: Mapped[int] = mapped_column(Integer, default=0)
    image_last_checked: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Timestamps
    fetched_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    posted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    __table_args__ = (
        Index("ix_deals_category", "category"),
        Index("ix_deals_fetched_at", "fetched_at"),
        Index("ix_deals_image_ready", "image_ready", "image_retry_count"),
    )

    def __repr__(self) -> str:
        return f"<Deal {self.id} - {self.title[:30]}... @ {self.price}>"

    def to_api_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "price": self.price,
            "original_price": self.original_price,
            "discount": self.discount,
            "image_url": self.image_url,
            "verified_image_url": self.verified_image_url,
            "product_url": self.product_url,
            "category": self.category,
            "brand": self.brand,
            "coupon_code": self.coupon_code,
            "rating": self.rating,
            "review_count": self.review_count,
            "in_stock": self.in_stock,
            "image_ready": self.image_ready,
            "fetched_at": self.fetched_at.isoformat() if self.fetched_at else None,
            "posted_at": self.posted_at.isoformat() if self.posted_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class PriceHistory(Base):
    """Historique de prix. Append-only: jamais modifié ni supprimé par l'application."""
    __tablename__ = "deal_price_history"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    deal_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("deals.id", ondelete="CASCADE"), nullable=False
    )
    price: Mapped[float] = mapped_column(Float, nullable=False)
    original_price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    discount: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    recorded_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_price_history_deal_recorded", "deal_id", "recorded_at"),
    )

    def to_api_dict(self) -> dict:
        return {
            "id": self.id,
            "deal_id": self.deal_id,
            "price": self.price,
            "original_price": self.original_price,
            "discount": self.discount,
            "recorded_at": self.recorded_at.isoformat() if self.recorded_at else None,
        }
