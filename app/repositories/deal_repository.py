from datetime import datetime
from typing import Optional, List, Tuple
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from app.models.deal import Deal, PriceHistory
from app.models.category_rule import CategoryRule


class DealRepository:
    """
    Repository pour la persistance des deals et de leur historique de prix.
    Les méthodes font flush, jamais commit: le service décide des transactions.
    """

    def __init__(self, session: Session):
        self.session = session

    def get(self, deal_id: str) -> Optional[Deal]:
        return self.session.query(Deal).filter(Deal.id == deal_id).first()

    def add(self, deal: Deal) -> Deal:
        self.session.add(deal)
        self.session.flush()
        return deal

    def append_price_history(self, deal: Deal) -> PriceHistory:
        """Ajoute un point d'historique avec les prix courants du deal."""
        entry = PriceHistory(
            deal_id=deal.id,
            price=deal.price,
            original_price=deal.original_price,
            discount=deal.discount,
            recorded_at=datetime.utcnow(),
        )
        self.session.add(entry)
        self.session.flush()
        return entry

    def price_history(self, deal_id: str) -> List[PriceHistory]:
        return (
            self.session.query(PriceHistory)
            .filter(PriceHistory.deal_id == deal_id)
            .order_by(PriceHistory.recorded_at.asc())
            .all()
        )

    def list_visible(
        self,
        page: int = 1,
        per_page: int = 20,
        category: Optional[str] = None,
        search: Optional[str] = None,
        in_stock_only: bool = False,
    ) -> Tuple[List[Deal], int]:
        """
        Deals visibles: catégorie publiée, ou sans règle (pas encore synchronisée),
        ou sans catégorie.
        """
        hidden = select(CategoryRule.category).where(CategoryRule.is_published.is_(False))
        query = self.session.query(Deal).filter(
            or_(Deal.category.is_(None), Deal.category.not_in(hidden))
        )

        if category:
            query = query.filter(Deal.category == category)
        if search:
            query = query.filter(
                or_(
                    Deal.title.ilike(f"%{search}%"),
                    Deal.brand.ilike(f"%{search}%"),
                )
            )
        if in_stock_only:
            query = query.filter(Deal.in_stock.is_(True))

        total = query.count()
        deals = (
            query.order_by(Deal.posted_at.desc(), Deal.created_at.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
            .all()
        )
        return deals, total

    def distinct_categories(self) -> List[str]:
        rows = (
            self.session.query(Deal.category)
            .filter(Deal.category.is_not(None), Deal.category != "")
            .distinct()
            .all()
        )
        return sorted(r[0] for r in rows)

    def needing_image_check(self, batch_size: int, max_retries: int) -> List[Deal]:
        return (
            self.session.query(Deal)
            .filter(
                Deal.image_ready.is_(False),
                Deal.image_retry_count < max_retries,
            )
            .order_by(Deal.image_last_checked.asc().nulls_first())
            .limit(batch_size)
            .all()
        )

    def latest_fetched(self) -> Optional[Deal]:
        return (
            self.session.query(Deal)
            .filter(Deal.fetched_at.is_not(None))
            .order_by(Deal.fetched_at.desc())
            .first()
        )

