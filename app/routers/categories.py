"""
Categories Router - Catégories publiques.
Endpoint: /categories
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db.deps import get_db
from app.services.category_service import published_categories

router = APIRouter(tags=["categories"])


@router.get("/categories")
def list_categories(db: Session = Depends(get_db)):
    return {"categories": published_categories(db)}
