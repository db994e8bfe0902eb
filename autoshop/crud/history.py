# autoshop/crud/history.py

from typing import Dict, List
from sqlalchemy.orm import Session

from autoshop.models.history import CategoryPreference, PurchaseRecord, SearchRecord

def _apply_limit(query, limit: int | None):
    if limit and limit > 0:
        query = query.limit(limit)
    return query

def get_purchase_history(db: Session, user_id: int, limit: int | None = None) -> List[PurchaseRecord]:
    query = db.query(PurchaseRecord).filter(
        PurchaseRecord.user_id == user_id
    ).order_by(PurchaseRecord.created_at.desc(), PurchaseRecord.id.desc())
    return _apply_limit(query, limit).all()

def get_search_history(db: Session, user_id: int, limit: int | None = None) -> List[SearchRecord]:
    query = db.query(SearchRecord).filter(
        SearchRecord.user_id == user_id
    ).order_by(SearchRecord.created_at.desc(), SearchRecord.id.desc())
    return _apply_limit(query, limit).all()

def get_category_preferences(db: Session, user_id: int, limit: int | None = None) -> Dict[int, int]:
    """Возвращает {category_id: score}, самые сильные предпочтения первыми."""
    query = db.query(CategoryPreference).filter(
        CategoryPreference.user_id == user_id
    ).order_by(CategoryPreference.score.desc(), CategoryPreference.category_id)
    return {p.category_id: p.score for p in _apply_limit(query, limit).all()}

def add_purchase(db: Session, user_id: int, product_id: int, category_id: int | None) -> PurchaseRecord:
    record = PurchaseRecord(user_id=user_id, product_id=product_id, category_id=category_id)
    db.add(record)
    db.commit()
    return record

def add_search(db: Session, user_id: int, query: str, clicked_category_id: int | None = None) -> SearchRecord:
    record = SearchRecord(user_id=user_id, query=query, clicked_category_id=clicked_category_id)
    db.add(record)
    db.commit()
    return record

def set_category_preference(db: Session, user_id: int, category_id: int, score: int) -> CategoryPreference:
    preference = db.query(CategoryPreference).filter_by(user_id=user_id, category_id=category_id).first()
    if preference:
        preference.score = score
    else:
        preference = CategoryPreference(user_id=user_id, category_id=category_id, score=score)
        db.add(preference)
    db.commit()
    return preference
