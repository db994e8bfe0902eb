# autoshop/crud/recommendation.py

from datetime import datetime, timezone
from typing import List
from sqlalchemy.orm import Session

from autoshop.models.recommendation import (
    STATUS_PURCHASED, STATUS_REJECTED, Recommendation, is_permanently_removed, mark_permanent
)

def create_recommendation(db: Session, user_id: int, product_id: int, reason: str, confidence: int) -> Recommendation:
    recommendation = Recommendation(
        user_id=user_id, product_id=product_id, reason=reason, confidence=confidence
    )
    db.add(recommendation)
    db.commit()
    db.refresh(recommendation)
    return recommendation

def get_recommendation(db: Session, recommendation_id: int) -> Recommendation | None:
    return db.get(Recommendation, recommendation_id)

def get_user_recommendations(db: Session, user_id: int, include_removed: bool = False) -> List[Recommendation]:
    """Рекомендации пользователя от новых к старым. Окончательно удаленные скрыты по умолчанию."""
    recommendations = db.query(Recommendation).filter(
        Recommendation.user_id == user_id
    ).order_by(Recommendation.created_at.desc(), Recommendation.id.desc()).all()
    if include_removed:
        return recommendations
    return [r for r in recommendations if not is_permanently_removed(r.rejected_reason)]

def get_recommendations_by_status(db: Session, status: str) -> List[Recommendation]:
    return db.query(Recommendation).filter(Recommendation.status == status).order_by(Recommendation.id).all()

def update_status(
    db: Session,
    recommendation_id: int,
    status: str,
    reason: str | None = None,
    permanent: bool = False,
) -> Recommendation | None:
    recommendation = db.get(Recommendation, recommendation_id)
    if not recommendation:
        return None

    recommendation.status = status
    recommendation.updated_at = datetime.now(timezone.utc)
    if status == STATUS_PURCHASED:
        recommendation.purchased_at = datetime.now(timezone.utc)
    if status == STATUS_REJECTED:
        if permanent:
            recommendation.rejected_reason = mark_permanent(reason or recommendation.rejected_reason)
        elif reason:
            recommendation.rejected_reason = reason

    db.commit()
    db.refresh(recommendation)
    return recommendation

def delete_user_recommendations(db: Session, user_id: int) -> int:
    deleted = db.query(Recommendation).filter_by(user_id=user_id).delete()
    db.commit()
    return deleted
