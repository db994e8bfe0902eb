# autoshop/services/recommendation_scorer.py

"""
Ранжирование товаров-кандидатов по истории пользователя.

Чистая функция: вся история передается аргументами, хранилище не трогаем.
Без истории (или в случайном режиме) возвращается перемешанная выборка из
переданного генератора random.Random, чтобы результат можно было воспроизвести.
"""

import random
from dataclasses import dataclass, fields
from typing import Dict, Iterable, List, Mapping

from autoshop.schemas.history import PurchaseRecord, SearchRecord
from autoshop.schemas.product import ProductInfo
from autoshop.schemas.recommendation import ScoredCandidate

# Уверенность для случайных подборок, когда опереться не на что
DEFAULT_CONFIDENCE = 85


@dataclass(frozen=True)
class ScoringWeights:
    purchase_category: int = 5
    title_term: int = 3
    description_term: int = 1
    clicked_category: int = 4
    preference_multiplier: int = 2

    @classmethod
    def from_mapping(cls, overrides: Mapping[str, int] | None) -> "ScoringWeights":
        """Неизвестные ключи игнорируются, остальные подменяют значения по умолчанию."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: int(v) for k, v in (overrides or {}).items() if k in known})


def search_terms(search_history: Iterable[SearchRecord]) -> List[str]:
    """Уникальные слова из поисковых запросов в нижнем регистре, в порядке появления."""
    terms: List[str] = []
    for record in search_history:
        for word in record.query.lower().split():
            if word not in terms:
                terms.append(word)
    return terms


def confidence_from_score(score: int, half_score: int = ScoringWeights.purchase_category) -> int:
    """
    Очки -> уверенность 0..100. При score == half_score получается 50, то есть
    одно совпадение категории с прошлой покупкой уже проходит порог по умолчанию.
    """
    if score <= 0:
        return 0
    half_score = max(half_score, 1)
    return min(100, round(100 * score / (score + half_score)))


def _score_product(
    product: ProductInfo,
    purchased_categories: set,
    clicked_categories: set,
    terms: List[str],
    preferences: Mapping[int, int],
    weights: ScoringWeights,
) -> ScoredCandidate:
    score = 0
    reasons: List[str] = []
    title = product.title.lower()
    description = product.description.lower()
    category = product.category_id

    if category is not None and category in purchased_categories:
        score += weights.purchase_category
        reasons.append("category matches a previous purchase")

    for term in terms:
        if term in title:
            score += weights.title_term
            reasons.append(f"title matches search '{term}'")
        if term in description:
            score += weights.description_term
            reasons.append(f"description matches search '{term}'")

    if category is not None and category in clicked_categories:
        score += weights.clicked_category
        reasons.append("category clicked from search")

    preference = preferences.get(category, 0) if category is not None else 0
    if preference:
        score += weights.preference_multiplier * preference
        reasons.append(f"category preference {preference}")

    confidence = confidence_from_score(score, weights.purchase_category)
    return ScoredCandidate(product=product, score=score, confidence=confidence, reasons=reasons)


def score_candidates(
    candidates: List[ProductInfo],
    purchase_history: List[PurchaseRecord],
    search_history: List[SearchRecord],
    preferences: Dict[int, int],
    weights: ScoringWeights | None = None,
    random_mode: bool = False,
    limit: int | None = None,
    rng: random.Random | None = None,
) -> List[ScoredCandidate]:
    """
    Возвращает кандидатов по убыванию очков, при равенстве - по возрастанию id товара.
    `limit` обрезает результат (None или <= 0 - без ограничения).
    """
    weights = weights or ScoringWeights()
    has_history = bool(purchase_history or search_history or preferences)

    if random_mode or not has_history:
        rng = rng or random.Random()
        size = len(candidates) if not limit or limit <= 0 else min(limit, len(candidates))
        picked = rng.sample(list(candidates), size)
        reason = "random pick" if random_mode else "no shopping history yet"
        return [
            ScoredCandidate(product=p, score=0, confidence=DEFAULT_CONFIDENCE, reasons=[reason]) for p in picked
        ]

    purchased_categories = {r.category_id for r in purchase_history if r.category_id is not None}
    clicked_categories = {r.clicked_category_id for r in search_history if r.clicked_category_id is not None}
    terms = search_terms(search_history)

    scored = [
        _score_product(p, purchased_categories, clicked_categories, terms, preferences, weights)
        for p in candidates
    ]
    scored.sort(key=lambda c: (-c.score, c.product.id))
    if limit and limit > 0:
        scored = scored[:limit]
    return scored
