# tests/test_recommendation_scorer.py

import random

from autoshop.schemas.history import PurchaseRecord, SearchRecord
from autoshop.schemas.product import ProductInfo
from autoshop.services.recommendation_scorer import (
    DEFAULT_CONFIDENCE, ScoringWeights, confidence_from_score, score_candidates, search_terms
)


def product(pid, title="Item", description="", category_id=None):
    return ProductInfo(id=pid, title=title, description=description, price=100, category_id=category_id)


def test_weights_add_up_per_signal():
    candidates = [product(1, title="Running shoes", description="light running shoes for trail", category_id=5)]
    scored = score_candidates(
        candidates,
        purchase_history=[PurchaseRecord(product_id=99, category_id=5)],
        search_history=[SearchRecord(query="running", clicked_category_id=5)],
        preferences={5: 3},
    )
    # 5 (покупка в категории) + 3 (заголовок) + 1 (описание) + 4 (клик из поиска) + 2*3 (предпочтение)
    assert scored[0].score == 19
    assert scored[0].confidence == confidence_from_score(19) == 79
    assert len(scored[0].reasons) == 5


def test_each_search_term_counts_once():
    terms = search_terms([SearchRecord(query="Blue Jacket"), SearchRecord(query="blue scarf")])
    assert terms == ["blue", "jacket", "scarf"]

    scored = score_candidates(
        [product(1, title="Blue jacket")],
        purchase_history=[],
        search_history=[SearchRecord(query="blue jacket"), SearchRecord(query="blue")],
        preferences={},
    )
    assert scored[0].score == 6


def test_sorted_by_score_then_product_id():
    candidates = [
        product(30, title="lamp", category_id=1),
        product(10, title="lamp", category_id=1),
        product(20, title="chair", category_id=2),
        product(5, title="lamp shade", category_id=1),
    ]
    history = [PurchaseRecord(product_id=1, category_id=1)]
    for _ in range(3):
        scored = score_candidates(candidates, history, [], {})
        assert [c.product.id for c in scored] == [5, 10, 30, 20]


def test_custom_weights_and_limit():
    weights = ScoringWeights.from_mapping({"purchase_category": 1, "preference_multiplier": 10, "unknown": 3})
    assert weights.title_term == 3
    candidates = [product(1, category_id=1), product(2, category_id=2)]

    scored = score_candidates(
        candidates, [PurchaseRecord(product_id=9, category_id=1)], [], {2: 1}, weights=weights, limit=1
    )
    assert [c.product.id for c in scored] == [2]
    assert scored[0].score == 10


def test_no_history_returns_seeded_sample():
    candidates = [product(i) for i in range(1, 11)]

    first = score_candidates(candidates, [], [], {}, limit=4, rng=random.Random(7))
    second = score_candidates(candidates, [], [], {}, limit=4, rng=random.Random(7))

    assert [c.product.id for c in first] == [c.product.id for c in second]
    assert len(first) == 4
    assert len({c.product.id for c in first}) == 4
    assert all(c.confidence == DEFAULT_CONFIDENCE for c in first)


def test_random_mode_ignores_history():
    candidates = [product(i, category_id=1) for i in range(1, 6)]
    history = [PurchaseRecord(product_id=1, category_id=1)]

    scored = score_candidates(candidates, history, [], {}, random_mode=True, rng=random.Random(1))

    assert sorted(c.product.id for c in scored) == [1, 2, 3, 4, 5]
    assert all(c.score == 0 for c in scored)
    assert scored[0].reasons == ["random pick"]


def test_confidence_from_score():
    assert confidence_from_score(0) == 0
    assert confidence_from_score(5) == 50
    assert confidence_from_score(10) == 67
    assert confidence_from_score(95) == 95
    assert 0 < confidence_from_score(1) < confidence_from_score(5) < 100
    assert confidence_from_score(10, half_score=10) == 50
    assert confidence_from_score(3, half_score=0) == 75


def test_category_match_with_title_hit_passes_default_threshold():
    scored = score_candidates(
        [product(1, title="Desk lamp", category_id=4)],
        purchase_history=[PurchaseRecord(product_id=9, category_id=4)],
        search_history=[SearchRecord(query="lamp")],
        preferences={},
    )
    assert scored[0].score == 8
    assert scored[0].confidence == 62
    assert scored[0].confidence >= 50


def test_confidence_follows_configured_category_weight():
    weights = ScoringWeights(purchase_category=10)
    scored = score_candidates(
        [product(1, category_id=4)], [PurchaseRecord(product_id=9, category_id=4)], [], {}, weights=weights
    )
    assert scored[0].score == 10
    assert scored[0].confidence == 50
