"""Recommendation, similarity, trending and competitive analysis endpoints."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from numbers import Number
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from core import config
from core.dependencies import get_current_user_id, get_db
from database import (
    HISTORICAL_TENDER_STATUSES,
    RecommendationPreferenceDB,
    TENDER_STATUSES,
    TenderDB,
    load_tender_pool,
)
from services.recommendation import (
    BudgetRange,
    CompetitionAnalyzer,
    Preference,
    RecommendationRanker,
    SimilarityIndex,
    TrendingAggregator,
)


logger = logging.getLogger(__name__)
router = APIRouter()

ranker = RecommendationRanker()
similarity_index = SimilarityIndex(ranker.vectorizer)
trending_aggregator = TrendingAggregator()
competition_analyzer = CompetitionAnalyzer(similarity_index)

# Everything that was ever visible to bidders counts towards trends
TRENDING_STATUSES = tuple(s for s in TENDER_STATUSES if s not in ("draft", "cancelled"))

PREFERENCE_LIST_FIELDS = ("categories", "keywords", "exclude_keywords", "locations")


def _require_user(request: Request) -> str:
    user_id = get_current_user_id(request)
    if not user_id:
        raise HTTPException(status_code=401, detail="Authentication required")
    return user_id


def _load_preference(db: Session, user_id: str) -> Preference:
    row = db.query(RecommendationPreferenceDB).filter(RecommendationPreferenceDB.user_id == user_id).first()
    if not row:
        return Preference(user_id=user_id)
    return row.to_preference()


def _string_list(payload: Dict[str, Any], field: str) -> List[str]:
    value = payload[field]
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValueError(f"'{field}' must be a list of strings")
    return value


def _optional_number(value: Any, field: str) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, Number):
        raise ValueError(f"'{field}' must be a number")
    return float(value)


def parse_preference_payload(payload: Any, current: Preference) -> Preference:
    """Merge a partial preference update onto ``current``; raises ValueError for malformed input."""
    if not isinstance(payload, dict):
        raise ValueError("Request body must be a JSON object")

    values = current.to_dict()
    values.pop("user_id")
    values["budget_range"] = current.budget_range

    for field in PREFERENCE_LIST_FIELDS:
        if field in payload:
            values[field] = _string_list(payload, field)

    if "budget_range" in payload:
        budget = payload["budget_range"]
        if budget is None:
            values["budget_range"] = None
        elif isinstance(budget, dict):
            low = _optional_number(budget.get("min"), "budget_range.min")
            high = _optional_number(budget.get("max"), "budget_range.max")
            if low is not None and high is not None and low > high:
                raise ValueError("'budget_range.min' must not exceed 'budget_range.max'")
            values["budget_range"] = BudgetRange(min=low, max=high) if (low is not None or high is not None) else None
        else:
            raise ValueError("'budget_range' must be an object with 'min' and/or 'max'")

    if "min_match_score" in payload:
        score = _optional_number(payload["min_match_score"], "min_match_score")
        if score is not None and not 0 <= score <= 100:
            raise ValueError("'min_match_score' must be between 0 and 100")
        values["min_match_score"] = score or 0.0

    return Preference(user_id=current.user_id, **values)


@router.get("/api/recommendations/tenders")
async def get_tender_recommendations(
    request: Request,
    limit: int = Query(config.DEFAULT_RECOMMENDATION_LIMIT, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """Personalized tender recommendations for the caller's stored preferences."""
    user_id = _require_user(request)

    try:
        preference = _load_preference(db, user_id)
        pool = load_tender_pool(db)
        items = ranker.recommend(preference, pool, limit)

        recommendations = []
        for item in items:
            entry = item.document.to_dict()
            entry.update({
                "score": round(item.score, 4),
                "match_percentage": int(round(item.score * 100)),
                "reasons": item.reasons,
                "phase": item.phase,
            })
            recommendations.append(entry)

        logger.info(f"Returned {len(recommendations)} recommendations to user {user_id} from a pool of {len(pool)}")
        return JSONResponse({
            "recommendations": recommendations,
            "total": len(recommendations),
            "based_on": {
                "categories": list(preference.categories),
                "keywords": list(preference.keywords),
                "locations": list(preference.locations),
                "min_match_score": preference.min_match_score,
            },
        })
    except Exception as e:
        logger.error(f"Error building recommendations for user {user_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to get recommendations")


@router.get("/api/recommendations/similar-tenders/{tender_id}")
async def get_similar_tenders(
    tender_id: str,
    limit: int = Query(5, ge=1, le=50),
    db: Session = Depends(get_db),
):
    """Active tenders most similar to the given one."""
    tender = db.query(TenderDB).filter(TenderDB.id == tender_id).first()
    if not tender:
        raise HTTPException(status_code=404, detail="Tender not found")

    try:
        pool = load_tender_pool(db)
        by_id = {document.id: document for document in pool}
        results = similarity_index.find_similar(tender.to_document(), pool, limit)

        similar = []
        for result in results:
            entry = by_id[result.target_id].to_dict()
            entry["similarity"] = round(result.score, 4)
            similar.append(entry)

        return JSONResponse({"tender_id": tender_id, "similar_tenders": similar})
    except Exception as e:
        logger.error(f"Error finding tenders similar to {tender_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to get similar tenders")


@router.get("/api/recommendations/trending")
async def get_trending_topics(
    timeframe: int = Query(config.TRENDING_DEFAULT_DAYS, ge=1, le=config.TRENDING_MAX_WINDOW_DAYS),
    industry: Optional[str] = Query(None),
    top_k: int = Query(config.TRENDING_TOP_KEYWORDS, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """Most frequent keywords and categories among tenders published in the last ``timeframe`` days."""
    try:
        window_end = datetime.utcnow()
        window_start = window_end - timedelta(days=timeframe)
        pool = load_tender_pool(db, statuses=TRENDING_STATUSES, category=industry or None)

        report = trending_aggregator.aggregate(pool, window_start, window_end, top_keywords=top_k)
        payload = report.to_dict()
        payload["timeframe"] = f"{timeframe} days"
        return JSONResponse(payload)
    except Exception as e:
        logger.error(f"Error computing trending topics: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to get trending topics")


@router.get("/api/recommendations/preferences")
async def get_recommendation_preferences(request: Request, db: Session = Depends(get_db)):
    user_id = _require_user(request)
    return JSONResponse(_load_preference(db, user_id).to_dict())


@router.put("/api/recommendations/preferences")
async def update_recommendation_preferences(request: Request, db: Session = Depends(get_db)):
    """Partially update the caller's preferences; omitted fields are left unchanged."""
    user_id = _require_user(request)

    try:
        payload = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Request body must be valid JSON")

    row = db.query(RecommendationPreferenceDB).filter(RecommendationPreferenceDB.user_id == user_id).first()
    current = row.to_preference() if row else Preference(user_id=user_id)

    try:
        preference = parse_preference_payload(payload, current)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    if not row:
        row = RecommendationPreferenceDB(user_id=user_id)
        db.add(row)
    row.apply(preference)
    db.commit()

    logger.info(f"Updated recommendation preferences for user {user_id}")
    return JSONResponse(preference.to_dict())


@router.get("/api/recommendations/competitive-analysis/{tender_id}")
async def get_competitive_analysis(tender_id: str, request: Request, db: Session = Depends(get_db)):
    _require_user(request)

    tender = db.query(TenderDB).filter(TenderDB.id == tender_id).first()
    if not tender:
        raise HTTPException(status_code=404, detail="Tender not found")

    try:
        history = load_tender_pool(db, statuses=HISTORICAL_TENDER_STATUSES)
        analysis = competition_analyzer.analyze(tender.to_document(), history, k=5)
        analysis["current_tender"]["submission_deadline"] = (
            tender.submission_deadline.isoformat() if tender.submission_deadline else None
        )
        return JSONResponse(analysis)
    except Exception as e:
        logger.error(f"Error generating competitive analysis for {tender_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to generate competitive analysis")
