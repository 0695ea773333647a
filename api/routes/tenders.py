"""
Tender and proposal endpoints.

Every write that touches the text a document is vectorized from (tender title,
description or requirements; proposal summary or solution) recomputes the
stored vector in the same transaction.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from numbers import Number
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from core import config
from core.dependencies import get_current_user_id, get_db, get_vector_cache
from database import (
    ProposalDB,
    TENDER_CATEGORIES,
    TENDER_STATUSES,
    TenderDB,
    load_proposal_pool,
    load_tender_pool,
)
from services.recommendation import (
    SimilarityIndex,
    Vectorizer,
    extract_key_phrases,
    keyword_frequencies,
    keyword_similarity,
)


logger = logging.getLogger(__name__)
router = APIRouter()

similarity_index = SimilarityIndex()

TENDER_TEXT_FIELDS = {"title", "description", "requirements"}
PROPOSAL_TEXT_FIELDS = {"executive_summary", "solution_description"}


def _require_user(request: Request) -> str:
    user_id = get_current_user_id(request)
    if not user_id:
        raise HTTPException(status_code=401, detail="Authentication required")
    return user_id


async def _json_object(request: Request) -> Dict[str, Any]:
    try:
        payload = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Request body must be valid JSON")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Request body must be a JSON object")
    return payload


def _parse_datetime(value: Any, field: str) -> Optional[datetime]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"'{field}' must be an ISO 8601 string")
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise ValueError(f"'{field}' must be an ISO 8601 string")
    # Stored timestamps are naive UTC
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def apply_tender_payload(tender: TenderDB, payload: Dict[str, Any], creating: bool = False) -> bool:
    """
    Validate ``payload`` and copy it onto ``tender``.

    Returns:
        True when a field the vector is built from changed

    Raises:
        ValueError: If a field is missing or malformed
    """
    if creating and not str(payload.get("title") or "").strip():
        raise ValueError("'title' is required")

    if "title" in payload:
        title = str(payload["title"] or "").strip()
        if not title:
            raise ValueError("'title' must not be empty")
        tender.title = title

    if "description" in payload:
        tender.description = str(payload["description"] or "")

    if "requirements" in payload:
        requirements = payload["requirements"] or []
        if not isinstance(requirements, list) or not all(isinstance(r, str) for r in requirements):
            raise ValueError("'requirements' must be a list of strings")
        tender.requirements = [r.strip() for r in requirements if r.strip()]

    if "category" in payload:
        category = payload["category"]
        if category is not None and category not in TENDER_CATEGORIES:
            raise ValueError(f"'category' must be one of {', '.join(TENDER_CATEGORIES)}")
        tender.category = category

    if "status" in payload:
        if payload["status"] not in TENDER_STATUSES:
            raise ValueError(f"'status' must be one of {', '.join(TENDER_STATUSES)}")
        tender.status = payload["status"]

    if "estimated_value" in payload:
        value = payload["estimated_value"]
        if value is not None and (isinstance(value, bool) or not isinstance(value, Number) or value < 0):
            raise ValueError("'estimated_value' must be a non-negative number")
        tender.estimated_value = float(value) if value is not None else None

    if "location" in payload:
        tender.location = str(payload["location"]).strip() if payload["location"] else None

    if "currency" in payload and payload["currency"]:
        tender.currency = str(payload["currency"]).upper()

    if "published_at" in payload:
        tender.published_at = _parse_datetime(payload["published_at"], "published_at") or datetime.utcnow()

    if "submission_deadline" in payload:
        tender.submission_deadline = _parse_datetime(payload["submission_deadline"], "submission_deadline")

    return creating or bool(TENDER_TEXT_FIELDS & payload.keys())


@router.post("/api/tenders/search")
async def search_tenders(request: Request, db: Session = Depends(get_db)):
    """Free-text search over active tenders ranked by vector similarity."""
    payload = await _json_object(request)

    query = payload.get("query")
    if not isinstance(query, str) or not query.strip():
        raise HTTPException(status_code=400, detail="Search query is required")

    limit = payload.get("limit", config.DEFAULT_RECOMMENDATION_LIMIT)
    if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= 100:
        raise HTTPException(status_code=400, detail="'limit' must be an integer between 1 and 100")

    try:
        vectorizer = Vectorizer(cache=get_vector_cache())
        query_vector = vectorizer.vectorize(query)
        query_keywords = keyword_frequencies(query)

        pool = load_tender_pool(db)
        by_id = {document.id: document for document in pool}
        results = similarity_index.find_similar(query_vector, pool, limit)

        matches = []
        for result in results:
            document = by_id[result.target_id]
            entry = document.to_dict()
            entry["similarity"] = round(result.score, 4)
            entry["keyword_overlap"] = round(keyword_similarity(query_keywords, keyword_frequencies(document.text)), 4)
            matches.append(entry)

        logger.info(f"Search '{query[:50]}' matched {len(matches)} of {len(pool)} tenders")
        return JSONResponse({
            "query": query,
            "key_phrases": extract_key_phrases(query),
            "results": matches,
        })
    except Exception as e:
        logger.error(f"Tender search failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to search tenders")


@router.post("/api/tenders")
async def create_tender(request: Request, db: Session = Depends(get_db)):
    user_id = _require_user(request)
    payload = await _json_object(request)

    tender = TenderDB(created_by=user_id, requirements=[], status="published", view_count=0, proposal_count=0)
    try:
        apply_tender_payload(tender, payload, creating=True)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    if tender.published_at is None:
        tender.published_at = datetime.utcnow()
    tender.refresh_vector()

    db.add(tender)
    db.commit()
    db.refresh(tender)

    logger.info(f"Tender {tender.id} created by user {user_id}")
    return JSONResponse(tender.to_frontend_format(), status_code=201)


@router.put("/api/tenders/{tender_id}")
async def update_tender(tender_id: str, request: Request, db: Session = Depends(get_db)):
    user_id = _require_user(request)

    tender = db.query(TenderDB).filter(TenderDB.id == tender_id).first()
    if not tender:
        raise HTTPException(status_code=404, detail="Tender not found")
    if tender.created_by and tender.created_by != user_id:
        raise HTTPException(status_code=403, detail="Not authorized to update this tender")

    payload = await _json_object(request)
    try:
        text_changed = apply_tender_payload(tender, payload)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    if text_changed:
        tender.refresh_vector()
        logger.debug(f"Tender {tender_id} text changed, vector recomputed")

    db.commit()
    db.refresh(tender)
    return JSONResponse(tender.to_frontend_format())


@router.get("/api/tenders/{tender_id}")
async def get_tender(tender_id: str, db: Session = Depends(get_db)):
    tender = db.query(TenderDB).filter(TenderDB.id == tender_id).first()
    if not tender:
        raise HTTPException(status_code=404, detail="Tender not found")

    # Views feed the popularity ordering of fallback recommendations
    tender.view_count = (tender.view_count or 0) + 1
    db.commit()
    db.refresh(tender)
    return JSONResponse(tender.to_frontend_format())


@router.post("/api/proposals")
async def create_proposal(request: Request, db: Session = Depends(get_db)):
    user_id = _require_user(request)
    payload = await _json_object(request)

    tender_id = payload.get("tender_id")
    summary = payload.get("executive_summary")
    if not isinstance(tender_id, str) or not tender_id:
        raise HTTPException(status_code=400, detail="'tender_id' is required")
    if not isinstance(summary, str) or not summary.strip():
        raise HTTPException(status_code=400, detail="'executive_summary' is required")

    solution = payload.get("solution_description") or ""
    if not isinstance(solution, str):
        raise HTTPException(status_code=400, detail="'solution_description' must be a string")

    tender = db.query(TenderDB).filter(TenderDB.id == tender_id).first()
    if not tender:
        raise HTTPException(status_code=404, detail="Tender not found")

    proposal = ProposalDB(
        tender_id=tender_id,
        user_id=user_id,
        executive_summary=summary.strip(),
        solution_description=solution,
        status="draft",
        created_at=datetime.utcnow(),
    )
    proposal.refresh_vector()
    tender.proposal_count = (tender.proposal_count or 0) + 1

    db.add(proposal)
    db.commit()
    db.refresh(proposal)

    logger.info(f"Proposal {proposal.id} for tender {tender_id} created by user {user_id}")
    return JSONResponse(proposal.to_dict(), status_code=201)


@router.get("/api/proposals/{proposal_id}/similar")
async def get_similar_proposals(
    proposal_id: str,
    request: Request,
    limit: int = Query(5, ge=1, le=50),
    db: Session = Depends(get_db),
):
    _require_user(request)

    proposal = db.query(ProposalDB).filter(ProposalDB.id == proposal_id).first()
    if not proposal:
        raise HTTPException(status_code=404, detail="Proposal not found")

    try:
        pool = load_proposal_pool(db)
        results = similarity_index.find_similar(proposal.to_document(), pool, limit)

        rows = {
            row.id: row
            for row in db.query(ProposalDB).filter(ProposalDB.id.in_([r.target_id for r in results])).all()
        } if results else {}

        similar = []
        for result in results:
            entry = rows[result.target_id].to_dict()
            entry["similarity"] = round(result.score, 4)
            similar.append(entry)

        return JSONResponse({"proposal_id": proposal_id, "similar_proposals": similar})
    except Exception as e:
        logger.error(f"Error finding proposals similar to {proposal_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to retrieve similar proposals")
