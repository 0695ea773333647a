import os
import logging
import uuid
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

import numpy as np
from sqlalchemy import create_engine, Column, String, Integer, Float, DateTime, Text, ForeignKey, Index, LargeBinary, JSON
from sqlalchemy.engine import make_url
from sqlalchemy.orm import declarative_base, sessionmaker, Session, relationship

from core import config
from services.recommendation.models import BudgetRange, Document, Preference
from services.recommendation.vectorizer import Vectorizer

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///./tendermatch.db"


def _normalize_database_url(url: str) -> str:
    """Normalize DATABASE_URL for SQLAlchemy compatibility."""
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    if url.startswith("postgresql://") and "+psycopg" not in url:
        url = url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


# Database configuration
DATABASE_URL = _normalize_database_url(os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL))
database_url = make_url(DATABASE_URL)

engine_kwargs: Dict[str, Any] = {
    "pool_pre_ping": True,
}

if database_url.get_backend_name() == "sqlite":
    engine_kwargs.update(connect_args={"check_same_thread": False})
else:
    engine_kwargs.update(
        pool_size=int(os.getenv("DB_POOL_SIZE", "10")),
        max_overflow=int(os.getenv("DB_MAX_OVERFLOW", "20")),
        pool_timeout=int(os.getenv("DB_POOL_TIMEOUT", "30")),
        pool_recycle=int(os.getenv("DB_POOL_RECYCLE", "1800")),
    )

engine = create_engine(DATABASE_URL, **engine_kwargs)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

# Stored vectors are always built with the default (uncached) vectorizer
_vectorizer = Vectorizer()

TENDER_STATUSES = ("draft", "published", "open", "evaluation", "closed", "awarded", "cancelled")
ACTIVE_TENDER_STATUSES = ("published", "open")
# Past tenders used as the comparison set for competitive analysis
HISTORICAL_TENDER_STATUSES = ("evaluation", "awarded", "closed")

TENDER_CATEGORIES = (
    "construction", "it_software", "consulting", "manufacturing", "healthcare", "education",
    "transportation", "energy", "agriculture", "defense", "telecommunications", "finance", "other",
)


def serialize_vector(vector: Optional[np.ndarray]) -> Optional[bytes]:
    """float64 array → raw bytes for LargeBinary storage."""
    if vector is None:
        return None
    return np.asarray(vector, dtype=np.float64).tobytes()


def deserialize_vector(data: Optional[bytes]) -> Optional[np.ndarray]:
    if not data:
        return None
    return np.frombuffer(data, dtype=np.float64)


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class TenderDB(Base):
    """SQLAlchemy model for tenders."""

    __tablename__ = "tenders"

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    title = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=False, default="")
    requirements = Column(JSON, default=list)
    category = Column(String, index=True)
    estimated_value = Column(Float, index=True)
    currency = Column(String, default="INR")
    location = Column(String, index=True)
    status = Column(String, default="published", index=True)
    created_by = Column(String, index=True)
    published_at = Column(DateTime, default=datetime.utcnow, index=True)
    submission_deadline = Column(DateTime)
    view_count = Column(Integer, default=0, nullable=False)
    proposal_count = Column(Integer, default=0, nullable=False)
    vector = Column(LargeBinary)  # VECTOR_DIMENSIONS float64 values
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    proposals = relationship("ProposalDB", back_populates="tender", cascade="all, delete-orphan")

    __table_args__ = (
        Index('idx_tender_status_published', 'status', 'published_at'),
        Index('idx_tender_category_status', 'category', 'status'),
    )

    def searchable_text(self) -> str:
        """Title, description and requirements joined: the text the stored vector is built from."""
        parts = [self.title or "", self.description or ""] + [str(r) for r in (self.requirements or [])]
        return " ".join(part for part in parts if part)

    def refresh_vector(self) -> None:
        self.vector = serialize_vector(_vectorizer.vectorize(self.searchable_text()))

    def to_document(self) -> Document:
        return Document(
            id=self.id,
            kind="tender",
            text=self.searchable_text(),
            vector=deserialize_vector(self.vector),
            updated_at=self.updated_at,
            title=self.title,
            category=self.category,
            value=self.estimated_value,
            location=self.location,
            requirements=tuple(self.requirements or ()),
            published_at=self.published_at,
            view_count=self.view_count or 0,
            proposal_count=self.proposal_count or 0,
        )

    def to_frontend_format(self) -> Dict[str, Any]:
        """Convert to frontend-compatible format."""

        return {
            'id': self.id,
            'title': self.title or '',
            'description': self.description or '',
            'requirements': self.requirements or [],
            'category': self.category or '',
            'estimated_value': self.estimated_value,
            'currency': self.currency,
            'location': self.location or '',
            'status': self.status,
            'published_at': _isoformat(self.published_at),
            'submission_deadline': _isoformat(self.submission_deadline),
            'view_count': self.view_count or 0,
            'proposal_count': self.proposal_count or 0,
            'updated_at': _isoformat(self.updated_at),
        }


class ProposalDB(Base):
    """SQLAlchemy model for proposals submitted against a tender."""

    __tablename__ = "proposals"

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    tender_id = Column(String, ForeignKey("tenders.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)
    executive_summary = Column(Text, nullable=False, default="")
    solution_description = Column(Text, default="")
    status = Column(String, default="draft", index=True)
    vector = Column(LargeBinary)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    tender = relationship("TenderDB", back_populates="proposals")

    def searchable_text(self) -> str:
        return " ".join(part for part in (self.executive_summary or "", self.solution_description or "") if part)

    def refresh_vector(self) -> None:
        self.vector = serialize_vector(_vectorizer.vectorize(self.searchable_text()))

    def to_document(self) -> Document:
        return Document(
            id=self.id,
            kind="proposal",
            text=self.searchable_text(),
            vector=deserialize_vector(self.vector),
            updated_at=self.updated_at,
            published_at=self.created_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'tender_id': self.tender_id,
            'user_id': self.user_id,
            'executive_summary': self.executive_summary or '',
            'solution_description': self.solution_description or '',
            'status': self.status,
            'created_at': _isoformat(self.created_at),
            'updated_at': _isoformat(self.updated_at),
        }


class RecommendationPreferenceDB(Base):
    """Per-user recommendation preferences."""

    __tablename__ = "recommendation_preferences"

    user_id = Column(String, primary_key=True, index=True)
    categories = Column(JSON, default=list)
    keywords = Column(JSON, default=list)
    exclude_keywords = Column(JSON, default=list)
    budget_min = Column(Float)
    budget_max = Column(Float)
    locations = Column(JSON, default=list)
    min_match_score = Column(Float, default=0.0, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_preference(self) -> Preference:
        budget = None
        if self.budget_min is not None or self.budget_max is not None:
            budget = BudgetRange(min=self.budget_min, max=self.budget_max)
        return Preference(
            user_id=self.user_id,
            categories=tuple(self.categories or ()),
            keywords=tuple(self.keywords or ()),
            exclude_keywords=tuple(self.exclude_keywords or ()),
            budget_range=budget,
            locations=tuple(self.locations or ()),
            min_match_score=self.min_match_score or 0.0,
        )

    def apply(self, preference: Preference) -> None:
        """Copy a normalized Preference onto this row."""
        self.categories = list(preference.categories)
        self.keywords = list(preference.keywords)
        self.exclude_keywords = list(preference.exclude_keywords)
        self.locations = list(preference.locations)
        self.min_match_score = preference.min_match_score
        if preference.budget_range is None:
            self.budget_min = None
            self.budget_max = None
        else:
            self.budget_min = preference.budget_range.min
            self.budget_max = preference.budget_range.max


def create_tables():
    """Create all database tables."""
    Base.metadata.create_all(bind=engine)


def load_tender_pool(
    db: Session,
    statuses: Iterable[str] = ACTIVE_TENDER_STATUSES,
    limit: int = config.RECOMMENDATION_POOL_LIMIT,
    category: Optional[str] = None,
) -> List[Document]:
    """Newest tenders in the given statuses as Documents, capped at ``limit``."""
    query = db.query(TenderDB).filter(TenderDB.status.in_(list(statuses)))
    if category:
        query = query.filter(TenderDB.category == category)
    tenders = query.order_by(TenderDB.published_at.desc(), TenderDB.id).limit(limit).all()
    return [tender.to_document() for tender in tenders]


def load_proposal_pool(db: Session, limit: int = config.RECOMMENDATION_POOL_LIMIT) -> List[Document]:
    proposals = db.query(ProposalDB).order_by(ProposalDB.created_at.desc(), ProposalDB.id).limit(limit).all()
    return [proposal.to_document() for proposal in proposals]
