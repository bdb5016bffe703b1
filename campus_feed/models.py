"""
Data models for the campus feed.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class ContentType(Enum):
    NEWS = "news"
    ACTIVITY = "activity"


class ItemOutcome(Enum):
    """Result of running one content item through the ingestion stages."""
    ENRICHED = "enriched"
    FALLBACK = "fallback"
    SKIPPED = "skipped"


class GuardDecision(Enum):
    SKIP = "skip"
    INGEST = "ingest"
    WIPE_AND_INGEST = "wipe_and_ingest"


@dataclass
class ContentItem:
    """A single news or activity record shown in the feed."""
    title: str
    type: ContentType
    summary: Optional[str] = None
    body: str = ""
    source: str = ""
    publication_date: Optional[str] = None
    event_date: Optional[str] = None
    image_url: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    id: Optional[int] = None


@dataclass
class EnrichmentOutcome:
    """Tags derived for one item by a single tagging call."""
    tags: List[str]
    status: ItemOutcome


@dataclass
class Registration:
    """A user's sign-up for an activity."""
    user_id: int
    event_id: int
    registered_at: int
    id: Optional[int] = None


@dataclass
class Interest:
    user_id: int
    tag: str
    id: Optional[int] = None


@dataclass
class UserProfile:
    """Read-only view of a user used for ranking and suggestions."""
    id: int
    university: Optional[str] = None
    study_program: Optional[str] = None
    year_on_study_program: Optional[int] = None
    interests: List[str] = field(default_factory=list)
    registrations: List[Registration] = field(default_factory=list)


@dataclass
class FeedRequest:
    page: int = 1
    limit: int = 20
    type: Optional[ContentType] = None
    user_id: Optional[int] = None


@dataclass
class FeedPage:
    items: List[ContentItem]
    page: int
    limit: int
    has_more: bool


@dataclass
class IngestionReport:
    """Counts collected over one ingestion run."""
    decision: GuardDecision
    loaded: int = 0
    enriched: int = 0
    fallback: int = 0
    skipped: int = 0

    def record(self, outcome: ItemOutcome):
        if outcome == ItemOutcome.ENRICHED:
            self.enriched += 1
        elif outcome == ItemOutcome.FALLBACK:
            self.fallback += 1
        else:
            self.skipped += 1
