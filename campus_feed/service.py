"""
Entry points used by the HTTP layer: startup ingestion, feed reads and profile writes.
"""

import random
import threading
from typing import Any, List, Mapping, Optional

from sqlalchemy.exc import IntegrityError

from campus_feed.config import Settings, load_settings, resolve_path
from campus_feed.database import Database
from campus_feed.enrichment import EnrichmentWorker
from campus_feed.errors import InvalidContentType, RequestRejected
from campus_feed.feed_composer import FeedComposer
from campus_feed.ingestion_guard import IngestionGuard
from campus_feed.models import ContentItem, FeedPage, IngestionReport, Interest, Registration
from campus_feed.pipeline import IngestionPipeline
from campus_feed.ranking import RankingOrchestrator
from campus_feed.suggestions import suggest_interests
from campus_feed.validation import (
    parse_feed_request,
    parse_user_id,
    validate_interest,
    validate_registration,
)
from llm.llm_util import InferenceGateway
from util.logging_util import setup_logger

logger = setup_logger(__name__)


class CampusFeedService:
    """Wires the persistence and inference gateways into the feed components."""

    def __init__(self, db: Database, gateway: InferenceGateway, settings: Optional[Settings] = None,
                 rng: Optional[random.Random] = None):
        self.db = db
        self.gateway = gateway
        self.settings = settings or Settings()

        worker = EnrichmentWorker(
            gateway,
            delay_seconds=self.settings.rate_limit_delay_seconds,
            summary_max_chars=self.settings.summary_max_input_chars,
            summary_language=self.settings.summary_language,
        )
        guard = IngestionGuard(
            db,
            min_items=self.settings.guard_min_items,
            min_activity_ratio=self.settings.guard_min_activity_ratio,
        )
        self.pipeline = IngestionPipeline(db, worker, guard, self.settings, rng=rng)
        self.composer = FeedComposer(
            db,
            RankingOrchestrator(
                gateway,
                timeout_seconds=self.settings.ranking_timeout_seconds,
                prefix_size=self.settings.ranking_prefix_size,
            ),
        )

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "CampusFeedService":
        settings = settings or load_settings()
        db = Database.from_url(settings.database_url)
        db.init_db()
        return cls(db, InferenceGateway(model_name=settings.model_name), settings)

    # Ingestion

    def run_ingestion(self) -> IngestionReport:
        return self.pipeline.run(
            resolve_path(self.settings.news_csv),
            resolve_path(self.settings.activities_csv),
        )

    def _run_ingestion_logged(self):
        try:
            self.run_ingestion()
        except Exception as e:
            logger.error(f"Ingestion fatal error: {e}")

    def start_background_ingestion(self) -> threading.Thread:
        """Run ingestion once in a daemon thread. Call at most once per process."""
        logger.info("Starting ingestion in background...")
        thread = threading.Thread(target=self._run_ingestion_logged, name="ingestion", daemon=True)
        thread.start()
        return thread

    # Feed

    async def get_feed(self, params: Mapping[str, Any]) -> FeedPage:
        return await self.composer.compose(parse_feed_request(params))

    def add_content(self, item: ContentItem) -> int:
        """Manually add an item; it is stored as given, without enrichment."""
        if not item.title or not item.title.strip():
            raise RequestRejected("title is required")
        try:
            return self.db.add_content_item(item)
        except InvalidContentType as e:
            raise RequestRejected(str(e)) from e

    # Profile writes

    def _require_user(self, user_id: int):
        if not self.db.user_exists(user_id):
            raise RequestRejected(f"Unknown user {user_id}", status_code=404)

    def register(self, user_id: Any, event_id: Any) -> Registration:
        user_id, event_id = validate_registration(user_id, event_id)
        self._require_user(user_id)
        if self.db.get_content_item(event_id) is None:
            raise RequestRejected(f"Unknown event {event_id}", status_code=404)
        try:
            return self.db.add_registration(user_id, event_id)
        except IntegrityError as e:
            raise RequestRejected("Already registered for this event", status_code=409) from e

    def add_interest(self, user_id: Any, tag: Any) -> Interest:
        user_id, tag = validate_interest(user_id, tag)
        self._require_user(user_id)
        try:
            return self.db.add_interest(user_id, tag)
        except IntegrityError as e:
            raise RequestRejected("Interest already added", status_code=409) from e

    def suggest_interests(self, user_id: Any) -> List[str]:
        user_id = parse_user_id(user_id)
        profile = self.db.get_user_profile(user_id)
        if profile is None:
            raise RequestRejected(f"Unknown user {user_id}", status_code=404)
        registered = self.db.get_content_items([r.event_id for r in profile.registrations])
        return suggest_interests(self.gateway, profile, registered)
