"""
Decides whether a previous ingestion run left the store complete enough to skip re-ingesting.
"""

from campus_feed.database import Database
from campus_feed.models import ContentType, GuardDecision
from util.logging_util import setup_logger

logger = setup_logger(__name__)


class IngestionGuard:
    """
    Count-and-ratio completeness check run before each ingestion.

    With more than min_items stored items and at least min_activity_ratio
    of them activities, the store is considered complete and ingestion is
    skipped. With enough items but too few activities, all content is wiped
    (tags and registrations included, so earlier enrichment is lost) and
    ingestion starts over. Small stores are simply ingested into.
    """

    def __init__(self, db: Database, min_items: int = 20, min_activity_ratio: float = 0.2):
        self.db = db
        self.min_items = min_items
        self.min_activity_ratio = min_activity_ratio

    def evaluate(self) -> GuardDecision:
        try:
            removed = self.db.delete_malformed_items()
            if removed:
                logger.info(f"Removed {removed} malformed items")

            total = self.db.count_content()
            if total <= self.min_items:
                logger.info(f"Store has {total} items, ingesting")
                return GuardDecision.INGEST

            activities = self.db.count_content(ContentType.ACTIVITY)
        except Exception as e:
            logger.error(f"Could not check existing content, ingesting: {e}")
            return GuardDecision.INGEST

        ratio = activities / total
        logger.info(f"Store populated ({total} items, {activities} activities, ratio {ratio:.2f})")
        if ratio < self.min_activity_ratio:
            logger.info("Not enough activities, wiping content to re-ingest")
            self.db.clear_content()
            return GuardDecision.WIPE_AND_INGEST

        logger.info("Store OK, skipping ingestion")
        return GuardDecision.SKIP
