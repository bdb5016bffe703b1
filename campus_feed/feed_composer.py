"""
Paginated feed reads, personalized for signed-in viewers.
"""

import asyncio

from sqlalchemy.exc import SQLAlchemyError

from campus_feed.database import Database
from campus_feed.models import FeedPage, FeedRequest
from campus_feed.ranking import RankingOrchestrator
from util.logging_util import setup_logger

logger = setup_logger(__name__)


class FeedComposer:
    def __init__(self, db: Database, orchestrator: RankingOrchestrator):
        self.db = db
        self.orchestrator = orchestrator

    async def compose(self, request: FeedRequest) -> FeedPage:
        """
        Build one feed page.

        Items come newest first, filtered by type when requested. When a
        viewer is given, the page goes through the ranking orchestrator.
        has_more is True whenever the page is full, even if the next page
        turns out empty.
        """
        items = await asyncio.to_thread(
            self.db.list_content, request.page, request.limit, request.type
        )

        if request.user_id is not None and items:
            items = await self._personalize(request.user_id, items)

        return FeedPage(
            items=items,
            page=request.page,
            limit=request.limit,
            has_more=len(items) == request.limit,
        )

    async def _personalize(self, user_id, items):
        try:
            profile = await asyncio.to_thread(self.db.get_user_profile, user_id)
            event_ids = [r.event_id for r in profile.registrations] if profile else []
            registered_items = await asyncio.to_thread(self.db.get_content_items, event_ids)
        except SQLAlchemyError as e:
            logger.error(f"Error loading profile of user {user_id}, serving unranked feed: {e}")
            return items

        if profile is None:
            logger.warning(f"Unknown user {user_id}, serving unranked feed")
            return items

        return await self.orchestrator.rank(profile, registered_items, items)
