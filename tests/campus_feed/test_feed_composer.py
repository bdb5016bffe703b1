"""Tests for feed pagination and personalization."""

import asyncio
import json
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from campus_feed.feed_composer import FeedComposer
from campus_feed.models import ContentItem, ContentType, FeedRequest
from campus_feed.ranking import RankingOrchestrator


class ReversingGateway:
    """Ranks items in reverse of the order they were sent."""

    def __init__(self):
        self.calls = 0

    async def acomplete(self, template_path, params):
        self.calls += 1
        items = json.loads(params["items"])
        return json.dumps([entry["id"] for entry in reversed(items)])


@pytest.fixture
def gateway():
    return ReversingGateway()


@pytest.fixture
def composer(temp_db, gateway):
    return FeedComposer(temp_db, RankingOrchestrator(gateway, timeout_seconds=1.0))


def add_items(db, count, content_type=ContentType.NEWS):
    return [
        db.add_content_item(ContentItem(title=f"{content_type.value} {i}", type=content_type))
        for i in range(count)
    ]


def compose(composer, **kwargs):
    return asyncio.run(composer.compose(FeedRequest(**kwargs)))


class TestPagination:
    """Tests for page/limit handling and the has_more flag."""

    def test_pages_are_newest_first(self, temp_db, composer):
        ids = add_items(temp_db, 5)

        page = compose(composer, page=1, limit=2)

        assert [item.id for item in page.items] == [ids[4], ids[3]]
        assert page.has_more is True

    def test_short_last_page_has_no_more(self, temp_db, composer):
        ids = add_items(temp_db, 5)

        page = compose(composer, page=3, limit=2)

        assert [item.id for item in page.items] == [ids[0]]
        assert page.has_more is False

    def test_full_page_on_exact_boundary_reports_more(self, temp_db, composer):
        add_items(temp_db, 4)

        page = compose(composer, page=2, limit=2)
        next_page = compose(composer, page=3, limit=2)

        assert len(page.items) == 2
        assert page.has_more is True
        assert next_page.items == []
        assert next_page.has_more is False

    @pytest.mark.parametrize("limit", [1, 3, 7, 20])
    def test_page_never_exceeds_limit(self, temp_db, composer, limit):
        add_items(temp_db, 10)

        for page_number in range(1, 12):
            page = compose(composer, page=page_number, limit=limit)
            assert len(page.items) <= limit
            assert page.has_more == (len(page.items) == limit)

    def test_type_filter(self, temp_db, composer):
        add_items(temp_db, 3, ContentType.NEWS)
        activity_ids = add_items(temp_db, 2, ContentType.ACTIVITY)

        page = compose(composer, page=1, limit=20, type=ContentType.ACTIVITY)

        assert sorted(item.id for item in page.items) == sorted(activity_ids)
        assert page.has_more is False

    def test_items_carry_tags(self, temp_db, composer):
        temp_db.add_content_item(ContentItem(title="Tagged", type=ContentType.NEWS, tags=["Social", "Dining"]))

        page = compose(composer)

        assert sorted(page.items[0].tags) == ["Dining", "Social"]


class TestPersonalization:
    """Tests for ranking of pages for signed-in viewers."""

    def test_anonymous_feed_is_not_ranked(self, temp_db, composer, gateway):
        ids = add_items(temp_db, 3)

        page = compose(composer, limit=3)

        assert [item.id for item in page.items] == list(reversed(ids))
        assert gateway.calls == 0

    def test_viewer_feed_is_ranked(self, temp_db, composer, gateway):
        ids = add_items(temp_db, 3)
        user_id = temp_db.add_user("ana", "hash", study_program="Design")

        page = compose(composer, limit=3, user_id=user_id)

        assert [item.id for item in page.items] == ids
        assert gateway.calls == 1

    def test_unknown_viewer_gets_unranked_feed(self, temp_db, composer, gateway):
        ids = add_items(temp_db, 3)

        page = compose(composer, limit=3, user_id=999)

        assert [item.id for item in page.items] == list(reversed(ids))
        assert gateway.calls == 0

    def test_profile_lookup_failure_gets_unranked_feed(self, temp_db, composer, gateway):
        ids = add_items(temp_db, 3)
        user_id = temp_db.add_user("ana", "hash")
        error = OperationalError("SELECT", {}, Exception("database is locked"))

        with patch.object(temp_db, "get_user_profile", side_effect=error):
            page = compose(composer, limit=3, user_id=user_id)

        assert [item.id for item in page.items] == list(reversed(ids))
        assert gateway.calls == 0

    def test_ranking_does_not_change_has_more(self, temp_db, composer):
        add_items(temp_db, 3)
        user_id = temp_db.add_user("ana", "hash")

        page = compose(composer, limit=3, user_id=user_id)

        assert page.has_more is True
