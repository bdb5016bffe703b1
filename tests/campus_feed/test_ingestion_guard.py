"""Tests for the re-ingestion guard."""

from unittest.mock import patch

from campus_feed.ingestion_guard import IngestionGuard
from campus_feed.models import ContentItem, ContentType, GuardDecision


def populate(db, total, activities):
    ids = []
    for i in range(total):
        content_type = ContentType.ACTIVITY if i < activities else ContentType.NEWS
        ids.append(db.add_content_item(ContentItem(
            title=f"Item {i}",
            type=content_type,
            event_date="2026-06-01" if content_type == ContentType.ACTIVITY else None,
            tags=["Academic"],
        )))
    return ids


class TestIngestionGuard:
    def test_low_activity_ratio_wipes_and_reingests(self, temp_db):
        populate(temp_db, total=25, activities=2)

        decision = IngestionGuard(temp_db).evaluate()

        assert decision == GuardDecision.WIPE_AND_INGEST
        assert temp_db.count_content() == 0

    def test_healthy_store_is_skipped(self, temp_db):
        populate(temp_db, total=25, activities=10)

        decision = IngestionGuard(temp_db).evaluate()

        assert decision == GuardDecision.SKIP
        assert temp_db.count_content() == 25

    def test_small_store_is_ingested_without_wipe(self, temp_db):
        populate(temp_db, total=20, activities=0)

        decision = IngestionGuard(temp_db).evaluate()

        assert decision == GuardDecision.INGEST
        assert temp_db.count_content() == 20

    def test_empty_store_is_ingested(self, temp_db):
        assert IngestionGuard(temp_db).evaluate() == GuardDecision.INGEST

    def test_wipe_discards_enrichment(self, temp_db):
        ids = populate(temp_db, total=25, activities=2)
        user_id = temp_db.add_user("ana", "hash")
        temp_db.add_registration(user_id, ids[0])

        IngestionGuard(temp_db).evaluate()

        assert temp_db.get_content_item(ids[0]) is None
        assert temp_db.get_registrations(user_id) == []
        with temp_db.session() as session:
            from sqlalchemy import func, select
            from campus_feed.orm_models import ContentTagORM
            assert session.execute(select(func.count(ContentTagORM.id))).scalar_one() == 0

    def test_malformed_rows_are_swept_before_counting(self, temp_db):
        populate(temp_db, total=21, activities=5)
        temp_db.add_content_item(ContentItem(title="N/A", type=ContentType.NEWS))
        temp_db.add_content_item(ContentItem(title="  ", type=ContentType.NEWS))

        decision = IngestionGuard(temp_db).evaluate()

        assert decision == GuardDecision.SKIP
        assert temp_db.count_content() == 21

    def test_thresholds_are_configurable(self, temp_db):
        populate(temp_db, total=6, activities=1)

        guard = IngestionGuard(temp_db, min_items=5, min_activity_ratio=0.5)

        assert guard.evaluate() == GuardDecision.WIPE_AND_INGEST

    def test_store_error_means_ingest(self, temp_db):
        with patch.object(temp_db, "count_content", side_effect=RuntimeError("db locked")):
            assert IngestionGuard(temp_db).evaluate() == GuardDecision.INGEST
