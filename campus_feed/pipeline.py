"""
Ingestion pipeline: guard, load, then enrich and persist one item at a time.
"""

import random
from datetime import date
from pathlib import Path
from typing import Callable, List, Optional

from campus_feed.article_fetcher import ArticleContent, extract_source_link, fetch_article
from campus_feed.config import Settings
from campus_feed.constants import MIN_SUMMARY_SOURCE_CHARS
from campus_feed.database import Database
from campus_feed.enrichment import EnrichmentWorker
from campus_feed.ingestion_guard import IngestionGuard
from campus_feed.models import ContentItem, GuardDecision, IngestionReport, ItemOutcome
from campus_feed.source_loader import load_activity_drafts, load_drafts
from util.logging_util import log_item_outcome, setup_logger

logger = setup_logger(__name__)

ArticleFetcher = Callable[..., Optional[ArticleContent]]


class IngestionPipeline:
    """
    Sequential ingestion of CSV exports into the store.

    Each item goes through enrich (article fetch, summary, tags) and then
    persist, ending with an explicit ItemOutcome. A failing item is logged
    and skipped; the batch always runs to the end. Not re-entrant: run it
    once per process.
    """

    def __init__(
        self,
        db: Database,
        worker: EnrichmentWorker,
        guard: IngestionGuard,
        settings: Optional[Settings] = None,
        fetcher: ArticleFetcher = fetch_article,
        rng: Optional[random.Random] = None,
        today: Optional[date] = None,
    ):
        self.db = db
        self.worker = worker
        self.guard = guard
        self.settings = settings or Settings()
        self.fetcher = fetcher
        self.rng = rng or random.Random()
        self.today = today

    def load(self, news_csv: Optional[Path], activities_csv: Optional[Path] = None) -> List[ContentItem]:
        """Load drafts from the news export and, if given, the activities export."""
        drafts = []
        if news_csv is not None:
            if news_csv.exists():
                drafts.extend(load_drafts(
                    news_csv,
                    rng=self.rng,
                    today=self.today,
                    sampling_rate=self.settings.activity_sampling_rate,
                ))
            else:
                logger.error(f"CSV file not found at: {news_csv}")
        if activities_csv is not None:
            if activities_csv.exists():
                drafts.extend(load_activity_drafts(activities_csv, rng=self.rng, today=self.today))
            else:
                logger.error(f"CSV file not found at: {activities_csv}")
        return drafts

    def _fetch(self, item: ContentItem) -> Optional[ArticleContent]:
        if not self.settings.fetch_articles:
            return None
        link = extract_source_link(item.body)
        if link is None:
            return None
        return self.fetcher(link, timeout=self.settings.article_fetch_timeout_seconds)

    def enrich(self, item: ContentItem) -> ItemOutcome:
        """Fill in image, summary and tags of a draft in place."""
        article = self._fetch(item)
        if article is not None and article.image_url:
            item.image_url = article.image_url

        if self.settings.summarize_on_ingest:
            source_text = article.text if article is not None else (item.body or "")
            if len(source_text) > MIN_SUMMARY_SOURCE_CHARS:
                summary = self.worker.generate_summary(source_text)
                if summary:
                    item.summary = summary

        outcome = self.worker.generate_tags(item)
        item.tags = outcome.tags
        return outcome.status

    def persist(self, item: ContentItem) -> int:
        item.id = self.db.add_content_item(item)
        return item.id

    def process_item(self, item: ContentItem) -> ItemOutcome:
        try:
            outcome = self.enrich(item)
            self.persist(item)
        except Exception as e:
            logger.error(f"Failed to ingest \"{item.title}\": {e}")
            log_item_outcome(logger, item.id, item.title, ItemOutcome.SKIPPED.value)
            return ItemOutcome.SKIPPED

        log_item_outcome(logger, item.id, item.title, outcome.value, item.tags)
        return outcome

    def run(self, news_csv: Optional[Path], activities_csv: Optional[Path] = None) -> IngestionReport:
        """
        Run one ingestion pass.

        Returns:
            IngestionReport with the guard decision and per-outcome counts.
        """
        decision = self.guard.evaluate()
        report = IngestionReport(decision=decision)
        if decision == GuardDecision.SKIP:
            return report

        drafts = self.load(news_csv, activities_csv)
        report.loaded = len(drafts)
        logger.info(f"Found {len(drafts)} records to process")

        for draft in drafts:
            report.record(self.process_item(draft))

        logger.info(
            f"Ingestion finished: {report.enriched} enriched, "
            f"{report.fallback} fallback, {report.skipped} skipped"
        )
        return report

    def refresh_existing(self) -> int:
        """
        Re-fetch the linked article of every stored item and refresh its
        summary and image from it.

        Returns the number of items that changed.
        """
        updated = 0
        for item in self.db.list_content():
            link = extract_source_link(item.body)
            if link is None:
                logger.debug(f"Skipping item {item.id}: no link found in body")
                continue

            article = self.fetcher(link, timeout=self.settings.article_fetch_timeout_seconds)
            if article is None:
                logger.info(f"Could not fetch article for item {item.id}")
                continue

            changed = False
            if article.image_url and article.image_url != item.image_url:
                self.db.update_image(item.id, article.image_url)
                changed = True

            if len(article.text) > MIN_SUMMARY_SOURCE_CHARS:
                summary = self.worker.generate_summary(article.text)
                if summary:
                    self.db.update_summary(item.id, summary)
                    changed = True
            else:
                logger.info(f"Could not extract sufficient text for item {item.id}")

            if changed:
                updated += 1
                logger.info(f"Refreshed item {item.id}")

        logger.info(f"Refreshed {updated} items")
        return updated
