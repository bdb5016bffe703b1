"""
LLM-based tagging and summarization of content items.
"""

import json
import time
from typing import Callable, List, Optional

from campus_feed.constants import FALLBACK_TAG, PROMPTS_DIR, VALID_TAGS
from campus_feed.models import ContentItem, EnrichmentOutcome, ItemOutcome
from llm.llm_util import GatewayError, InferenceGateway, parse_json_response
from util.logging_util import setup_logger

logger = setup_logger(__name__)

TAG_ITEM_TEMPLATE = PROMPTS_DIR / "tag_item.jinja2"
SUMMARIZE_TEMPLATE = PROMPTS_DIR / "summarize.jinja2"


def filter_tags(candidates, vocabulary: List[str] = VALID_TAGS) -> List[str]:
    """Keep the candidates that belong to the vocabulary, without repeats."""
    return list(dict.fromkeys(t for t in candidates if isinstance(t, str) and t in vocabulary))


class EnrichmentWorker:
    """
    Asks the inference gateway for tags and summaries, one item at a time.

    Successive gateway calls are spaced by delay_seconds to stay within the
    provider's rate limits. Failures never propagate: tagging falls back to
    the single fallback tag and summarizing leaves the summary unchanged.
    """

    def __init__(
        self,
        gateway: InferenceGateway,
        delay_seconds: float = 4.5,
        sleep: Callable[[float], None] = time.sleep,
        summary_max_chars: int = 10000,
        summary_language: str = "Spanish",
    ):
        self.gateway = gateway
        self.delay_seconds = delay_seconds
        self.summary_max_chars = summary_max_chars
        self.summary_language = summary_language
        self._sleep = sleep
        self._calls_made = 0

    def _throttle(self):
        if self._calls_made > 0 and self.delay_seconds > 0:
            self._sleep(self.delay_seconds)
        self._calls_made += 1

    def generate_tags(self, item: ContentItem) -> EnrichmentOutcome:
        """
        Tag an item with labels from the closed vocabulary.

        Args:
            item: Draft or stored item; title, summary and body are sent.

        Returns:
            EnrichmentOutcome with status ENRICHED, or FALLBACK and the
            fallback tag when the call fails or yields nothing usable.
        """
        self._throttle()
        response = ""
        try:
            response = self.gateway.complete(
                TAG_ITEM_TEMPLATE,
                {
                    "valid_tags": json.dumps(VALID_TAGS, ensure_ascii=False),
                    "title": item.title,
                    "summary": item.summary or "",
                    "body": item.body or "",
                },
            )
            candidates = parse_json_response(response)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse tag response as JSON: {e}")
            logger.error(f"Response was: {response}")
            return EnrichmentOutcome(tags=[FALLBACK_TAG], status=ItemOutcome.FALLBACK)
        except GatewayError as e:
            logger.error(f"Error generating tags for '{item.title[:50]}': {e}")
            return EnrichmentOutcome(tags=[FALLBACK_TAG], status=ItemOutcome.FALLBACK)

        if not isinstance(candidates, list):
            logger.error(f"Tag response is not a list: {response}")
            return EnrichmentOutcome(tags=[FALLBACK_TAG], status=ItemOutcome.FALLBACK)

        tags = filter_tags(candidates)
        if not tags:
            logger.warning(f"No valid tags in response for '{item.title[:50]}': {candidates}")
            return EnrichmentOutcome(tags=[FALLBACK_TAG], status=ItemOutcome.FALLBACK)

        return EnrichmentOutcome(tags=tags, status=ItemOutcome.ENRICHED)

    def generate_summary(self, text: str) -> Optional[str]:
        """Summarize article text, truncated to summary_max_chars.

        Returns None when the call fails or the model returns nothing.
        """
        self._throttle()
        try:
            response = self.gateway.complete(
                SUMMARIZE_TEMPLATE,
                {
                    "text": text[: self.summary_max_chars],
                    "language": self.summary_language,
                },
            )
        except GatewayError as e:
            logger.error(f"Error generating summary: {e}")
            return None

        summary = response.strip()
        return summary or None
