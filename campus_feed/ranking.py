"""
Personalized ordering of a feed page, requested from the LLM under a hard time budget.
"""

import asyncio
import functools
import json
from collections import defaultdict, deque
from typing import Any, Iterable, List, Optional

from campus_feed.constants import PROMPTS_DIR
from campus_feed.models import ContentItem, ContentType, UserProfile
from llm.llm_util import GatewayError, InferenceGateway, parse_json_response
from util.logging_util import setup_logger

logger = setup_logger(__name__)

RANK_FEED_TEMPLATE = PROMPTS_DIR / "rank_feed.jinja2"

# Slot value used when the timer settles the race before the call does
_TIMED_OUT = object()


def build_profile_payload(profile: UserProfile, registered_items: Iterable[ContentItem]) -> dict:
    """Compact description of the viewer sent along with the items to rank."""
    return {
        "university": profile.university,
        "program": profile.study_program,
        "year": profile.year_on_study_program,
        "interests": list(profile.interests),
        "registered_events": [{"title": item.title, "tags": item.tags} for item in registered_items],
    }


def build_item_payload(items: Iterable[ContentItem]) -> List[dict]:
    """Compact description of the items to rank."""
    return [
        {
            "id": item.id,
            "title": item.title,
            "summary": item.summary,
            "tags": item.tags,
            "type": item.type.value,
            "date": item.event_date if item.type == ContentType.ACTIVITY else item.publication_date,
        }
        for item in items
    ]


def _normalize_id(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def parse_ranked_ids(response: str) -> List[Any]:
    """
    Parse a ranking response into a list of ids.

    Integer-like entries (including numeric strings) are converted to int;
    anything else is kept as-is and will match no item.

    Raises:
        ValueError: if the response is not a JSON array.
    """
    ranked = parse_json_response(response)
    if not isinstance(ranked, list):
        raise ValueError(f"Expected a JSON array of ids, got {type(ranked).__name__}")
    result = []
    for value in ranked:
        normalized = _normalize_id(value)
        result.append(value if normalized is None else normalized)
    return result


def merge_ranked_order(items: List[ContentItem], ranked_ids: Optional[List[Any]]) -> List[ContentItem]:
    """
    Reorder items by a suggested id order without losing or duplicating any.

    Ranked ids are walked in order; each one that matches an item still in
    the pool moves that item to the front section. Unknown and repeated ids
    are ignored. Items the ranking did not mention follow in their original
    relative order. An empty or missing ranking leaves the order untouched.
    """
    if not ranked_ids:
        return list(items)

    positions = defaultdict(deque)
    for index, item in enumerate(items):
        positions[item.id].append(index)

    front = []
    taken = set()
    for ranked_id in ranked_ids:
        try:
            candidates = positions.get(ranked_id)
        except TypeError:
            # Unhashable garbage (lists, dicts) from the model
            continue
        if candidates:
            index = candidates.popleft()
            taken.add(index)
            front.append(items[index])

    rest = [item for index, item in enumerate(items) if index not in taken]
    return front + rest


class RankingOrchestrator:
    """
    Reorders the first prefix_size items of a page for one viewer.

    A single inference call is raced against a timer. Whichever settles
    first fills a one-shot result slot; the other outcome is dropped. The
    inference call is never cancelled, only abandoned, so a late response
    still arrives but has no effect. Any failure or timeout keeps the
    original order.
    """

    def __init__(self, gateway: InferenceGateway, timeout_seconds: float = 2.5, prefix_size: int = 10):
        self.gateway = gateway
        self.timeout_seconds = timeout_seconds
        self.prefix_size = prefix_size
        # Abandoned calls stay referenced here until they finish
        self._in_flight = set()

    @staticmethod
    def _fill(slot: asyncio.Future, value) -> bool:
        if slot.done():
            return False
        slot.set_result(value)
        return True

    def _settle_call(self, slot: asyncio.Future, call: asyncio.Future):
        self._in_flight.discard(call)
        if call.cancelled():
            value = GatewayError("Ranking call was cancelled")
        elif call.exception() is not None:
            value = call.exception()
        else:
            value = call.result()

        if not self._fill(slot, value):
            logger.debug("Discarding ranking response that arrived after the timeout")

    async def _race(self, params: dict):
        loop = asyncio.get_running_loop()
        slot = loop.create_future()

        call = asyncio.ensure_future(self.gateway.acomplete(RANK_FEED_TEMPLATE, params))
        self._in_flight.add(call)
        call.add_done_callback(functools.partial(self._settle_call, slot))
        timer = loop.call_later(self.timeout_seconds, self._fill, slot, _TIMED_OUT)

        try:
            return await slot
        finally:
            timer.cancel()

    async def request_ranking(
        self,
        profile: UserProfile,
        registered_items: List[ContentItem],
        items: List[ContentItem],
    ) -> Optional[List[Any]]:
        """
        Ask the gateway for a relevance order of the given items.

        Returns:
            The suggested id order, or None if the call failed, timed out or
            returned something that is not a list of ids.
        """
        params = {
            "profile": json.dumps(build_profile_payload(profile, registered_items), ensure_ascii=False),
            "items": json.dumps(build_item_payload(items), ensure_ascii=False),
        }

        outcome = await self._race(params)
        if outcome is _TIMED_OUT:
            logger.warning(f"Ranking timed out after {self.timeout_seconds}s for user {profile.id}")
            return None
        if isinstance(outcome, BaseException):
            logger.error(f"Error ranking feed for user {profile.id}: {outcome}")
            return None

        try:
            return parse_ranked_ids(outcome)
        except ValueError as e:
            # json.JSONDecodeError is a ValueError
            logger.error(f"Failed to parse ranking response: {e}")
            return None

    async def rank(
        self,
        profile: UserProfile,
        registered_items: List[ContentItem],
        items: List[ContentItem],
    ) -> List[ContentItem]:
        """Return the page with its first prefix_size items reordered for the viewer."""
        if len(items) < 2:
            return list(items)

        head, tail = list(items[: self.prefix_size]), list(items[self.prefix_size:])
        ranked_ids = await self.request_ranking(profile, registered_items, head)
        return merge_ranked_order(head, ranked_ids) + tail
