"""
Validation of requests arriving at the feed boundary.
"""

from typing import Any, Mapping, Optional, Tuple

from campus_feed.constants import MAX_INTEREST_TAG_LENGTH
from campus_feed.errors import RequestRejected
from campus_feed.models import ContentType, FeedRequest

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20
# Bounds of a SQLite INTEGER column or OFFSET
MAX_SQL_INTEGER = 2 ** 63 - 1


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _to_int(value: Any, message: str) -> int:
    if isinstance(value, bool):
        raise RequestRejected(message)
    if isinstance(value, float) and not value.is_integer():
        raise RequestRejected(message)
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        raise RequestRejected(message) from None
    if not -MAX_SQL_INTEGER - 1 <= number <= MAX_SQL_INTEGER:
        raise RequestRejected(message)
    return number


def _positive_int(value: Any, name: str, default: int) -> int:
    if _is_missing(value):
        return default
    number = _to_int(value, f"{name} must be a positive integer")
    if number < 1:
        raise RequestRejected(f"{name} must be a positive integer")
    return number


def _identifier(value: Any, name: str) -> int:
    if _is_missing(value):
        raise RequestRejected(f"{name} is required")
    return _to_int(value, f"{name} must be an integer id")


def parse_feed_request(params: Mapping[str, Any]) -> FeedRequest:
    """Parse feed query parameters (page, limit, type, userId)."""
    content_type: Optional[ContentType] = None
    raw_type = params.get("type")
    if not _is_missing(raw_type):
        try:
            content_type = ContentType(raw_type)
        except ValueError:
            raise RequestRejected(
                f'Invalid type: {raw_type}. Must be either "activity" or "news".'
            ) from None

    page = _positive_int(params.get("page"), "page", DEFAULT_PAGE)
    limit = _positive_int(params.get("limit"), "limit", DEFAULT_LIMIT)
    if (page - 1) * limit > MAX_SQL_INTEGER:
        raise RequestRejected("page is out of range")

    user_id = params.get("userId")
    return FeedRequest(
        page=page,
        limit=limit,
        type=content_type,
        user_id=None if _is_missing(user_id) else _identifier(user_id, "userId"),
    )


def validate_registration(user_id: Any, event_id: Any) -> Tuple[int, int]:
    """Check a registration write; both ids are required."""
    if _is_missing(user_id) or _is_missing(event_id):
        raise RequestRejected("userId and eventId are required")
    return _identifier(user_id, "userId"), _identifier(event_id, "eventId")


def validate_interest(user_id: Any, tag: Any) -> Tuple[int, str]:
    """Check an interest write; the tag is trimmed and capped in length."""
    if _is_missing(user_id) or _is_missing(tag):
        raise RequestRejected("userId and tag are required")
    if not isinstance(tag, str):
        raise RequestRejected("tag must be a string")
    tag = tag.strip()
    if len(tag) > MAX_INTEREST_TAG_LENGTH:
        raise RequestRejected(f"tag must be at most {MAX_INTEREST_TAG_LENGTH} characters")
    return _identifier(user_id, "userId"), tag


def parse_user_id(user_id: Any) -> int:
    return _identifier(user_id, "userId")
