"""
Bulk CSV import of news and activity records into content item drafts.
"""

import csv
import random
import re
from dataclasses import dataclass
from datetime import date, timedelta
from pathlib import Path
from typing import Dict, List, Optional

from campus_feed.constants import (
    DEFAULT_SOURCE,
    FALLBACK_IMAGES,
    MISSING_VALUE_SENTINEL,
    SOURCE_LINK_PREFIX,
)
from campus_feed.models import ContentItem, ContentType
from util.logging_util import setup_logger

logger = setup_logger(__name__)

DEFAULT_ACTIVITY_SAMPLING_RATE = 0.3

# Synthesized event dates fall within this many days from today
SYNTHETIC_EVENT_WINDOW_DAYS = 90

JUNK_TITLE_MARKER = "Ver actividadesarrow_forward"


@dataclass
class ColumnMapping:
    """Header names of the news export."""
    title: str = "Titulo"
    summary: str = "Resumen breve"
    body: str = "Contenido completo"
    event_date: str = "Fecha del evento"
    publication_date: str = "Fecha publicación"
    source: str = "Fuentes/origen"
    link: str = "Link original"


@dataclass
class ActivityColumnMapping:
    """Header names of the activities export."""
    title: str = "Titulo"
    link: str = "Link original"
    location: str = "Ubicación"
    requirements: str = "Requisitos / Público de interés"


DEFAULT_COLUMNS = ColumnMapping()
DEFAULT_ACTIVITY_COLUMNS = ActivityColumnMapping()


def load_records(csv_path: Path) -> List[Dict[str, str]]:
    """Read a CSV export into a list of dicts keyed by header.

    A UTF-8 byte order mark is tolerated and blank lines are skipped.
    """
    with open(csv_path, "r", encoding="utf-8-sig", newline="") as f:
        reader = csv.DictReader(f)
        return [row for row in reader if any((v or "").strip() for v in row.values())]


def _value(record: Dict[str, str], column: str) -> Optional[str]:
    """Return a stripped field value, or None if it is absent, blank or N/A."""
    value = record.get(column)
    if value is None:
        return None
    value = value.strip()
    if not value or value == MISSING_VALUE_SENTINEL:
        return None
    return value


def _is_past_date(value: str, today: date) -> bool:
    """True only for an ISO date strictly before today; free-text dates are kept."""
    try:
        return date.fromisoformat(value[:10]) < today
    except ValueError:
        return False


def _synthesize_event_date(rng: random.Random, today: date, min_days: int = 0) -> str:
    offset = rng.randint(min_days, SYNTHETIC_EVENT_WINDOW_DAYS - 1 + min_days)
    return (today + timedelta(days=offset)).isoformat()


def build_body(text: Optional[str], link: Optional[str]) -> str:
    """Body text followed by a reference to the original article."""
    body = text or ""
    if link:
        body += f"\n\n{SOURCE_LINK_PREFIX}{link}"
    return body


def record_to_draft(
    record: Dict[str, str],
    rng: random.Random,
    today: Optional[date] = None,
    columns: ColumnMapping = DEFAULT_COLUMNS,
    sampling_rate: float = DEFAULT_ACTIVITY_SAMPLING_RATE,
) -> Optional[ContentItem]:
    """
    Turn one news export record into a content item draft.

    A record with a declared upcoming event date becomes an activity. Records
    without one are turned into activities at random with probability
    sampling_rate, so the feed always carries some activities; pass 0.0 to
    disable this.

    Args:
        record: CSV row keyed by header.
        rng: Random source for activity sampling and image choice.
        today: Reference date; defaults to date.today().
        columns: Header names of the export.
        sampling_rate: Probability of reclassifying a dateless record.

    Returns:
        The draft, or None if the record has no title.
    """
    today = today or date.today()

    title = _value(record, columns.title)
    if title is None:
        return None

    event_date = _value(record, columns.event_date)
    if event_date is not None and _is_past_date(event_date, today):
        event_date = None

    if event_date is None and rng.random() < sampling_rate:
        event_date = _synthesize_event_date(rng, today)

    link = _value(record, columns.link)

    return ContentItem(
        title=title,
        summary=_value(record, columns.summary) or title,
        body=build_body(_value(record, columns.body), link),
        source=_value(record, columns.source) or DEFAULT_SOURCE,
        publication_date=_value(record, columns.publication_date) or today.isoformat(),
        event_date=event_date,
        image_url=rng.choice(FALLBACK_IMAGES),
        type=ContentType.ACTIVITY if event_date is not None else ContentType.NEWS,
    )


def _title_from_link(link: str) -> str:
    # .../cine-recobrado -> Cine Recobrado
    slug = [part for part in link.split("/") if part][-1]
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), slug.replace("-", " "))


def activity_record_to_draft(
    record: Dict[str, str],
    rng: random.Random,
    today: Optional[date] = None,
    columns: ActivityColumnMapping = DEFAULT_ACTIVITY_COLUMNS,
) -> Optional[ContentItem]:
    """
    Turn one activities export record into an activity draft.

    The export carries no usable dates, so the event date is set 1 to 90
    days ahead. Records without a link are dropped.
    """
    today = today or date.today()

    link = _value(record, columns.link)
    if link is None:
        return None

    title = _value(record, columns.title)
    if title is None or JUNK_TITLE_MARKER in title:
        title = _title_from_link(link)

    lines = []
    location = _value(record, columns.location)
    if location:
        lines.append(f"Ubicación: {location}")
    requirements = _value(record, columns.requirements)
    if requirements:
        lines.append(f"Requisitos: {requirements}")
    body = build_body("\n".join(lines), link).strip()

    return ContentItem(
        title=title,
        summary=title,
        body=body,
        source=DEFAULT_SOURCE,
        publication_date=today.isoformat(),
        event_date=_synthesize_event_date(rng, today, min_days=1),
        image_url=rng.choice(FALLBACK_IMAGES),
        type=ContentType.ACTIVITY,
    )


def load_drafts(
    csv_path: Path,
    rng: Optional[random.Random] = None,
    today: Optional[date] = None,
    columns: ColumnMapping = DEFAULT_COLUMNS,
    sampling_rate: float = DEFAULT_ACTIVITY_SAMPLING_RATE,
) -> List[ContentItem]:
    """Load every non-empty record of a news export as a draft."""
    rng = rng or random.Random()
    drafts = []
    for record in load_records(csv_path):
        draft = record_to_draft(record, rng, today, columns, sampling_rate)
        if draft is not None:
            drafts.append(draft)
    logger.info(f"Loaded {len(drafts)} drafts from {csv_path}")
    return drafts


def load_activity_drafts(
    csv_path: Path,
    rng: Optional[random.Random] = None,
    today: Optional[date] = None,
    columns: ActivityColumnMapping = DEFAULT_ACTIVITY_COLUMNS,
) -> List[ContentItem]:
    """Load every record with a link from an activities export as a draft."""
    rng = rng or random.Random()
    drafts = []
    for record in load_records(csv_path):
        draft = activity_record_to_draft(record, rng, today, columns)
        if draft is not None:
            drafts.append(draft)
    logger.info(f"Loaded {len(drafts)} activity drafts from {csv_path}")
    return drafts
