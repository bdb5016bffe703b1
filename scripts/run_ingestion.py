#!/usr/bin/env python3
"""CLI for running the feed ingestion pipeline outside the web server.

Usage:
    python scripts/run_ingestion.py
    python scripts/run_ingestion.py --news-csv noticias.csv --activities-csv eventos.csv
    python scripts/run_ingestion.py --refresh
    python scripts/run_ingestion.py --settings path/to/settings.yaml --no-fetch
"""

import argparse
import sys
from pathlib import Path

# Add repo root to path so we can import project modules
REPO_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(REPO_ROOT))


def main():
    from campus_feed.config import load_settings, resolve_path
    from campus_feed.constants import SETTINGS_PATH
    from campus_feed.service import CampusFeedService

    parser = argparse.ArgumentParser(description="Ingest CSV exports into the campus feed")
    parser.add_argument("--settings", type=Path, default=SETTINGS_PATH, help="Settings YAML file")
    parser.add_argument("--news-csv", help="News export to ingest (overrides settings)")
    parser.add_argument("--activities-csv", help="Activities export to ingest (overrides settings)")
    parser.add_argument("--no-fetch", action="store_true", help="Do not download original articles")
    parser.add_argument("--refresh", action="store_true",
                        help="Refresh summaries and images of stored items instead of ingesting")
    args = parser.parse_args()

    settings = load_settings(args.settings)
    if args.news_csv:
        settings.news_csv = args.news_csv
    if args.activities_csv:
        settings.activities_csv = args.activities_csv
    if args.no_fetch:
        settings.fetch_articles = False

    service = CampusFeedService.from_settings(settings)

    if args.refresh:
        updated = service.pipeline.refresh_existing()
        print(f"Refreshed {updated} items.")
        return

    news_csv = resolve_path(settings.news_csv)
    activities_csv = resolve_path(settings.activities_csv)
    if news_csv is None and activities_csv is None:
        print("No CSV configured.", file=sys.stderr)
        sys.exit(1)

    report = service.run_ingestion()
    print(
        f"Decision: {report.decision.value}. Loaded {report.loaded}: "
        f"{report.enriched} enriched, {report.fallback} fallback, {report.skipped} skipped."
    )


if __name__ == "__main__":
    main()
