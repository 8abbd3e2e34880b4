# src/catalog_sync/cli.py

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from catalog_sync.config import Settings, get_project_root, load_settings
from catalog_sync.domain.models import RunSummary
from catalog_sync.reconcile.engine import ArtistSelection, ReconciliationEngine
from catalog_sync.reference.client import ReferenceServiceClient
from catalog_sync.store.base import SlugRange
from catalog_sync.store.jsonl_store import JsonlCatalogStore

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> None:
    """Entry point for the catalog-sync CLI."""
    args = _build_arg_parser().parse_args(argv)

    _configure_logging(verbose=args.verbose, error_log=args.error_log)

    settings = load_settings()
    catalog_dir = _resolve_catalog_dir(args.catalog, settings)
    selection = ArtistSelection(
        overwrite_all=args.overwrite,
        slug_range=SlugRange(only=args.only, start=args.from_prefix, end=args.to_prefix),
        limit=args.limit or None,
    )

    if args.overwrite:
        logger.info("Mode: overwrite (re-sync all artists)")

    store = JsonlCatalogStore.load(catalog_dir, staleness_days=settings.staleness_days)
    try:
        with ReferenceServiceClient.from_settings(settings) as client:
            summary = ReconciliationEngine(client, store).reconcile(selection)
    except KeyboardInterrupt:
        logger.warning("Interrupted by user. Saving progress and exiting.")
        store.save()
        sys.exit(1)

    store.save()
    _log_summary(summary)


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="catalog-sync",
        description="Sync the local music catalogue with the reference metadata service.",
    )

    parser.add_argument(
        "--catalog",
        type=Path,
        default=None,
        help="Catalog directory with the JSONL tables (default: $CATALOG_SYNC_CATALOG_DIR).",
    )
    parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Re-sync all artists, including recently synced ones.",
    )
    parser.add_argument(
        "--only",
        default=None,
        help="Only sync artists whose slug starts with this prefix (case insensitive).",
    )
    parser.add_argument(
        "--from",
        dest="from_prefix",
        default=None,
        help="Sync artists starting from this slug prefix (case insensitive).",
    )
    parser.add_argument(
        "--to",
        dest="to_prefix",
        default=None,
        help="Sync artists up to and including this slug prefix (case insensitive).",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=0,
        help="Limit to the first N artists, 0 for all (default: %(default)s).",
    )
    parser.add_argument(
        "--error-log",
        type=Path,
        default=None,
        help="Also append warnings and errors to this file.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging.",
    )

    return parser


def _configure_logging(*, verbose: bool, error_log: Path | None = None) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    if error_log is not None:
        error_log.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(error_log, encoding="utf-8")
        handler.setLevel(logging.WARNING)
        handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
        logging.getLogger().addHandler(handler)


def _resolve_catalog_dir(catalog: Path | None, settings: Settings) -> Path:
    path = catalog if catalog is not None else settings.catalog_dir
    if not path.is_absolute():
        path = get_project_root() / path
    return path


def _log_summary(summary: RunSummary) -> None:
    logger.info("Synced: %d", summary.synced)
    if summary.partial:
        logger.info("Partial: %d (some releases had issues)", summary.partial)
    if summary.failed:
        logger.info("Failed: %d", summary.failed)
    logger.info("Skipped releases: %d", summary.skipped_releases)
    logger.info("Total: %d", summary.total)

    for name, reason in summary.failure_reasons:
        logger.warning("Failed artist: %s - %s", name, reason)

    if summary.partial or summary.failed:
        logger.info("Run catalog-sync again to retry.")


if __name__ == "__main__":
    # python -m catalog_sync.cli -v --only b --limit 10
    main()
