"""Command-line entry point for Bibliotech catalog jobs."""

import argparse
import logging
import sys

from bibliotech.config import AppConfig, load_config
from bibliotech.errors import ConfigurationError
from bibliotech.ingestion.llm_classifier import LLMClassifier
from bibliotech.pipeline.covers import backfill_covers
from bibliotech.pipeline.orchestrator import build_pipeline
from bibliotech.pipeline.reclassify import Reclassifier
from bibliotech.pipeline.stats import collect_stats, log_stats
from bibliotech.storage import initialize_database, open_store

logger = logging.getLogger(__name__)

ALL_TOKEN = "all"


def parse_count(value: str | None) -> int | None:
    """Parse a record-count argument; None or "all" mean unbounded."""
    if value is None or value.lower() == ALL_TOKEN:
        return None
    try:
        count = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a number or '{ALL_TOKEN}', got {value!r}")
    if count <= 0:
        raise argparse.ArgumentTypeError("count must be positive")
    return count


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bibliotech",
        description="Populate and maintain the Bibliotech catalog.",
    )
    parser.add_argument("--config", default="config.yaml", help="Path to the YAML config file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("gutenberg", "Ingest books from the Project Gutenberg catalog"),
        ("wikibooks", "Ingest books from Wikibooks"),
    ):
        sub = commands.add_parser(name, help=help_text)
        sub.add_argument(
            "count",
            nargs="?",
            type=parse_count,
            default=None,
            help=f"Number of records to fetch (omit or '{ALL_TOKEN}' for everything)",
        )
        sub.add_argument("--dry-run", action="store_true", help="Report without writing")

    reclassify = commands.add_parser(
        "reclassify", help="Improve stored classifications with a text-generation model"
    )
    reclassify.add_argument("--limit", type=parse_count, default=None, help="Process only N books")
    reclassify.add_argument("--dry-run", action="store_true", help="Show changes without applying them")
    reclassify.add_argument("--api-url", help="Override the classifier endpoint")
    reclassify.add_argument("--source", default="wikibooks", help="Only books from this source")
    reclassify.add_argument("--prefix", help="Only books whose code starts with this prefix")

    covers = commands.add_parser("covers", help="Backfill missing Gutenberg cover URLs")
    covers.add_argument("count", nargs="?", type=parse_count, default=None)
    covers.add_argument("--dry-run", action="store_true")

    commands.add_parser("stats", help="Count stored books, in total and per category")

    init_db = commands.add_parser("init-db", help="Create the local SQLite schema")
    init_db.add_argument("--legacy", action="store_true", help="Create the pre-uri schema")

    return parser


def run_command(args: argparse.Namespace, config: AppConfig) -> None:
    """Dispatch a parsed command.

    Raises:
        ConfigurationError: On missing credentials or an unusable store.
    """
    if args.command == "init-db":
        initialize_database(config.store.sqlite_path, legacy=args.legacy)
        logger.info("Initialized %s", config.store.sqlite_path)
        return

    store = open_store(config)

    if args.command in ("gutenberg", "wikibooks"):
        if args.dry_run:
            logger.info("DRY RUN - no changes will be written")
        pipeline = build_pipeline(args.command, config, store, dry_run=args.dry_run)
        pipeline.run(limit=args.count)
    elif args.command == "reclassify":
        if args.api_url:
            config.classifier.api_url = args.api_url
        classifier = LLMClassifier(config.classifier)
        logger.info("Using API: %s", classifier.api_url)
        logger.info("Model: %s", classifier.model)
        Reclassifier(
            store,
            classifier,
            config.classifier,
            table=config.store.books_table,
            dry_run=args.dry_run,
        ).run(source=args.source, limit=args.limit, prefix=args.prefix)
    elif args.command == "stats":
        log_stats(collect_stats(store, table=config.store.books_table))
    elif args.command == "covers":
        backfill_covers(
            store,
            config.gutenberg,
            table=config.store.books_table,
            limit=args.count,
            dry_run=args.dry_run,
        )


def main(argv: list[str] | None = None) -> int:
    """Run the CLI and return the process exit status.

    Per-item failures never change the exit status; only configuration
    problems do.
    """
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    try:
        config = load_config(args.config)
        run_command(args, config)
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
