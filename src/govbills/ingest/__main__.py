"""CLI entry point for bill ingestion, meant to be run by a scheduler.

Usage:
    # Discover and enrich new bill versions
    python -m govbills.ingest --mode enrich

    # Sample run
    python -m govbills.ingest --mode enrich --max-files 10

    # Remove index entries whose bill no longer exists
    python -m govbills.ingest --mode sweep-index

    # Remove versions whose bill no longer exists
    python -m govbills.ingest --mode sweep-versions
"""

import argparse
import asyncio
import logging
import sys

from dotenv import load_dotenv

load_dotenv()

from govbills.bills.scraper import BillScraper
from govbills.core.qdrant_client import get_qdrant_client
from govbills.core.semantic_index import SemanticIndex
from govbills.core.store import BillStore
from govbills.core.utils import set_logging_level
from govbills.ingest.orchestrator import BillIngestOrchestrator
from govbills.ingest.sweeper import clean_orphan_bill_versions, clean_orphan_index_entries
from govbills.processing.bill_summaries import BillSummaryGenerator
from govbills.settings import INTER_BATCH_DELAY_SECONDS

logger = logging.getLogger(__name__)


def main() -> int:
    """Main entry point for the ingest CLI."""
    parser = argparse.ArgumentParser(
        description="Bill ingestion pipeline for govbills",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    parser.add_argument(
        "--mode",
        choices=["enrich", "sweep-index", "sweep-versions"],
        default="enrich",
        help="enrich (discover + enrich new files), sweep-index or sweep-versions (cleanup)",
    )

    parser.add_argument(
        "--max-files",
        type=int,
        default=None,
        help="Maximum number of discovered files to process (default: unlimited)",
    )

    parser.add_argument(
        "--inter-batch-delay",
        type=float,
        default=INTER_BATCH_DELAY_SECONDS,
        help="Seconds to wait between batches",
    )

    parser.add_argument(
        "--store-dir",
        default=None,
        help="Directory of the bill store (default: GOVBILLS_STORE_DIR)",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args()

    set_logging_level(logging.DEBUG if args.verbose else logging.INFO)

    # Suppress noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    logger.info(f"Starting ingest: mode={args.mode}, max_files={args.max_files}")

    store = BillStore(args.store_dir)
    try:
        if args.mode == "sweep-versions":
            stats = clean_orphan_bill_versions(store)
        else:
            index = SemanticIndex(get_qdrant_client())
            index.ensure_collection()

            if args.mode == "sweep-index":
                stats = clean_orphan_index_entries(store, index)
            else:
                orchestrator = BillIngestOrchestrator(
                    store=store,
                    scraper=BillScraper(),
                    index=index,
                    summarizer=BillSummaryGenerator(),
                )
                stats = asyncio.run(
                    orchestrator.discover_and_enrich(
                        max_files=args.max_files,
                        inter_batch_delay=args.inter_batch_delay,
                    )
                )
                stats.pop("outcomes", None)

        logger.info(f"Ingest complete: {stats}")
        return 0

    except KeyboardInterrupt:
        logger.info("Ingest interrupted by user")
        return 130

    except Exception as e:
        logger.error(f"Ingest failed: {e}", exc_info=True)
        return 1

    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
