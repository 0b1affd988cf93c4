"""Orchestrator for the bill enrichment pass.

One pass:
    1. Read the watermark
    2. Discover new XML files across bill types (parallel)
    3. Process files in sequential batches, files within a batch in parallel:
        DECIDING -> FETCHING -> EXTRACTING -> SUMMARIZING -> QUALITY_GATING
        -> INDEXING -> PERSISTING -> DONE
       Files of the same bill take turns through INDEXING and PERSISTING
    4. Advance the watermark once every batch has settled

Nothing is written to the store for a file until PERSISTING, after all of its
external calls have succeeded, so an abandoned file leaves no partial state.
"""

import asyncio
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional

from diskcache import Timeout as StoreTimeout
from pydantic import BaseModel, Field
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from govbills.bills.chunker import chunk_bill_text
from govbills.bills.decision import IngestionDecisionGate
from govbills.bills.models import BillSummary, ExtractedBill, SummaryAttemptRecord
from govbills.bills.parser import parse_bill_xml
from govbills.bills.scraper import BillScraper
from govbills.bills.versions import VersionComparison, compare_versions
from govbills.bills.writer import BillWriter
from govbills.core.document import to_batches
from govbills.core.error_utils import ErrorCategorizer
from govbills.core.exceptions import InvariantViolationError, ProcessedException, TransientError
from govbills.core.semantic_index import SemanticIndex
from govbills.core.store import BillStore
from govbills.processing.bill_summaries import BillSummaryGenerator, check_summary_quality
from govbills.settings import (
    BILL_NAMESPACE,
    BILL_TYPE_NAME_MAPPING,
    BILL_TYPES,
    CHUNK_OVERLAP,
    CHUNK_SIZE,
    INGEST_BATCH_SIZE,
    INTER_BATCH_DELAY_SECONDS,
    STEP_INITIAL_BACKOFF_SECONDS,
    STEP_MAX_ATTEMPTS,
    STEP_MAX_BACKOFF_SECONDS,
)

logger = logging.getLogger(__name__)

RETRYABLE_ERRORS = (TransientError, StoreTimeout)


class PipelineStep(str, Enum):
    DISCOVERING = "discovering"
    DECIDING = "deciding"
    FETCHING = "fetching"
    EXTRACTING = "extracting"
    SUMMARIZING = "summarizing"
    QUALITY_GATING = "quality_gating"
    INDEXING = "indexing"
    PERSISTING = "persisting"
    DONE = "done"
    SKIPPED = "skipped"
    REJECTED = "rejected"
    FAILED = "failed"


class OutcomeStatus(str, Enum):
    DONE = "done"
    SKIPPED = "skipped"
    REJECTED = "rejected"
    # Transient failure that outlived its retries; picked up again on a later pass
    ABANDONED = "abandoned"
    # Fatal for this file; retrying can't help
    FAILED = "failed"


class FileOutcome(BaseModel):
    xml_url: str
    step: PipelineStep
    status: OutcomeStatus
    reason: str = ""
    failed_step: Optional[PipelineStep] = None
    bill_id: Optional[str] = None
    attempts: dict[str, int] = Field(default_factory=dict)


class BillIngestOrchestrator:
    """Runs enrichment passes over newly published bill documents."""

    def __init__(
        self,
        store: BillStore,
        scraper: BillScraper,
        index: SemanticIndex,
        summarizer: BillSummaryGenerator,
        writer: Optional[BillWriter] = None,
        bill_types: Optional[list[str]] = None,
        batch_size: int = INGEST_BATCH_SIZE,
        max_attempts: int = STEP_MAX_ATTEMPTS,
        initial_backoff: float = STEP_INITIAL_BACKOFF_SECONDS,
        max_backoff: float = STEP_MAX_BACKOFF_SECONDS,
        chunk_size: int = CHUNK_SIZE,
        chunk_overlap: int = CHUNK_OVERLAP,
        namespace: str = BILL_NAMESPACE,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")

        self.store = store
        self.scraper = scraper
        self.index = index
        self.summarizer = summarizer
        self.writer = writer or BillWriter(store)
        self.gate = IngestionDecisionGate(store)
        self.bill_types = bill_types or BILL_TYPES
        self.batch_size = batch_size
        self.max_attempts = max_attempts
        self.initial_backoff = initial_backoff
        self.max_backoff = max_backoff
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.namespace = namespace
        self.clock = clock
        self._bill_locks: dict[str, threading.Lock] = {}
        self._bill_locks_guard = threading.Lock()

    async def discover_and_enrich(
        self,
        max_files: int | None = None,
        inter_batch_delay: float = INTER_BATCH_DELAY_SECONDS,
        cancel_event: threading.Event | None = None,
    ) -> dict:
        """Run one enrichment pass.

        Args:
            max_files: Process at most this many discovered files (None for all)
            inter_batch_delay: Seconds to pause between batches
            cancel_event: Checked between batches; when set, the pass stops early

        Returns:
            Statistics about the pass, including every FileOutcome

        Raises:
            InvariantViolationError: If a write would have broken a storage invariant
            TransientError: If a manifest could not be fetched after retries
        """
        run_started_at = self.clock()
        since = self.store.get_last_checked()
        logger.info(
            f"Starting enrichment pass, since={since.isoformat() if since else None}, max_files={max_files}",
            extra={"event_type": "pass_start"},
        )

        urls = await self._discover(since)
        to_process = urls[:max_files] if max_files and max_files > 0 else urls
        truncated = len(to_process) < len(urls)

        stats: dict[str, Any] = {
            "discovered": len(urls),
            "dispatched": 0,
            **{status.value: 0 for status in OutcomeStatus},
            "cancelled": False,
            "watermark_advanced": False,
            "outcomes": [],
        }

        invariant_errors: list[InvariantViolationError] = []
        batches = list(to_batches(to_process, self.batch_size))
        loop = asyncio.get_running_loop()

        with ThreadPoolExecutor(max_workers=self.batch_size) as executor:
            for batch_number, batch in enumerate(batches, start=1):
                if cancel_event is not None and cancel_event.is_set():
                    logger.warning(f"Enrichment pass cancelled before batch {batch_number}/{len(batches)}")
                    stats["cancelled"] = True
                    break

                results = await asyncio.gather(
                    *(loop.run_in_executor(executor, self.process_file, url) for url in batch),
                    return_exceptions=True,
                )
                stats["dispatched"] += len(batch)

                for url, result in zip(batch, results):
                    if isinstance(result, InvariantViolationError):
                        invariant_errors.append(result)
                        logger.error(
                            f"Invariant violation while processing {url}: {result}",
                            extra=ErrorCategorizer.extract_error_metadata(result, {"xml_url": url}),
                        )
                    elif isinstance(result, BaseException):
                        raise result
                    else:
                        stats[result.status.value] += 1
                        stats["outcomes"].append(result)

                if invariant_errors:
                    raise invariant_errors[0]

                if inter_batch_delay and inter_batch_delay > 0 and batch_number < len(batches):
                    await asyncio.sleep(inter_batch_delay)

        if stats["cancelled"]:
            logger.info("Watermark left unchanged: pass was cancelled")
        elif truncated:
            logger.info(
                f"Watermark left unchanged: {len(urls) - len(to_process)} discovered files not dispatched"
            )
        else:
            self.store.set_last_checked(run_started_at)
            stats["watermark_advanced"] = True

        counts = {key: value for key, value in stats.items() if key != "outcomes"}
        logger.info(
            f"Enrichment pass complete: {counts}",
            extra={"event_type": "pass_complete"},
        )
        return stats

    async def _discover(self, since: Optional[datetime]) -> list[str]:
        results = await asyncio.gather(
            *(
                asyncio.to_thread(
                    self._run_step,
                    PipelineStep.DISCOVERING,
                    {},
                    self.scraper.list_new_xml_files,
                    bill_type,
                    since,
                )
                for bill_type in self.bill_types
            )
        )
        urls = [url for bill_type_urls in results for url in bill_type_urls]
        unique = list(dict.fromkeys(urls))
        logger.info(f"Discovered {len(unique)} new XML files across {len(self.bill_types)} bill types")
        return unique

    def process_file(self, xml_url: str) -> FileOutcome:
        """
        Take one discovered file through the pipeline.

        Transient failures are retried per step and then abandoned; fatal
        per-file errors end the file immediately. Invariant violations propagate.
        """
        attempts: dict[str, int] = {}
        step = PipelineStep.DECIDING
        bill_id = None

        try:
            attempts[step.value] = 1
            decision = self.gate.decide(xml_url)
            if not decision.should_process:
                logger.debug(f"Skipping {xml_url}: {decision.reason}")
                return FileOutcome(
                    xml_url=xml_url,
                    step=PipelineStep.SKIPPED,
                    status=OutcomeStatus.SKIPPED,
                    reason=decision.reason,
                    bill_id=decision.existing_bill_id,
                    attempts=attempts,
                )
            logger.info(f"Processing: {xml_url} ({decision.reason})", extra={"xml_url": xml_url})

            step = PipelineStep.FETCHING
            content = self._run_step(step, attempts, self.scraper.fetch_document, xml_url)

            step = PipelineStep.EXTRACTING
            attempts[step.value] = 1
            extracted = parse_bill_xml(content, xml_url)
            bill_id = extracted.identifier.bill_id

            step = PipelineStep.SUMMARIZING
            summary = self._run_step(step, attempts, self.summarizer.generate, extracted)

            step = PipelineStep.QUALITY_GATING
            attempts[step.value] = 1
            verdict = check_summary_quality(summary)
            if not verdict.accepted:
                self._record_rejection(extracted, summary, verdict.reason)
                return FileOutcome(
                    xml_url=xml_url,
                    step=PipelineStep.REJECTED,
                    status=OutcomeStatus.REJECTED,
                    reason=verdict.reason,
                    bill_id=bill_id,
                    attempts=attempts,
                )

            # Versions of the same bill in one batch take turns, so the index
            # entry and the concept agree on the latest version
            with self._bill_lock(bill_id):
                step = PipelineStep.INDEXING
                newer_version = self._stored_newer_version(extracted)
                if newer_version is None:
                    self._run_step(step, attempts, self.index_bill, extracted, summary)
                else:
                    logger.info(
                        f"Left index entry for {bill_id} on {newer_version}; "
                        f"{extracted.identifier.version_code} is older",
                        extra={"doc_id": bill_id, "xml_url": xml_url},
                    )

                step = PipelineStep.PERSISTING
                self._run_step(step, attempts, self.writer.persist, extracted, summary)

        except InvariantViolationError:
            raise

        except ProcessedException as e:
            logger.warning(
                f"Failed {xml_url} at {step.value}: {e}",
                extra=ErrorCategorizer.extract_error_metadata(e, {"step": step.value}),
            )
            return self._failed(xml_url, step, OutcomeStatus.FAILED, str(e), bill_id, attempts)

        except RETRYABLE_ERRORS as e:
            logger.warning(
                f"Abandoned {xml_url} at {step.value} after {attempts.get(step.value, 0)} attempts: {e}",
                extra=ErrorCategorizer.extract_error_metadata(
                    e, {"step": step.value, "processing_status": OutcomeStatus.ABANDONED.value}
                ),
            )
            return self._failed(xml_url, step, OutcomeStatus.ABANDONED, str(e), bill_id, attempts)

        except Exception as e:
            logger.error(
                f"Unexpected error processing {xml_url} at {step.value}: {e}",
                exc_info=True,
                extra=ErrorCategorizer.extract_error_metadata(e, {"step": step.value}),
            )
            return self._failed(xml_url, step, OutcomeStatus.FAILED, str(e), bill_id, attempts)

        logger.info(
            f"Done {xml_url}",
            extra={"xml_url": xml_url, "doc_id": bill_id, "processing_status": OutcomeStatus.DONE.value},
        )
        return FileOutcome(
            xml_url=xml_url,
            step=PipelineStep.DONE,
            status=OutcomeStatus.DONE,
            reason=decision.reason,
            bill_id=bill_id,
            attempts=attempts,
        )

    def index_bill(self, extracted: ExtractedBill, summary: BillSummary) -> str:
        """Add (or replace) the bill's entry in the semantic index."""
        identifier = extracted.identifier
        chunks = chunk_bill_text(extracted.full_text, self.chunk_size, self.chunk_overlap)
        sponsor_name = extracted.sponsor.name if extracted.sponsor else ""
        sponsor_name_id = (extracted.sponsor.name_id if extracted.sponsor else None) or ""

        metadata = {
            "bill_identifier": identifier.bill_id,
            "congress": str(identifier.congress),
            "bill_type": identifier.bill_type,
            "bill_type_name": BILL_TYPE_NAME_MAPPING.get(identifier.bill_type, identifier.bill_type.upper()),
            "bill_number": identifier.bill_number,
            "version_code": identifier.version_code,
            "official_title": extracted.official_title,
            "short_title": extracted.short_title or "",
            "sponsor_name": sponsor_name,
            "sponsor_name_id": sponsor_name_id,
            "committees": ", ".join(extracted.committees),
            "summary": summary.summary,
            "tagline": summary.tagline,
            "impact_areas": ", ".join(summary.impact_areas),
            "action_date": extracted.action_date.isoformat() if extracted.action_date else "",
        }
        filter_values = {
            "bill_identifier": identifier.bill_id,
            "bill_type": identifier.bill_type,
            "congress": str(identifier.congress),
            "sponsor": sponsor_name,
        }

        return self.index.add(
            namespace=self.namespace,
            key=identifier.bill_id,
            chunks=chunks,
            metadata=metadata,
            filter_values=filter_values,
            title=f"{identifier.display_name}: {extracted.display_title}",
        )

    def _bill_lock(self, bill_id: str) -> threading.Lock:
        with self._bill_locks_guard:
            return self._bill_locks.setdefault(bill_id, threading.Lock())

    def _stored_newer_version(self, extracted: ExtractedBill) -> Optional[str]:
        """Version code of the stored concept when it is further along than the document."""
        existing = self.store.get_bill(extracted.identifier.bill_id)
        if existing is None:
            return None
        comparison = compare_versions(extracted.identifier.version_code, existing.latest_version_code)
        if comparison == VersionComparison.DOWNGRADE:
            return existing.latest_version_code
        return None

    def _record_rejection(self, extracted: ExtractedBill, summary: BillSummary, reason: str) -> None:
        identifier = extracted.identifier
        self.store.add_summary_attempt(
            SummaryAttemptRecord(
                congress=identifier.congress,
                bill_type=identifier.bill_type,
                bill_number=identifier.bill_number,
                version_code=identifier.version_code,
                xml_url=extracted.xml_url,
                reason=reason,
                payload=summary.model_dump(mode="json"),
            )
        )
        logger.warning(
            f"Rejected summary for {identifier.bill_id} ({identifier.version_code}): {reason}",
            extra={
                "doc_id": identifier.bill_id,
                "xml_url": extracted.xml_url,
                "processing_status": OutcomeStatus.REJECTED.value,
            },
        )

    def _run_step(self, step: PipelineStep, attempts: dict[str, int], func: Callable, *args: Any) -> Any:
        """Run func under the step retry policy, recording the attempt count."""
        retrying = Retrying(
            stop=stop_after_attempt(max(1, self.max_attempts)),
            wait=wait_exponential(multiplier=self.initial_backoff, max=self.max_backoff),
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        for attempt in retrying:
            with attempt:
                attempts[step.value] = attempt.retry_state.attempt_number
                result = func(*args)
        return result

    def _failed(
        self,
        xml_url: str,
        step: PipelineStep,
        status: OutcomeStatus,
        reason: str,
        bill_id: Optional[str],
        attempts: dict[str, int],
    ) -> FileOutcome:
        return FileOutcome(
            xml_url=xml_url,
            step=PipelineStep.FAILED,
            status=status,
            reason=reason,
            failed_step=step,
            bill_id=bill_id,
            attempts=attempts,
        )
