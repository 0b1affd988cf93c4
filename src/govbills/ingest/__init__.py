"""Bill ingestion pipeline for govbills.

Entry point for scheduled runs:
    python -m govbills.ingest --mode enrich --max-files 10

Design principles:
    - The store is the source of truth; the semantic index is derived from it
      and repaired by the sweepers
    - Exactly-seen files and older versions are skipped before any external call
    - Idempotent - deterministic index ids, insert-if-absent versions, safe to re-run
"""

from govbills.ingest.orchestrator import (
    BillIngestOrchestrator,
    FileOutcome,
    OutcomeStatus,
    PipelineStep,
)
from govbills.ingest.sweeper import clean_orphan_bill_versions, clean_orphan_index_entries

__all__ = [
    "BillIngestOrchestrator",
    "FileOutcome",
    "OutcomeStatus",
    "PipelineStep",
    "clean_orphan_bill_versions",
    "clean_orphan_index_entries",
]
