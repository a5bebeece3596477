# ABOUTME: Pipeline orchestration from scraped candidates to enriched, delivered records
# ABOUTME: Pipeline Stage 2: collection, admission, relocation, batch scheduling, triggering

"""
Core Layer: Pipeline orchestration

This layer handles:
- Concurrent collection across sources with bounded web retries
- Dedup admission and bulk draft insertion
- Poster relocation into object storage
- Sequential batch extraction with streaming persistence
- Handing admitted ids from the ingestion run to the batch run

Data Flow: sources/ → Collector → Admission → Relocation → persistence/ → Scheduler → delivery/
"""

from .admission import AdmissionGate, AdmissionResult, partition_candidates
from .collector import CollectorResult, FanOutCollector, SourceRun, retry_web_source
from .ingestion import IngestionPipeline, IngestSummary
from .relocation import AssetRelocator, RelocationReport, S3ObjectStore, build_filename, build_relocator
from .scheduler import BatchScheduler, BatchSummary, chunk
from .trigger import EventTrigger, InProcessTrigger, build_trigger

__all__ = [
    "AdmissionGate",
    "AdmissionResult",
    "AssetRelocator",
    "BatchScheduler",
    "BatchSummary",
    "CollectorResult",
    "EventTrigger",
    "FanOutCollector",
    "InProcessTrigger",
    "IngestSummary",
    "IngestionPipeline",
    "RelocationReport",
    "S3ObjectStore",
    "SourceRun",
    "build_filename",
    "build_relocator",
    "build_trigger",
    "chunk",
    "partition_candidates",
    "retry_web_source",
]
