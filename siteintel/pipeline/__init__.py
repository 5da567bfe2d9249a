"""Crawl pipeline: stage graph, progress reporting and the session runner."""

from siteintel.pipeline.progress import ProgressEvent, ProgressReporter
from siteintel.pipeline.runner import CrawlOutcome, CrawlPipeline, CrawlRequest, cancel_session

__all__ = [
    "CrawlOutcome",
    "CrawlPipeline",
    "CrawlRequest",
    "ProgressEvent",
    "ProgressReporter",
    "cancel_session",
]
