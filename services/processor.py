"""Poll cycle orchestration: discover, fetch, grade and persist one log file."""

from __future__ import annotations

import logging
import time
from functools import lru_cache
from typing import Iterable, List, Optional

from app.schemas import CycleResult, ProcessingStatus, StoredResult
from datastore.result_store import ResultStore, build_default_store
from services.discovery import find_oldest_unprocessed, find_unprocessed_prefix
from services.exceptions import LogParseError
from services.formatter import format_brandings, load_brandings
from services.parser import LogParser, parse_stream
from storage.log_directory import LogSource, build_default_source

logger = logging.getLogger(__name__)


class ProcessorService:
    """Coordinates the log source, the grading core and the result store."""

    def __init__(
        self,
        source: LogSource,
        store: ResultStore,
        parser: Optional[LogParser] = None,
    ) -> None:
        self.source = source
        self.store = store
        self.parser = parser or LogParser()

    def pending_files(self) -> List[str]:
        """Unprocessed files from the listing, newest first."""
        return find_unprocessed_prefix(self.source.list_log_files(), self.store.contains)

    def grade_lines(self, lines: Iterable[str]) -> str:
        """Grade log content without touching the store."""
        parsed = parse_stream(lines, self.parser)
        return format_brandings(parsed.brandings)

    def run_once(self) -> CycleResult:
        """Grade the oldest unprocessed file, if there is one.

        Listing, fetch and store failures propagate and leave the store
        untouched. Parse failures are persisted as the file's result so a
        malformed file is not picked up again.
        """
        pending = self.pending_files()
        logger.info("Got log files", extra={"candidate_count": len(pending)})
        if not pending:
            logger.info("No new log files")
            return CycleResult(status=ProcessingStatus.idle)

        file_name = find_oldest_unprocessed(pending, self.store.contains)
        if file_name is None:
            logger.info("No new log file", extra={"candidate_count": len(pending)})
            return CycleResult(status=ProcessingStatus.idle, pending_count=len(pending))

        start_time = time.perf_counter()
        try:
            with self.source.open_text(file_name) as stream:
                parsed = parse_stream(stream, self.parser)
        except LogParseError as exc:
            payload = str(exc)
            status = ProcessingStatus.failed
            sensor_count = None
            logger.warning(
                "Error processing log file",
                extra={"file_name": file_name, "reason": payload, "line_number": exc.line_number},
            )
        else:
            payload = format_brandings(parsed.brandings)
            status = ProcessingStatus.processed
            sensor_count = len(parsed.sensors)

        self.store.set(file_name, payload)
        processing_ms = int((time.perf_counter() - start_time) * 1000)
        logger.info(
            "Stored log file outcome",
            extra={
                "file_name": file_name,
                "status": status.value,
                "sensor_count": sensor_count,
                "processing_ms": processing_ms,
            },
        )
        return CycleResult(
            status=status,
            file_name=file_name,
            payload=payload,
            pending_count=len(pending),
            processing_ms=processing_ms,
        )

    def fetch_result(self, file_name: str) -> StoredResult:
        """Retrieve the stored outcome for a log file."""
        payload = self.store.get(file_name)
        if payload is None:
            raise KeyError(f"No result stored for log file {file_name!r}.")

        brandings = load_brandings(payload)
        if brandings is None:
            return StoredResult(
                file_name=file_name, status=ProcessingStatus.failed, error=payload
            )
        return StoredResult(
            file_name=file_name, status=ProcessingStatus.processed, brandings=brandings
        )


@lru_cache
def build_default_processor() -> ProcessorService:
    """Factory that wires the processor from settings."""
    return ProcessorService(source=build_default_source(), store=build_default_store())
