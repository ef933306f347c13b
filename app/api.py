"""HTTP route definitions for the service."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from app.schemas import CycleResult, PendingFiles, StoredResult
from services.discovery import find_oldest_unprocessed
from services.exceptions import LogSourceError, ResultStoreError
from services.processor import ProcessorService, build_default_processor

router = APIRouter()


def get_processor() -> ProcessorService:
    try:
        return build_default_processor()
    except LogSourceError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc


@router.get(
    "/results/{file_name}",
    response_model=StoredResult,
    summary="Fetch the stored brandings or error for a log file.",
)
async def get_file_result(
    file_name: str,
    processor: ProcessorService = Depends(get_processor),
) -> StoredResult:
    try:
        return processor.fetch_result(file_name)
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc.args[0]),
        ) from exc
    except ResultStoreError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(exc),
        ) from exc


@router.get(
    "/files/pending",
    response_model=PendingFiles,
    summary="List log files that have not been graded yet, newest first.",
)
def get_pending_files(
    processor: ProcessorService = Depends(get_processor),
) -> PendingFiles:
    try:
        files = processor.pending_files()
        oldest = find_oldest_unprocessed(files, processor.store.contains)
    except (LogSourceError, ResultStoreError) as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(exc),
        ) from exc
    return PendingFiles(files=files, oldest=oldest)


@router.post(
    "/process",
    response_model=CycleResult,
    summary="Grade the oldest pending log file now.",
)
def process_next(
    processor: ProcessorService = Depends(get_processor),
) -> CycleResult:
    try:
        return processor.run_once()
    except (LogSourceError, ResultStoreError) as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(exc),
        ) from exc


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
