"""Fetch, join and submit orchestration for one site."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Protocol, Sequence, runtime_checkable

from models.errors import ErrorKind, SyncError
from models.records import OutageRecord, SiteDirectory
from services.enricher import OutageEnricher

logger = logging.getLogger(__name__)


@runtime_checkable
class OutageApi(Protocol):
    async def fetch_outages(self) -> List[OutageRecord]: ...

    async def fetch_site_directory(self, site_id: str) -> SiteDirectory: ...

    async def submit(self, site_id: str, records: Sequence[OutageRecord]) -> None: ...


@dataclass(frozen=True)
class SyncReport:
    """Outcome of a successful synchronization run."""

    site_id: str
    cutoff: datetime
    fetched: int
    submitted: int
    skipped_before_cutoff: int
    skipped_unknown_device: int


class OutageSynchronizer:
    """Coordinates the concurrent fetches, the join step and the submission."""

    def __init__(self, api: OutageApi, enricher: Optional[OutageEnricher] = None) -> None:
        self.api = api
        self.enricher = enricher or OutageEnricher()

    async def synchronize(self, site_id: str, cutoff: datetime) -> SyncReport:
        if not isinstance(site_id, str) or not site_id.strip():
            raise SyncError(ErrorKind.invalid_argument, "A meaningful site ID is required.")
        if not isinstance(cutoff, datetime) or cutoff.utcoffset() is None:
            raise SyncError(
                ErrorKind.invalid_argument, "A cutoff date-time with an offset is required."
            )

        logger.info(
            "Synchronizing site outages.",
            extra={"site_id": site_id, "cutoff": cutoff.isoformat()},
        )
        outages, directory = await self._fetch(site_id)

        summary = self.enricher.enrich(outages, directory, cutoff)
        logger.info(
            "Joined %d of %d outages (%d before cutoff, %d unknown devices).",
            len(summary.records),
            summary.fetched_count,
            summary.before_cutoff_count,
            summary.unknown_device_count,
            extra={"site_id": site_id, "record_count": len(summary.records)},
        )

        await self.api.submit(site_id, summary.records)
        logger.info(
            "Submitted site outages.",
            extra={"site_id": site_id, "record_count": len(summary.records)},
        )

        return SyncReport(
            site_id=site_id,
            cutoff=cutoff,
            fetched=summary.fetched_count,
            submitted=len(summary.records),
            skipped_before_cutoff=summary.before_cutoff_count,
            skipped_unknown_device=summary.unknown_device_count,
        )

    async def _fetch(self, site_id: str) -> tuple[List[OutageRecord], SiteDirectory]:
        outages_task = asyncio.create_task(self.api.fetch_outages())
        directory_task = asyncio.create_task(self.api.fetch_site_directory(site_id))
        tasks = (outages_task, directory_task)

        try:
            await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        finally:
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        # Outages are checked first so a simultaneous double failure is deterministic.
        errors = [task.exception() for task in tasks if not task.cancelled()]
        for error in errors:
            if error is not None:
                raise error

        return outages_task.result(), directory_task.result()
