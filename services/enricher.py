"""Cutoff filtering and directory join for fetched outages."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List

from models.records import OutageRecord, SiteDirectory

logger = logging.getLogger(__name__)


@dataclass
class EnrichmentSummary:
    """Surviving records plus counts of what was dropped and why."""

    records: List[OutageRecord] = field(default_factory=list)
    fetched_count: int = 0
    before_cutoff_count: int = 0
    unknown_device_count: int = 0


class OutageEnricher:
    """Pure join component that can be unit tested in isolation."""

    def enrich(
        self,
        outages: Iterable[OutageRecord],
        directory: SiteDirectory,
        cutoff: datetime,
    ) -> EnrichmentSummary:
        summary = EnrichmentSummary()

        for outage in outages:
            summary.fetched_count += 1

            if outage.begin < cutoff:
                summary.before_cutoff_count += 1
                continue

            name = directory.get(outage.device_id)
            if name is None:
                summary.unknown_device_count += 1
                logger.debug(
                    "Skipping outage for device missing from the site directory.",
                    extra={"device_id": outage.device_id},
                )
                continue

            summary.records.append(outage.with_device_name(name))

        return summary
