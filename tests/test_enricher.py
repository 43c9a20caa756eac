"""Unit tests for the cutoff filter and directory join."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from models.errors import ErrorKind, SyncError
from models.records import OutageRecord, build_site_directory
from services.enricher import OutageEnricher

CUTOFF = datetime(2022, 1, 1, tzinfo=timezone.utc)


def _outage(device_id, begin: datetime = CUTOFF, end: datetime | None = None) -> OutageRecord:
    """Helper to build deterministic outage records."""

    return OutageRecord(device_id=device_id, begin=begin, end=end)


def test_enrich_empty_iterable_returns_default_summary() -> None:
    enricher = OutageEnricher()

    summary = enricher.enrich([], build_site_directory([]), CUTOFF)

    assert summary.records == []
    assert summary.fetched_count == 0
    assert summary.before_cutoff_count == 0
    assert summary.unknown_device_count == 0


def test_enrich_filters_and_names_outages() -> None:
    enricher = OutageEnricher()
    directory = build_site_directory([("a", "Battery 1"), ("b", "Battery 2")])
    outages = [
        _outage("a"),
        _outage("b", begin=CUTOFF - timedelta(milliseconds=1)),
        _outage("c", begin=CUTOFF + timedelta(days=1)),
        _outage("b", begin=CUTOFF + timedelta(hours=2), end=CUTOFF + timedelta(hours=3)),
    ]

    summary = enricher.enrich(outages, directory, CUTOFF)

    assert summary.records == [outages[0], outages[3]]
    assert [record.device_name for record in summary.records] == ["Battery 1", "Battery 2"]
    assert summary.fetched_count == 4
    assert summary.before_cutoff_count == 1
    assert summary.unknown_device_count == 1


def test_enrich_compares_instants_across_offsets() -> None:
    enricher = OutageEnricher()
    directory = build_site_directory([("a", "Battery 1")])
    same_instant = datetime(2022, 1, 1, 1, tzinfo=timezone(timedelta(hours=1)))

    summary = enricher.enrich([_outage("a", begin=same_instant)], directory, CUTOFF)

    assert len(summary.records) == 1


def test_enrich_does_not_treat_numeric_and_text_ids_alike() -> None:
    enricher = OutageEnricher()
    directory = build_site_directory([(1, "Battery 1")])

    summary = enricher.enrich([_outage("1"), _outage(1)], directory, CUTOFF)

    assert [record.device_id for record in summary.records] == [1]


def test_enrich_rejects_blank_directory_name() -> None:
    enricher = OutageEnricher()
    directory = build_site_directory([("a", "  ")])

    with pytest.raises(SyncError) as excinfo:
        enricher.enrich([_outage("a")], directory, CUTOFF)

    assert excinfo.value.kind is ErrorKind.invalid_argument


def test_enrich_ignores_blank_name_of_outage_before_cutoff() -> None:
    enricher = OutageEnricher()
    directory = build_site_directory([("a", "")])

    summary = enricher.enrich([_outage("a", begin=CUTOFF - timedelta(days=1))], directory, CUTOFF)

    assert summary.records == []
    assert summary.before_cutoff_count == 1
