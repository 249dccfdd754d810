"""
Catalog Reconciliation
======================

Merges batches of freshly observed programs into the catalog without losing
history.

Rules:
- A program seen for the first time enters as pending_review.
- Manual entries are authoritative and never touched.
- A changed scraped program gets a new version; an outdated one that
  reappears goes back to pending_review, never straight to active.
- A scraped program missing from its source's batch is marked outdated,
  never removed.

Each source is applied as one catalog transaction. A source that fails to
produce data is reported and skipped; the other sources still run.
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Sequence, Union

from mortgagematch.core.errors import PersistenceError, ReconciliationSourceError, ValidationError
from mortgagematch.models.programs import (
    ChangeEntry,
    ChangeType,
    ObservedProgram,
    ProgramMetadata,
    ProgramRecord,
    ProgramSource,
    ProgramStatus,
)
from mortgagematch.services.program_catalog import ProgramCatalog, apply_content

logger = logging.getLogger(__name__)

ObservedInput = Union[ObservedProgram, Dict[str, Any]]
SourceFetcher = Callable[[], Awaitable[Sequence[ObservedInput]]]


# =============================================================================
# RESULTS
# =============================================================================

@dataclass
class ReconcileResult:
    """Counters for one source's merge"""
    source_id: str
    new: int = 0
    updated: int = 0
    unchanged: int = 0
    outdated: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sourceId": self.source_id,
            "new": self.new,
            "updated": self.updated,
            "unchanged": self.unchanged,
            "outdated": self.outdated,
        }


@dataclass
class ReconciliationSummary:
    """Outcome of a run over several sources"""
    results: List[ReconcileResult] = field(default_factory=list)
    failed_sources: Dict[str, str] = field(default_factory=dict)

    @property
    def errors(self) -> int:
        return len(self.failed_sources)

    def totals(self) -> Dict[str, int]:
        return {
            "new": sum(r.new for r in self.results),
            "updated": sum(r.updated for r in self.results),
            "unchanged": sum(r.unchanged for r in self.results),
            "outdated": sum(r.outdated for r in self.results),
            "errors": self.errors,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totals": self.totals(),
            "sources": [r.to_dict() for r in self.results],
            "failedSources": dict(self.failed_sources),
        }


# =============================================================================
# IDS
# =============================================================================

def slugify(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")


def derive_program_id(source_id: str, name: str) -> str:
    """Stable id for an observed program that carries none: ``<source>-<slug of name>``."""
    slug = slugify(name)
    if not slug:
        raise ValidationError(f"Cannot derive an id from program name '{name}'", field="name")
    return f"{source_id}-{slug}"


# =============================================================================
# MERGE
# =============================================================================

def _content_changed(record: ProgramRecord, observed: ObservedProgram) -> bool:
    return (
        record.name != observed.name
        or record.description != observed.description
        or record.eligibility.to_dict() != observed.eligibility.to_dict()
        or record.benefits != observed.benefits
        or record.requirements != observed.requirements
    )


def _coerce_batch(source_id: str, observed_records: Iterable[ObservedInput]) -> Dict[str, ObservedProgram]:
    """Validate the whole batch up front. Later duplicates of an id replace earlier ones."""
    batch: Dict[str, ObservedProgram] = {}
    for item in observed_records:
        observed = item if isinstance(item, ObservedProgram) else ObservedProgram.from_dict(item)
        program_id = observed.id or derive_program_id(source_id, observed.name)
        if program_id in batch:
            logger.warning("Source %s reported program %s more than once; keeping the last", source_id, program_id)
        batch[program_id] = observed
    return batch


def reconcile(
    catalog: ProgramCatalog,
    source_id: str,
    observed_records: Iterable[ObservedInput],
) -> ReconcileResult:
    """
    Merge one source's observed programs into the catalog.

    The batch is validated before anything changes; an invalid record raises
    ValidationError and leaves the catalog untouched. The merge and the
    outdating of programs the source no longer lists are saved together.
    """
    batch = _coerce_batch(source_id, observed_records)
    result = ReconcileResult(source_id=source_id)
    now = catalog.now()

    with catalog.transaction() as records:
        for program_id, observed in batch.items():
            existing = records.get(program_id)

            if existing is None:
                record = ProgramRecord(
                    id=program_id,
                    name=observed.name,
                    description=observed.description,
                    eligibility=observed.eligibility,
                    status=ProgramStatus.PENDING_REVIEW,
                    source=ProgramSource.SCRAPED,
                    source_id=source_id,
                    created_at=now,
                    updated_at=now,
                    last_validated_at=now,
                    metadata=ProgramMetadata(
                        version=1,
                        change_history=[ChangeEntry(now, ChangeType.CREATED.value, f"Scraped from {source_id}")],
                    ),
                )
                apply_content(record, observed)
                records[program_id] = record
                result.new += 1
                continue

            if existing.is_manual:
                result.unchanged += 1
                continue

            reappeared = existing.status == ProgramStatus.OUTDATED
            if _content_changed(existing, observed) or reappeared:
                apply_content(existing, observed)
                existing.source = ProgramSource.SCRAPED
                existing.source_id = source_id
                existing.updated_at = now
                existing.last_validated_at = now
                if reappeared:
                    existing.status = ProgramStatus.PENDING_REVIEW
                    existing.expires_at = None
                    details = f"Reappeared on {source_id}"
                else:
                    details = f"Updated from {source_id}"
                existing.metadata.record(now, ChangeType.UPDATED, details)
                result.updated += 1
            else:
                existing.last_validated_at = now
                result.unchanged += 1

        for record in records.values():
            if record.id in batch or record.is_manual or record.status == ProgramStatus.OUTDATED:
                continue
            if not record.belongs_to_source(source_id):
                continue
            record.status = ProgramStatus.OUTDATED
            record.updated_at = now
            record.expires_at = record.expires_at or now
            record.metadata.record(now, ChangeType.OUTDATED, f"No longer found on {source_id}")
            result.outdated += 1

    logger.info(
        "Reconciled %s: %s new, %s updated, %s unchanged, %s outdated",
        source_id, result.new, result.updated, result.unchanged, result.outdated,
    )
    return result


async def reconcile_sources(
    catalog: ProgramCatalog,
    fetchers: Mapping[str, SourceFetcher],
) -> ReconciliationSummary:
    """
    Fetch and reconcile each source in turn.

    A source whose fetch fails, or whose data does not validate, is recorded
    in ``failed_sources`` and skipped, whatever the error. Sources already
    merged stay merged. Persistence failures propagate. Each merge runs in a
    worker thread.
    """
    summary = ReconciliationSummary()
    for source_id, fetch in fetchers.items():
        try:
            observed = await fetch()
            summary.results.append(await asyncio.to_thread(reconcile, catalog, source_id, observed))
        except PersistenceError:
            raise
        except ReconciliationSourceError as e:
            logger.warning("Source %s failed: %s", source_id, e.message)
            summary.failed_sources[source_id] = e.message
        except ValidationError as e:
            logger.warning("Source %s returned invalid data: %s", source_id, e.message)
            summary.failed_sources[source_id] = f"Invalid data: {e.message}"
        except Exception as e:
            logger.exception("Source %s failed unexpectedly", source_id)
            summary.failed_sources[source_id] = f"Unexpected error: {e}"

    logger.info("Reconciliation run complete: %s", summary.totals())
    return summary
