"""
Program Catalog
===============

Keyed collection of program records with a status lifecycle and a versioned,
append-only change history.

Every mutation runs as copy -> mutate -> save -> swap under one lock, so
readers never observe a change the store has not confirmed, and concurrent
writers never interleave on the same record.
"""

import copy
import logging
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterator, List, Optional

from mortgagematch.core.errors import NotFoundError, ValidationError
from mortgagematch.core.utc import utc_now
from mortgagematch.models.programs import (
    ChangeEntry,
    ChangeType,
    ObservedProgram,
    ProgramMetadata,
    ProgramRecord,
    ProgramSource,
    ProgramStatus,
    parse_status,
)
from mortgagematch.services.program_store import ProgramStore, sort_for_storage

logger = logging.getLogger(__name__)

# Fields a manual edit may change
EDITABLE_FIELDS = frozenset({
    "name", "description", "savings", "eligibility",
    "benefits", "requirements", "links", "additionalQuestions",
})

# Managed by the catalog itself; ignored when present in an edit
LIFECYCLE_FIELDS = frozenset({
    "id", "status", "source", "sourceId", "createdAt", "updatedAt",
    "lastValidatedAt", "expiresAt", "metadata", "lastUpdated",
})


def _check_income_tiers(content: ObservedProgram) -> None:
    missing = content.eligibility.missing_income_tiers()
    if missing:
        tiers = ", ".join(str(t) for t in missing)
        raise ValidationError(f"Income limits must cover household sizes 1-5 (missing: {tiers})", field="incomeLimits")


def apply_content(record: ProgramRecord, content: ObservedProgram) -> None:
    """Copy program content onto a record. Optional fields the content lacks are kept."""
    record.name = content.name
    record.description = content.description
    record.eligibility = content.eligibility
    record.benefits = list(content.benefits)
    record.requirements = list(content.requirements)
    if content.savings is not None:
        record.savings = content.savings
    if content.links is not None:
        record.links = list(content.links)
    if content.additional_questions is not None:
        record.additional_questions = list(content.additional_questions)


class ProgramCatalog:
    """Program records keyed by id, backed by a ProgramStore."""

    def __init__(self, store: ProgramStore, clock: Callable[[], datetime] = utc_now):
        self._store = store
        self._clock = clock
        self._lock = threading.RLock()
        self._records: Dict[str, ProgramRecord] = {}
        self.reload()

    def reload(self) -> None:
        """Replace the in-memory view with what the store holds."""
        with self._lock:
            records = self._store.load()
            self._records = {r.id: r for r in records}
        logger.info("Program catalog loaded with %s programs", len(self._records))

    def now(self) -> datetime:
        return self._clock()

    def __len__(self) -> int:
        return len(self._records)

    @contextmanager
    def transaction(self) -> Iterator[Dict[str, ProgramRecord]]:
        """
        Yield a private copy of the records for mutation.

        On normal exit the copy is saved and becomes the catalog. If the body
        raises, or the save fails, nothing changes.
        """
        with self._lock:
            working = copy.deepcopy(self._records)
            yield working
            self._store.save(list(working.values()))
            self._records = working

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get(self, program_id: str) -> Optional[ProgramRecord]:
        """Get a copy of a program, or None."""
        record = self._records.get(program_id)
        return copy.deepcopy(record) if record else None

    def require(self, program_id: str) -> ProgramRecord:
        record = self.get(program_id)
        if record is None:
            raise NotFoundError(program_id)
        return record

    def list(self, include_outdated: bool = False, include_all: bool = False) -> List[ProgramRecord]:
        """
        Programs in storage order (active, pending review, outdated).

        By default only active programs are visible. ``include_outdated``
        adds outdated ones; ``include_all`` shows everything, pending review
        included.
        """
        if include_all:
            visible = set(ProgramStatus)
        elif include_outdated:
            visible = {ProgramStatus.ACTIVE, ProgramStatus.OUTDATED}
        else:
            visible = {ProgramStatus.ACTIVE}
        records = [r for r in self._records.values() if r.status in visible]
        return copy.deepcopy(sort_for_storage(records))

    def stats(self, recent_days: int = 30) -> Dict[str, Any]:
        """Counts by status and source, plus programs updated in the last ``recent_days``."""
        records = list(self._records.values())
        cutoff = self.now() - timedelta(days=recent_days)
        return {
            "total": len(records),
            "byStatus": {s.value: sum(1 for r in records if r.status == s) for s in ProgramStatus},
            "bySource": {s.value: sum(1 for r in records if r.source == s) for s in ProgramSource},
            "updatedRecently": sum(1 for r in records if r.updated_at and r.updated_at >= cutoff),
            "recentDays": recent_days,
        }

    # =========================================================================
    # MANUAL CURATION
    # =========================================================================

    def upsert_manual(self, data: Dict[str, Any]) -> ProgramRecord:
        """
        Add a curated program.

        The program is active immediately. If the id already exists the
        record is replaced by this manual entry: it keeps its history and
        creation date, gains a version, and is no longer touched by scraping.
        """
        content = ObservedProgram.from_dict(data)
        _check_income_tiers(content)
        program_id = content.id or str(uuid.uuid4())
        now = self.now()

        with self.transaction() as records:
            existing = records.get(program_id)
            if existing is None:
                record = ProgramRecord(
                    id=program_id,
                    name=content.name,
                    description=content.description,
                    eligibility=content.eligibility,
                    status=ProgramStatus.ACTIVE,
                    source=ProgramSource.MANUAL_ENTRY,
                    created_at=now,
                    updated_at=now,
                    last_validated_at=now,
                    metadata=ProgramMetadata(
                        version=1,
                        change_history=[ChangeEntry(now, ChangeType.CREATED.value, "Created by manual entry")],
                    ),
                )
                apply_content(record, content)
                records[program_id] = record
                logger.info("Created program %s (%s)", program_id, record.name)
            else:
                record = existing
                apply_content(record, content)
                record.status = ProgramStatus.ACTIVE
                record.source = ProgramSource.MANUAL_ENTRY
                record.source_id = None
                record.expires_at = None
                record.updated_at = now
                record.last_validated_at = now
                record.metadata.record(now, ChangeType.UPDATED, "Replaced by manual entry")
                logger.info("Replaced program %s with a manual entry (v%s)", program_id, record.metadata.version)

        return copy.deepcopy(record)

    def update_manual(self, program_id: str, patch: Dict[str, Any]) -> ProgramRecord:
        """
        Merge ``patch`` over a program's content.

        Top-level fields are replaced whole (an ``eligibility`` in the patch
        replaces the old block). Lifecycle fields are ignored; anything else
        unknown is rejected.
        """
        if not isinstance(patch, dict):
            raise ValidationError("Update must be an object")
        unknown = set(patch) - EDITABLE_FIELDS - LIFECYCLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")
        now = self.now()

        with self.transaction() as records:
            record = records.get(program_id)
            if record is None:
                raise NotFoundError(program_id)
            merged = record.to_dict()
            merged.update({k: v for k, v in patch.items() if k in EDITABLE_FIELDS})
            content = ObservedProgram.from_dict(merged)
            if "eligibility" in patch:
                _check_income_tiers(content)
            apply_content(record, content)
            record.updated_at = now
            record.last_validated_at = now
            record.metadata.record(now, ChangeType.UPDATED, "Updated by manual edit")
            logger.info("Updated program %s (v%s)", program_id, record.metadata.version)

        return copy.deepcopy(record)

    def set_status(self, program_id: str, new_status: str, reason: Optional[str] = None) -> ProgramRecord:
        """
        Move a program to another lifecycle status.

        Going to outdated sets ``expires_at`` if it was not already set;
        going back to active clears it.
        """
        status = parse_status(new_status)
        return self._change_status(program_id, status, reason, expire_now=False)

    def soft_delete(self, program_id: str, reason: Optional[str] = None) -> ProgramRecord:
        """Retire a program: it becomes outdated and expires now. History is kept."""
        return self._change_status(program_id, ProgramStatus.OUTDATED, reason or "Deleted", expire_now=True)

    def hard_delete(self, program_id: str) -> ProgramRecord:
        """Remove a program and its history for good. For administrative correction only."""
        with self.transaction() as records:
            record = records.pop(program_id, None)
            if record is None:
                raise NotFoundError(program_id)
        logger.warning("Hard-deleted program %s (%s)", program_id, record.name)
        return record

    def _change_status(
        self,
        program_id: str,
        status: ProgramStatus,
        reason: Optional[str],
        expire_now: bool,
    ) -> ProgramRecord:
        now = self.now()
        with self.transaction() as records:
            record = records.get(program_id)
            if record is None:
                raise NotFoundError(program_id)
            previous = record.status
            record.status = status
            if status == ProgramStatus.OUTDATED:
                record.expires_at = now if expire_now else (record.expires_at or now)
            elif status == ProgramStatus.ACTIVE:
                record.expires_at = None
            record.updated_at = now
            details = f"{previous.value} -> {status.value}"
            if reason:
                details = f"{details}: {reason}"
            record.metadata.record(now, ChangeType.STATUS_CHANGE, details)
            logger.info("Program %s status %s", program_id, details)

        return copy.deepcopy(record)
