"""
Program Store
=============

Durable storage behind the program catalog: ``load()`` the whole catalog,
``save()`` the whole catalog. Saves are atomic; a concurrent reader sees the
old file or the new one, never a half-written one.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Protocol, Sequence

from mortgagematch.core.errors import PersistenceError, ValidationError
from mortgagematch.models.programs import ProgramRecord, ProgramStatus

logger = logging.getLogger(__name__)

# Saved files list active programs first, then pending review, then outdated
STATUS_ORDER = {
    ProgramStatus.ACTIVE: 0,
    ProgramStatus.PENDING_REVIEW: 1,
    ProgramStatus.OUTDATED: 2,
}


def sort_for_storage(records: Sequence[ProgramRecord]) -> List[ProgramRecord]:
    return sorted(records, key=lambda r: STATUS_ORDER[r.status])


class ProgramStore(Protocol):
    def load(self) -> List[ProgramRecord]:
        ...

    def save(self, records: Sequence[ProgramRecord]) -> None:
        ...


class InMemoryProgramStore:
    """Keeps serialized snapshots in memory. Used by tests and ephemeral runs."""

    def __init__(self, records: Sequence[ProgramRecord] = ()):
        self._snapshot: List[Dict[str, Any]] = [r.to_dict() for r in records]
        self.save_count = 0

    def load(self) -> List[ProgramRecord]:
        return [ProgramRecord.from_dict(data) for data in self._snapshot]

    def save(self, records: Sequence[ProgramRecord]) -> None:
        self._snapshot = [r.to_dict() for r in sort_for_storage(records)]
        self.save_count += 1


class JsonFileProgramStore:
    """
    The catalog as one JSON file.

    Accepts both the ``{"programs": [...]}`` wrapper and the bare list
    older catalog files use. Always writes the wrapper.
    """

    def __init__(self, path: os.PathLike):
        self.path = Path(path)

    def load(self) -> List[ProgramRecord]:
        if not self.path.exists():
            logger.info("No catalog file at %s, starting empty", self.path)
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise PersistenceError(f"Catalog file {self.path} is corrupt: {e}") from e
        except OSError as e:
            raise PersistenceError(f"Cannot read catalog file {self.path}: {e}") from e

        items = raw.get("programs", []) if isinstance(raw, dict) else raw
        if not isinstance(items, list):
            raise PersistenceError(f"Catalog file {self.path} does not contain a program list")
        try:
            return [ProgramRecord.from_dict(item) for item in items]
        except ValidationError as e:
            raise PersistenceError(f"Catalog file {self.path} has an invalid program: {e.message}") from e
        except (KeyError, TypeError, ValueError) as e:
            raise PersistenceError(f"Catalog file {self.path} has a malformed program: {e}") from e

    def save(self, records: Sequence[ProgramRecord]) -> None:
        payload = {"programs": [r.to_dict() for r in sort_for_storage(records)]}
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                tmp_name = tmp.name
                json.dump(payload, tmp, indent=2)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, self.path)
        except (OSError, TypeError, ValueError) as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise PersistenceError(f"Cannot write catalog file {self.path}: {e}") from e
        logger.debug("Saved %s programs to %s", len(records), self.path)
