"""Record stores: the persistence collaborator of the fleet service.

A store holds plain dict records grouped in named collections and supports
create/get/update/query, plus delete for undoing a partially applied
operation. Every call takes a timeout; a call that cannot get the store
within it raises StorageTimeoutError and changes nothing.
"""

import copy
import logging
import threading
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .errors import ConflictError, NotFoundError, StorageError, StorageTimeoutError

logger = logging.getLogger(__name__)

Record = Dict[str, Any]

DEFAULT_TIMEOUT = 5.0


class RecordStore:
    """
    Base store. Subclasses provide _read() and _write() of the whole dataset
    ({collection: {id: record}}); this class serializes access with a lock.
    """

    def __init__(self, default_timeout: float = DEFAULT_TIMEOUT):
        self.default_timeout = default_timeout
        self._lock = threading.Lock()

    # -- subclass hooks -------------------------------------------------------

    def _read(self) -> Dict[str, Dict[str, Record]]:
        raise NotImplementedError

    def _write(self, data: Dict[str, Dict[str, Record]]) -> None:
        raise NotImplementedError

    # -- locking --------------------------------------------------------------

    def _acquire(self, timeout: Optional[float], operation: str) -> None:
        timeout = self.default_timeout if timeout is None else timeout
        if not self._lock.acquire(timeout=timeout):
            raise StorageTimeoutError(f"Store {operation} timed out after {timeout}s")

    # -- operations -----------------------------------------------------------

    def create(
        self,
        collection: str,
        record: Record,
        record_id: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> str:
        """Insert a record and return its id."""
        record_id = record_id or uuid.uuid4().hex
        self._acquire(timeout, "create")
        try:
            data = self._read()
            records = data.setdefault(collection, {})
            if record_id in records:
                raise ConflictError(f"{collection}/{record_id} already exists")
            records[record_id] = copy.deepcopy(record)
            self._write(data)
        finally:
            self._lock.release()
        logger.debug("Created %s/%s", collection, record_id)
        return record_id

    def get(self, collection: str, record_id: str, timeout: Optional[float] = None) -> Record:
        """Return a copy of a record. Raises NotFoundError."""
        self._acquire(timeout, "get")
        try:
            record = self._read().get(collection, {}).get(record_id)
        finally:
            self._lock.release()
        if record is None:
            raise NotFoundError(f"{collection}/{record_id} not found")
        return copy.deepcopy(record)

    def update(
        self,
        collection: str,
        record_id: str,
        patch: Record,
        expect: Optional[Record] = None,
        timeout: Optional[float] = None,
    ) -> None:
        """
        Merge patch into a record. A None value removes the key.

        When expect is given, every key in it must hold the same value in the
        stored record or ConflictError is raised and nothing changes.
        """
        self._acquire(timeout, "update")
        try:
            data = self._read()
            record = data.get(collection, {}).get(record_id)
            if record is None:
                raise NotFoundError(f"{collection}/{record_id} not found")
            for key, value in (expect or {}).items():
                if record.get(key) != value:
                    raise ConflictError(
                        f"{collection}/{record_id} was modified concurrently"
                        f" ({key}={record.get(key)!r}, expected {value!r})"
                    )
            for key, value in patch.items():
                if value is None:
                    record.pop(key, None)
                else:
                    record[key] = copy.deepcopy(value)
            self._write(data)
        finally:
            self._lock.release()
        logger.debug("Updated %s/%s", collection, record_id)

    def replace(
        self,
        collection: str,
        record_id: str,
        record: Record,
        expect: Optional[Record] = None,
        timeout: Optional[float] = None,
    ) -> None:
        """Overwrite a whole record; keys missing from record are dropped."""
        current = self.get(collection, record_id, timeout=timeout)
        patch = {key: None for key in current if key not in record}
        patch.update(record)
        self.update(collection, record_id, patch, expect=expect, timeout=timeout)

    def query(
        self,
        collection: str,
        filters: Optional[Record] = None,
        order_by: Optional[str] = None,
        descending: bool = True,
        limit: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> List[Record]:
        """Return records whose fields equal every filter value."""
        self._acquire(timeout, "query")
        try:
            records = list(self._read().get(collection, {}).values())
        finally:
            self._lock.release()

        filters = filters or {}
        matches = [
            copy.deepcopy(r)
            for r in records
            if all(r.get(key) == value for key, value in filters.items())
        ]
        if order_by:
            # Records missing the field sort as lowest
            matches.sort(
                key=lambda r: (r.get(order_by) is not None, r.get(order_by)),
                reverse=descending,
            )
        if limit is not None:
            matches = matches[:limit]
        return matches

    def export(self, timeout: Optional[float] = None) -> Dict[str, Dict[str, Record]]:
        """Return a deep copy of every collection."""
        self._acquire(timeout, "export")
        try:
            return copy.deepcopy(self._read())
        finally:
            self._lock.release()

    def delete(self, collection: str, record_id: str, timeout: Optional[float] = None) -> None:
        """Remove a record. Used to undo a create."""
        self._acquire(timeout, "delete")
        try:
            data = self._read()
            if data.get(collection, {}).pop(record_id, None) is None:
                raise NotFoundError(f"{collection}/{record_id} not found")
            self._write(data)
        finally:
            self._lock.release()
        logger.debug("Deleted %s/%s", collection, record_id)


class MemoryStore(RecordStore):
    """Store kept in process memory, optionally starting from exported data."""

    def __init__(
        self,
        data: Optional[Dict[str, Dict[str, Record]]] = None,
        default_timeout: float = DEFAULT_TIMEOUT,
    ):
        super().__init__(default_timeout)
        self._data: Dict[str, Dict[str, Record]] = copy.deepcopy(data or {})

    def _read(self):
        return self._data

    def _write(self, data):
        self._data = data


class YamlStore(RecordStore):
    """
    Store persisted to a single YAML file.

    The file is read and rewritten on every call, so several processes may
    share it as long as only one writes at a time.
    """

    def __init__(self, filename: Union[str, Path], default_timeout: float = DEFAULT_TIMEOUT):
        super().__init__(default_timeout)
        self.filename = Path(filename)

    def _read(self):
        if not self.filename.exists():
            return {}
        try:
            with open(self.filename, "r") as fp:
                data = yaml.load(fp, Loader=yaml.SafeLoader)
        except (OSError, yaml.YAMLError) as e:
            raise StorageError(f"Cannot read {self.filename}: {e}") from e
        return data or {}

    def _write(self, data):
        try:
            with open(self.filename, "w") as fp:
                yaml.dump(
                    data,
                    fp,
                    default_flow_style=False,
                    allow_unicode=True,
                    sort_keys=False,
                    width=120,
                )
        except OSError as e:
            raise StorageError(f"Cannot write {self.filename}: {e}") from e
