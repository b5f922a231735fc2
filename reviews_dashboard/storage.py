import json
import logging
import os
import tempfile
import threading
from collections.abc import Iterable
from pathlib import Path

LOGGER = logging.getLogger(__name__)

_LOCKS: dict[Path, threading.Lock] = {}
_LOCKS_GUARD = threading.Lock()


def _lock_for(path: Path) -> threading.Lock:
    with _LOCKS_GUARD:
        return _LOCKS.setdefault(path, threading.Lock())


class ApprovalStoreError(RuntimeError):
    pass


class ApprovalStore:
    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).resolve()
        # Shared by every store on the same file; services are built per request.
        self._lock = _lock_for(self.path)

    def load(self) -> dict[str, bool]:
        with self._lock:
            return self._read()

    def load_or_empty(self) -> dict[str, bool]:
        try:
            return self.load()
        except ApprovalStoreError:
            LOGGER.warning("Approval store %s is unreadable, treating every review as unapproved", self.path)
            return {}

    def set(self, review_id: str, approved: bool) -> dict[str, bool]:
        return self.set_many([(review_id, approved)])

    def set_many(self, updates: Iterable[tuple[str, bool]]) -> dict[str, bool]:
        with self._lock:
            approvals = self._read()
            for review_id, approved in updates:
                approvals[review_id] = bool(approved)
            self._write(approvals)
            return dict(approvals)

    def check(self) -> tuple[bool, str | None]:
        try:
            self.load()
        except ApprovalStoreError as exc:
            return False, str(exc)
        return True, None

    def _read(self) -> dict[str, bool]:
        if not self.path.exists():
            return {}

        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, ValueError) as exc:
            raise ApprovalStoreError(f"Could not read approvals from {self.path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ApprovalStoreError(f"Approvals file {self.path} must contain a JSON object.")

        approvals: dict[str, bool] = {}
        for review_id, approved in data.items():
            if not isinstance(approved, bool):
                LOGGER.warning("Ignoring non-boolean approval %r for %s in %s", approved, review_id, self.path)
                continue
            approvals[str(review_id)] = approved
        return approvals

    def _write(self, approvals: dict[str, bool]) -> None:
        temp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=f"{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                temp_name = handle.name
                json.dump(approvals, handle, indent=2, sort_keys=True)
            os.replace(temp_name, self.path)
        except OSError as exc:
            if temp_name is not None:
                Path(temp_name).unlink(missing_ok=True)
            raise ApprovalStoreError(f"Could not write approvals to {self.path}: {exc}") from exc
