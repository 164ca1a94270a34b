import logging
import os
from enum import Enum
from threading import RLock
from typing import Optional

from filelock import FileLock

from bkelastic.core._private.constants import BOOTSTRAP_STATUS_STARTED, \
    BOOTSTRAP_STATUS_COMPLETED
from bkelastic.core._private.errors import UnknownPriorState, \
    BootstrapAlreadyCompleted

logger = logging.getLogger(__name__)


class BootstrapStatus(Enum):
    NOT_STARTED = 1
    STARTED = 2
    COMPLETED = 3


_STATUS_VALUES = {
    BootstrapStatus.STARTED: BOOTSTRAP_STATUS_STARTED,
    BootstrapStatus.COMPLETED: BOOTSTRAP_STATUS_COMPLETED,
}


def status_to_value(status: BootstrapStatus) -> str:
    return _STATUS_VALUES[status]


def status_from_value(value: Optional[str]) -> Optional[BootstrapStatus]:
    """Map a persisted marker to a status. None for an unrecognized marker."""
    if value is None:
        return BootstrapStatus.NOT_STARTED
    for status, status_value in _STATUS_VALUES.items():
        if value == status_value:
            return status
    return None


def next_status(current: Optional[BootstrapStatus]) -> BootstrapStatus:
    """The status a run moves to when it finds the host in current status.

    A completed host stays completed. A started (or unrecognized) status
    means a previous run was interrupted and can not be resumed.
    """
    if current == BootstrapStatus.NOT_STARTED:
        return BootstrapStatus.STARTED
    if current == BootstrapStatus.COMPLETED:
        return BootstrapStatus.COMPLETED
    raise UnknownPriorState(
        "Bootstrap previously failed, will not continue from unknown state")


class StatusStore:
    """Interface for the durable storage of the bootstrap status marker."""

    def load(self) -> Optional[str]:
        """Return the persisted marker or None if there is none."""
        raise NotImplementedError

    def save(self, value: str) -> None:
        raise NotImplementedError


class TransactionContext(object):
    def __init__(self, lock_path):
        self.lock = RLock()
        self.file_lock = FileLock(lock_path)

    def __enter__(self):
        self.lock.acquire()
        self.file_lock.acquire()
        return self

    def __exit__(self, *args):
        self.file_lock.release()
        self.lock.release()


class FileStatusStore(StatusStore):
    def __init__(self, status_path, lock_path=None):
        if lock_path is None:
            lock_path = status_path + ".lock"
        os.makedirs(os.path.dirname(lock_path), exist_ok=True)
        os.makedirs(os.path.dirname(status_path), exist_ok=True)

        self.ctx = TransactionContext(lock_path)
        self.status_path = status_path

    def load(self) -> Optional[str]:
        with self.ctx:
            if not os.path.exists(self.status_path):
                return None
            with open(self.status_path) as f:
                # Same as reading the file in a shell: drop trailing newlines
                return f.read().rstrip("\n")

    def save(self, value: str) -> None:
        with self.ctx:
            with open(self.status_path, "w") as f:
                f.write(value + "\n")


class MemoryStatusStore(StatusStore):
    def __init__(self, value: Optional[str] = None):
        self.value = value
        self.writes = []

    def load(self) -> Optional[str]:
        return self.value

    def save(self, value: str) -> None:
        self.writes.append(value)
        self.value = value


class StatusTracker:
    """Gates the bootstrap on the persisted status marker."""

    def __init__(self, store: StatusStore) -> None:
        self.store = store

    def get_status(self) -> Optional[BootstrapStatus]:
        return status_from_value(self.store.load())

    def check_status(self) -> None:
        current = self.get_status()
        status = next_status(current)
        if status == BootstrapStatus.COMPLETED:
            logger.info("Bootstrap already completed successfully")
            raise BootstrapAlreadyCompleted()

        self.store.save(status_to_value(status))

    def complete(self) -> None:
        # This must be the last step of a successful bootstrap
        self.store.save(status_to_value(BootstrapStatus.COMPLETED))
