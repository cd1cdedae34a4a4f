"""Per-agent progress tracking.

The ``ProgressTable`` belongs to one orchestrator instance. Each agent writes
only its own slot and every slot moves forward only. Readers (a CLI display
thread, an API handler) may snapshot at any time.
"""

from __future__ import annotations

import threading
from typing import Protocol, runtime_checkable

from heavy.models import ProgressStatus
from heavy.utils.logging import get_logger

logger = get_logger(__name__)


@runtime_checkable
class ProgressSink(Protocol):
    """Observer notified on every accepted slot transition."""

    def on_update(self, agent_index: int, status: ProgressStatus) -> None: ...


class ProgressTable:
    """Fixed-size, forward-only status table."""

    def __init__(self, size: int, sink: ProgressSink | None = None) -> None:
        if size < 1:
            raise ValueError("Progress table size must be at least 1")
        self._lock = threading.Lock()
        self._slots = [ProgressStatus.QUEUED] * size
        self._sink = sink

    def __len__(self) -> int:
        return len(self._slots)

    @property
    def sink(self) -> ProgressSink | None:
        return self._sink

    def set_sink(self, sink: ProgressSink | None) -> None:
        self._sink = sink

    def reset(self, size: int | None = None) -> None:
        """Start a new run: every slot back to QUEUED."""
        with self._lock:
            self._slots = [ProgressStatus.QUEUED] * (size or len(self._slots))
            count = len(self._slots)
        for index in range(count):
            self._notify(index, ProgressStatus.QUEUED)

    def update(self, index: int, status: ProgressStatus) -> bool:
        """Move slot ``index`` to ``status`` if that is a forward transition.

        Returns:
            True if the slot changed, False if the transition was ignored.

        Raises:
            IndexError: If ``index`` is outside the table.
        """
        with self._lock:
            current = self._slots[index]
            if not current.can_transition_to(status):
                accepted = False
            else:
                self._slots[index] = status
                accepted = True

        if not accepted:
            if current != status:
                logger.debug(
                    "Ignored backward progress transition",
                    agent_index=index,
                    current=current.value,
                    requested=status.value,
                )
            return False

        self._notify(index, status)
        return True

    def get(self, index: int) -> ProgressStatus:
        with self._lock:
            return self._slots[index]

    def snapshot(self) -> list[ProgressStatus]:
        """Return a copy of all slots."""
        with self._lock:
            return list(self._slots)

    def all_terminal(self) -> bool:
        with self._lock:
            return all(s.is_terminal for s in self._slots)

    def _notify(self, index: int, status: ProgressStatus) -> None:
        if self._sink is None:
            return
        try:
            self._sink.on_update(index, status)
        except Exception as e:
            logger.warning(
                "Progress sink raised",
                agent_index=index,
                status=status.value,
                error=str(e),
            )
