"""Snapshot ingestion for sparktop.

Each call to SnapshotIngestor.sample() performs one OS query cycle with psutil:
a global CPU refresh first (per-process CPU percentages are computed relative
to it), then one pass over the process table.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass

import psutil

from sparktop.errors import TransientSampleFailure
from sparktop.logging import get_structlog
from sparktop.models import RawSample

log = get_structlog()

Snapshot = dict[int, RawSample]

_MIB = 1024 * 1024

# Attributes fetched per process in one pass
_ATTRS = [
    "pid",
    "name",
    "ppid",
    "cpu_percent",
    "io_counters",
    "memory_info",
]


@dataclass(slots=True, frozen=True)
class IngestStatus:
    """Health of the sampling loop, shown as a status hint by renderers."""

    consecutive_failures: int = 0
    last_error: str | None = None
    degraded: bool = False


class SnapshotIngestor:
    """
    Collects per-process CPU, disk and memory readings using psutil.

    Handles NoSuchProcess, AccessDenied and ZombieProcess per process by
    skipping that process. A failure of the whole query is absorbed: the
    previous snapshot is returned and the failure is counted.
    """

    def __init__(
        self,
        failure_threshold: int = 3,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the SnapshotIngestor.

        Args:
            failure_threshold: Consecutive failures before the status is degraded.
            clock: Monotonic clock used to turn IO counters into rates.
        """
        self._failure_threshold = max(1, failure_threshold)
        self._clock = clock
        self._previous: Snapshot = {}
        self._io_counters: dict[int, tuple[int, int]] = {}
        self._last_sample_at: float | None = None
        self._status = IngestStatus()
        # Initialize CPU percent (first call returns 0.0)
        psutil.cpu_percent()

    @property
    def status(self) -> IngestStatus:
        """Current sampling health."""
        return self._status

    def sample(self) -> Snapshot:
        """
        Run one query cycle and return a mapping of pid to RawSample.

        On a transient failure the previous snapshot is returned unchanged.
        """
        try:
            snapshot = self._query()
        except TransientSampleFailure as e:
            failures = self._status.consecutive_failures + 1
            degraded = failures >= self._failure_threshold
            self._status = IngestStatus(
                consecutive_failures=failures,
                last_error=str(e),
                degraded=degraded,
            )
            log.warning("sample_failed", error=str(e), consecutive=failures)
            if failures == self._failure_threshold:
                log.error("sampling_degraded", consecutive=failures)
            return self._previous

        if self._status.consecutive_failures:
            log.info("sampling_recovered", after=self._status.consecutive_failures)
            self._status = IngestStatus()
        self._previous = snapshot
        return snapshot

    def _query(self) -> Snapshot:
        """Query the OS, raising TransientSampleFailure if the cycle fails."""
        try:
            # Global refresh must precede per-process attribution
            psutil.cpu_percent()
            now = self._clock()
            processes = self._collect_processes(now)
        except (psutil.Error, OSError) as e:
            raise TransientSampleFailure(f"{type(e).__name__}: {e}") from e
        self._last_sample_at = now
        return processes

    def _collect_processes(self, now: float) -> Snapshot:
        """
        Collect raw samples for all running processes.

        Uses psutil.process_iter() with oneshot() context manager for efficiency.
        """
        elapsed = now - self._last_sample_at if self._last_sample_at is not None else 0.0
        processes: Snapshot = {}
        io_counters: dict[int, tuple[int, int]] = {}

        for proc in psutil.process_iter(attrs=_ATTRS):
            try:
                with proc.oneshot():
                    info = proc.info
                    pid = info.get("pid", proc.pid)

                    disk_read = disk_write = 0.0
                    io = info.get("io_counters")
                    if io is not None:
                        io_counters[pid] = (io.read_bytes, io.write_bytes)
                        prev = self._io_counters.get(pid)
                        if prev is not None and elapsed > 0:
                            disk_read = max(0.0, (io.read_bytes - prev[0]) / elapsed)
                            disk_write = max(0.0, (io.write_bytes - prev[1]) / elapsed)

                    mem_info = info.get("memory_info")
                    memory = mem_info.rss / _MIB if mem_info else 0.0

                    processes[pid] = RawSample(
                        pid=pid,
                        name=info.get("name") or "",
                        ppid=info.get("ppid") or 0,
                        cpu=(info.get("cpu_percent") or 0.0) / 100.0,
                        disk_read=disk_read,
                        disk_write=disk_write,
                        memory=memory,
                    )

            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                # Process died mid-poll or is off limits: skip it this tick
                continue

        # Counters for vanished pids are dropped with the old mapping
        self._io_counters = io_counters
        return processes
