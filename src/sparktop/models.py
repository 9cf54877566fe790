"""Data models for sparktop."""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum


class Metric(Enum):
    """Per-process metrics tracked by the store."""

    CPU = "cpu"  # fraction of one core, 0.0 - core_count
    DISK_READ = "disk_read"  # bytes/s
    DISK_WRITE = "disk_write"  # bytes/s
    MEMORY = "memory"  # resident set size, MiB


class LifeState(Enum):
    """Liveness of a process record."""

    ALIVE = "alive"
    TOMBSTONED = "tombstoned"


@dataclass(slots=True, frozen=True)
class RawSample:
    """Immutable reading of one process at one tick."""

    pid: int
    name: str
    ppid: int
    cpu: float
    disk_read: float
    disk_write: float
    memory: float

    @classmethod
    def zero(cls, pid: int, name: str = "", ppid: int = 0) -> "RawSample":
        """Synthetic all-zero sample, appended while a process is tombstoned."""
        return cls(
            pid=pid,
            name=name,
            ppid=ppid,
            cpu=0.0,
            disk_read=0.0,
            disk_write=0.0,
            memory=0.0,
        )

    def value(self, metric: Metric) -> float:
        """Return the reading for a metric."""
        return getattr(self, metric.value)


@dataclass(slots=True, frozen=True)
class ProcessView:
    """Read-only copy of a process record, safe to hand to renderers."""

    pid: int
    name: str
    ppid: int
    state: LifeState
    ticks_remaining: int  # tombstone countdown, 0 while alive
    smoothed: Mapping[Metric, float]
    history_length: int
    first_seen_tick: int

    @property
    def alive(self) -> bool:
        """True unless the process is tombstoned."""
        return self.state is LifeState.ALIVE

    @property
    def cpu(self) -> float:
        return self.smoothed[Metric.CPU]

    @property
    def disk_read(self) -> float:
        return self.smoothed[Metric.DISK_READ]

    @property
    def disk_write(self) -> float:
        return self.smoothed[Metric.DISK_WRITE]

    @property
    def memory(self) -> float:
        return self.smoothed[Metric.MEMORY]


@dataclass(slots=True, frozen=True)
class Bar:
    """One display column produced by the compression engine.

    compression_ratio is the nominal ratio of the tier the bar belongs to,
    used for glyph and colour selection rather than numeric reconstruction.
    """

    value: float
    compression_ratio: int
    stretched: bool = False


@dataclass(slots=True, frozen=True)
class Tier:
    """Age window [start, end) in ticks ago, rendered at a fixed ratio."""

    start: int
    end: int
    ratio: int

    @property
    def span(self) -> int:
        """Number of samples covered by the window."""
        return self.end - self.start
