"""Process record store: smoothing, bounded history and tombstones.

The store is the single owner of per-process state. It is mutated once per
tick by ``reconcile`` on the control-loop thread; everything handed out is a
copy.
"""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from sparktop.compression import DEFAULT_TIERS, compress
from sparktop.errors import InvariantViolation
from sparktop.logging import get_structlog
from sparktop.models import Bar, LifeState, Metric, ProcessView, RawSample, Tier
from sparktop.ringbuffer import RingBuffer

log = get_structlog()


@dataclass(slots=True)
class ProcessRecord:
    """Mutable per-process state. Never leaves the store."""

    pid: int
    name: str
    ppid: int
    smoothed: dict[Metric, float]
    history: dict[Metric, RingBuffer]
    first_seen_tick: int
    state: LifeState = LifeState.ALIVE
    ticks_remaining: int = 0

    def view(self) -> ProcessView:
        """Return an immutable copy for renderers."""
        return ProcessView(
            pid=self.pid,
            name=self.name,
            ppid=self.ppid,
            state=self.state,
            ticks_remaining=self.ticks_remaining,
            smoothed=MappingProxyType(dict(self.smoothed)),
            history_length=len(self.history[Metric.CPU]),
            first_seen_tick=self.first_seen_tick,
        )


class ProcessStore:
    """Mapping of pid to process record, reconciled against each snapshot."""

    def __init__(
        self,
        ewma_weight: float = 0.5,
        tombstone_ttl: int = 5,
        sample_limit: int = 600,
        store_smoothed: bool = False,
        tiers: tuple[Tier, ...] = DEFAULT_TIERS,
    ) -> None:
        """
        Initialize the store.

        Args:
            ewma_weight: Weight given to new samples, in (0, 1].
            tombstone_ttl: Ticks a vanished process stays visible.
            sample_limit: Ring buffer capacity per metric.
            store_smoothed: Keep smoothed values in history instead of raw ones.
            tiers: Tier table used by compressed_history().
        """
        if not 0.0 < ewma_weight <= 1.0:
            raise InvariantViolation(f"ewma_weight must be in (0, 1], got {ewma_weight}")
        if tombstone_ttl < 0:
            raise InvariantViolation(f"tombstone_ttl must be >= 0, got {tombstone_ttl}")
        if sample_limit < 1:
            raise InvariantViolation(f"sample_limit must be >= 1, got {sample_limit}")
        self._ewma_weight = ewma_weight
        self._tombstone_ttl = tombstone_ttl
        self._sample_limit = sample_limit
        self._store_smoothed = store_smoothed
        self._tiers = tiers
        self._records: dict[int, ProcessRecord] = {}
        self._tick = 0

    @property
    def tick(self) -> int:
        """Number of reconciles performed so far."""
        return self._tick

    @property
    def sample_limit(self) -> int:
        return self._sample_limit

    @property
    def tombstone_ttl(self) -> int:
        return self._tombstone_ttl

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, pid: object) -> bool:
        return pid in self._records

    def reconcile(self, snapshot: Mapping[int, RawSample]) -> None:
        """Fold one tick's snapshot into the store."""
        self._tick += 1

        for pid, sample in snapshot.items():
            record = self._records.get(pid)
            if record is None:
                self._records[pid] = self._create(sample)
                continue
            if record.state is LifeState.TOMBSTONED:
                record.state = LifeState.ALIVE
                record.ticks_remaining = 0
                log.info("process_resurrected", pid=pid, name=record.name)
            self._ingest(record, sample)

        purged: list[int] = []
        for pid, record in self._records.items():
            if pid in snapshot:
                continue
            if record.state is LifeState.ALIVE:
                if self._tombstone_ttl == 0:
                    purged.append(pid)
                    continue
                record.state = LifeState.TOMBSTONED
                record.ticks_remaining = self._tombstone_ttl
                log.debug("process_tombstoned", pid=pid, name=record.name, ttl=self._tombstone_ttl)
                self._ingest(record, RawSample.zero(pid, record.name, record.ppid))
                continue
            record.ticks_remaining -= 1
            if record.ticks_remaining <= 0:
                purged.append(pid)
                continue
            self._ingest(record, RawSample.zero(pid, record.name, record.ppid))

        for pid in purged:
            record = self._records.pop(pid)
            log.debug("process_purged", pid=pid, name=record.name)

    def _create(self, sample: RawSample) -> ProcessRecord:
        record = ProcessRecord(
            pid=sample.pid,
            name=sample.name,
            ppid=sample.ppid,
            smoothed={metric: sample.value(metric) for metric in Metric},
            history={metric: RingBuffer(self._sample_limit) for metric in Metric},
            first_seen_tick=self._tick,
        )
        for metric in Metric:
            record.history[metric].push(sample.value(metric))
        return record

    def _ingest(self, record: ProcessRecord, sample: RawSample) -> None:
        alpha = self._ewma_weight
        for metric in Metric:
            raw = sample.value(metric)
            smoothed = alpha * raw + (1.0 - alpha) * record.smoothed[metric]
            record.smoothed[metric] = smoothed
            record.history[metric].push(smoothed if self._store_smoothed else raw)

    def snapshot_view(self) -> list[ProcessView]:
        """Return copies of all records, ordered by pid."""
        return [self._records[pid].view() for pid in sorted(self._records)]

    def __iter__(self) -> Iterator[ProcessView]:
        return iter(self.snapshot_view())

    def get(self, pid: int) -> ProcessView | None:
        """Return a copy of one record, or None if it is not tracked."""
        record = self._records.get(pid)
        return record.view() if record is not None else None

    def history(self, pid: int, metric: Metric) -> tuple[float, ...]:
        """Chronological copy of one metric's history (empty if unknown pid)."""
        record = self._records.get(pid)
        if record is None:
            return ()
        return record.history[metric].freeze()

    def compressed_history(self, pid: int, metric: Metric, width: int) -> list[Bar]:
        """Compress one metric's history into ``width`` bars, newest first."""
        return compress(self.history(pid, metric), width, self._tiers)
