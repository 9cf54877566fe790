"""Control loop: the single consumer of the event stream.

The loop owns the snapshot ingestor and the process store. On every Tick it
samples, reconciles and publishes an immutable Frame for a renderer. All
store mutation happens on the thread that calls ControlLoop.run().
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum

from sparktop.events import EventStream, Key, Quit, Resize, Tick
from sparktop.logging import get_structlog
from sparktop.models import Bar, Metric, ProcessView
from sparktop.monitor import IngestStatus, SnapshotIngestor
from sparktop.store import ProcessStore

log = get_structlog()


class SortKey(Enum):
    """Sort keys for the process table."""

    CPU = "cpu"
    MEMORY = "memory"
    DISK_READ = "disk_read"
    DISK_WRITE = "disk_write"
    DISK_TOTAL = "disk_total"
    PID = "pid"


_SORT_FUNCS: dict[SortKey, Callable[[ProcessView], float]] = {
    SortKey.CPU: lambda v: v.cpu,
    SortKey.MEMORY: lambda v: v.memory,
    SortKey.DISK_READ: lambda v: v.disk_read,
    SortKey.DISK_WRITE: lambda v: v.disk_write,
    SortKey.DISK_TOTAL: lambda v: v.disk_read + v.disk_write,
    SortKey.PID: lambda v: v.pid,
}


def sort_views(
    views: Sequence[ProcessView],
    key: SortKey = SortKey.CPU,
    descending: bool = True,
) -> list[ProcessView]:
    """Sort process views; ties keep pid order."""
    return sorted(views, key=_SORT_FUNCS[key], reverse=descending)


@dataclass
class ViewState:
    """What the user asked to see: sort order and history metric."""

    sort_key: SortKey = SortKey.CPU
    descending: bool = True
    metric: Metric = Metric.CPU

    _SORT_KEYS = {
        "c": SortKey.CPU,
        "m": SortKey.MEMORY,
        "r": SortKey.DISK_READ,
        "w": SortKey.DISK_WRITE,
        "d": SortKey.DISK_TOTAL,
        "p": SortKey.PID,
    }

    def handle_key(self, key: str) -> bool:
        """Apply a key press. Returns True when the key asks to quit."""
        if key in ("q", "Q"):
            return True
        if key in self._SORT_KEYS:
            self.sort_key = self._SORT_KEYS[key]
            # PID reads naturally ascending, metrics descending
            self.descending = self.sort_key is not SortKey.PID
        elif key == "s":
            keys = list(SortKey)
            self.sort_key = keys[(keys.index(self.sort_key) + 1) % len(keys)]
            self.descending = self.sort_key is not SortKey.PID
        elif key == "f":
            self.descending = not self.descending
        elif key == "h":
            metrics = list(Metric)
            self.metric = metrics[(metrics.index(self.metric) + 1) % len(metrics)]
        return False


@dataclass(slots=True, frozen=True)
class FrameRow:
    """One table row: a process and its compressed history."""

    view: ProcessView
    bars: tuple[Bar, ...]


@dataclass(slots=True, frozen=True)
class Frame:
    """Everything a renderer needs for one redraw."""

    tick: int
    rows: tuple[FrameRow, ...]
    status: IngestStatus
    history_width: int
    metric: Metric
    sort_key: SortKey
    descending: bool
    tombstoned: int = 0

    @property
    def alive(self) -> int:
        return len(self.rows) - self.tombstoned


class ControlLoop:
    """Consumes events, drives sampling and publishes frames."""

    def __init__(
        self,
        stream: EventStream,
        ingestor: SnapshotIngestor,
        store: ProcessStore,
        publish: Callable[[Frame], None],
        view_state: ViewState | None = None,
        history_width: int = 40,
        width_for: Callable[[int], int] | None = None,
        max_ticks: int | None = None,
    ) -> None:
        """
        Initialize the ControlLoop.

        Args:
            stream: Event source; run() blocks on it.
            ingestor: OS query cycle, called on every Tick.
            store: Process records, reconciled on every Tick.
            publish: Receives each new Frame, on the loop's thread.
            view_state: Sort order and history metric, changed by Key events.
            history_width: Columns available for the history sparkline.
            width_for: Maps a terminal width to a history width on Resize.
            max_ticks: Post Quit after this many ticks (None runs forever).
        """
        self._stream = stream
        self._ingestor = ingestor
        self._store = store
        self._publish = publish
        self.view_state = view_state or ViewState()
        self._history_width = max(0, history_width)
        self._width_for = width_for or (lambda width: width)
        self._max_ticks = max_ticks
        self._ticks = 0
        self._last_frame: Frame | None = None

    @property
    def ticks(self) -> int:
        """Ticks handled so far."""
        return self._ticks

    @property
    def history_width(self) -> int:
        return self._history_width

    @property
    def last_frame(self) -> Frame | None:
        return self._last_frame

    def run(self) -> int:
        """Process events until Quit. Returns the number of ticks handled."""
        log.info("loop_started", history_width=self._history_width)
        for event in self._stream:
            if isinstance(event, Tick):
                self._on_tick()
            elif isinstance(event, Resize):
                self._history_width = max(0, self._width_for(event.width))
                self._republish()
            elif isinstance(event, Key):
                if self.view_state.handle_key(event.key):
                    self._stream.post(Quit())
                else:
                    self._republish()
        log.info("loop_stopped", ticks=self._ticks)
        return self._ticks

    def _on_tick(self) -> None:
        # Ticks queued behind our own Quit are ignored
        if self._max_ticks is not None and self._ticks >= self._max_ticks:
            return
        snapshot = self._ingestor.sample()
        self._store.reconcile(snapshot)
        self._ticks += 1
        self._emit()
        if self._max_ticks is not None and self._ticks >= self._max_ticks:
            self._stream.post(Quit())

    def _republish(self) -> None:
        # Nothing to redraw before the first tick
        if self._last_frame is not None:
            self._emit()

    def _emit(self) -> None:
        self._last_frame = self.build_frame()
        self._publish(self._last_frame)

    def build_frame(self) -> Frame:
        """Sort the store's views and compress each process's history."""
        state = self.view_state
        views = sort_views(self._store.snapshot_view(), state.sort_key, state.descending)
        rows = tuple(
            FrameRow(
                view=view,
                bars=tuple(
                    self._store.compressed_history(view.pid, state.metric, self._history_width)
                ),
            )
            for view in views
        )
        return Frame(
            tick=self._store.tick,
            rows=rows,
            status=self._ingestor.status,
            history_width=self._history_width,
            metric=state.metric,
            sort_key=state.sort_key,
            descending=state.descending,
            tombstoned=sum(1 for view in views if not view.alive),
        )
