"""Plain console mode: a Rich Live table driven by the control loop.

The control loop runs on the main thread. Ticks, key presses (stdin in cbreak
mode) and terminal resizes (SIGWINCH) arrive from three producer threads.
"""

from rich.console import Console, Group
from rich.live import Live
from rich.table import Table

from sparktop import logging as slog
from sparktop.config import Config
from sparktop.engine import ControlLoop, Frame, SortKey, ViewState
from sparktop.events import EventStream, InputProducer, ResizeProducer, TickProducer
from sparktop.models import Metric
from sparktop.monitor import SnapshotIngestor
from sparktop.store import ProcessStore
from sparktop.table import (
    COLUMNS,
    METRIC_LABELS,
    column_label,
    history_width_for,
    row_cells,
    status_line,
)
from sparktop.terminal import ResizeWatcher, cbreak, read_key

# Lines taken by the status line, the table header and the border
_CHROME_LINES = 4


class ConsoleView:
    """Renders frames into a Rich Live display."""

    def __init__(self, console: Console | None = None, direction: str = "rtl") -> None:
        self._console = console or Console()
        self._direction = direction
        self._live: Live | None = None
        self.frames_rendered = 0

    def __enter__(self) -> "ConsoleView":
        self._live = Live(console=self._console, auto_refresh=False, transient=False)
        self._live.__enter__()
        return self

    def __exit__(self, *exc_info: object) -> None:
        if self._live is not None:
            self._live.__exit__(None, None, None)
            self._live = None

    def render(self, frame: Frame) -> Group:
        """Build the renderable for one frame, trimmed to the terminal height."""
        table = Table(box=None, pad_edge=False, expand=True)
        for label, key, width in COLUMNS:
            table.add_column(column_label(label, key, frame), width=width, no_wrap=True)
        table.add_column(METRIC_LABELS[frame.metric], no_wrap=True, ratio=1)

        max_rows = max(1, self._console.size.height - _CHROME_LINES)
        for row in frame.rows[:max_rows]:
            table.add_row(*row_cells(row, frame, self._direction))
        return Group(status_line(frame), table)

    def publish(self, frame: Frame) -> None:
        """Show a frame. Called on the control-loop thread."""
        self.frames_rendered += 1
        if self._live is not None:
            self._live.update(self.render(frame), refresh=True)


def run_console(config: Config, iterations: int | None = None, console: Console | None = None) -> int:
    """Run the monitor in the terminal until 'q' or ``iterations`` ticks.

    Returns the number of ticks handled.
    """
    console = console or Console()
    engine = config.engine
    display = config.display
    min_width = display.min_history_width

    stream = EventStream()
    stream.attach(TickProducer(stream, engine.tick_interval))
    interactive = console.is_terminal
    if interactive:
        stream.attach(InputProducer(stream, read_key))
    watcher = ResizeWatcher()
    if interactive and watcher.install():
        stream.attach(ResizeProducer(stream, watcher.wait))

    store = ProcessStore(
        ewma_weight=engine.ewma_weight,
        tombstone_ttl=engine.tombstone_ttl,
        sample_limit=engine.sample_limit,
        store_smoothed=engine.store_smoothed,
    )
    ingestor = SnapshotIngestor(failure_threshold=engine.failure_threshold)
    view_state = ViewState(
        sort_key=SortKey(display.sort_by),
        descending=display.descending,
        metric=Metric(display.metric),
    )

    try:
        with ConsoleView(console, display.direction) as view:
            loop = ControlLoop(
                stream,
                ingestor,
                store,
                view.publish,
                view_state=view_state,
                history_width=history_width_for(console.size.width, min_width),
                width_for=lambda width: history_width_for(width, min_width),
                max_ticks=iterations,
            )
            with cbreak():
                stream.start()
                ticks = loop.run()
    finally:
        watcher.uninstall()

    if ingestor.status.degraded:
        slog.sampling_degraded(ingestor.status.consecutive_failures, ingestor.status.last_error)
    slog.monitor_stopped(ticks)
    return ticks
