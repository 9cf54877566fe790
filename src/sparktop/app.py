"""sparktop - Main Textual application."""

import threading
from queue import Empty, Queue

from textual import events
from textual.app import App, ComposeResult
from textual.containers import Container
from textual.widgets import DataTable, Footer, Static

from sparktop.config import Config
from sparktop.engine import ControlLoop, Frame, SortKey, ViewState
from sparktop.events import EventStream, Key, Quit, Resize, TickProducer
from sparktop.logging import get_structlog
from sparktop.models import Metric
from sparktop.monitor import SnapshotIngestor
from sparktop.store import ProcessStore
from sparktop.table import (
    COLUMNS,
    HISTORY_KEY,
    METRIC_LABELS,
    column_label,
    history_width_for,
    row_cells,
    status_line,
)

log = get_structlog()

# Left and right border of the process table
_BORDER = 2


class StatusBar(Static):
    """One-line status: tick, process counts and sampling health."""

    DEFAULT_CSS = """
    StatusBar {
        height: 1;
        padding: 0 1;
        background: $surface;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        super().__init__("Waiting for first sample...", *args, **kwargs)
        self.frame: Frame | None = None

    def update_frame(self, frame: Frame) -> None:
        """Show the status of a new frame."""
        self.frame = frame
        self.update(status_line(frame))


class ProcessTable(Container):
    """Container for the process data table."""

    DEFAULT_CSS = """
    ProcessTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    def __init__(self, direction: str = "rtl", *args, **kwargs) -> None:
        """Initialize ProcessTable."""
        super().__init__(*args, **kwargs)
        self._direction = direction
        self._row_order: list[int] = []
        # (history_width, sort_key, descending, metric) the columns were built for
        self._layout: tuple | None = None

    @property
    def current_pids(self) -> list[int]:
        """Pids in display order."""
        return list(self._row_order)

    def compose(self) -> ComposeResult:
        """Compose the process table."""
        yield DataTable(id="process-table")

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one("#process-table", DataTable)
        table.cursor_type = "row"
        self._add_columns(table, None, 0)

    def _add_columns(self, table: DataTable, frame: Frame | None, history_width: int) -> None:
        for label, key, width in COLUMNS:
            table.add_column(column_label(label, key, frame), key=key, width=width)
        label = METRIC_LABELS[frame.metric] if frame is not None else "history"
        table.add_column(label, key=HISTORY_KEY, width=max(history_width, len(label)))

    def update_frame(self, frame: Frame) -> None:
        """
        Update the process table with a new frame.

        Uses update_cell when the row order is unchanged; a new order, sort key,
        metric or history width rebuilds the table.
        """
        table = self.query_one("#process-table", DataTable)

        layout = (frame.history_width, frame.sort_key, frame.descending, frame.metric)
        if layout != self._layout:
            table.clear(columns=True)
            self._add_columns(table, frame, frame.history_width)
            self._layout = layout
            self._row_order = []

        order = [row.view.pid for row in frame.rows]
        if order != self._row_order:
            table.clear()
            for row in frame.rows:
                table.add_row(*row_cells(row, frame, self._direction), key=str(row.view.pid))
            self._row_order = order
            return

        keys = [key for _, key, _ in COLUMNS] + [HISTORY_KEY]
        for row in frame.rows:
            for key, cell in zip(keys, row_cells(row, frame, self._direction)):
                table.update_cell(str(row.view.pid), key, cell)


class SparktopApp(App):
    """Main sparktop application."""

    TITLE = "sparktop"
    SUB_TITLE = "Process activity at a glance"

    CSS = """
    Screen {
        layout: vertical;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("s", "send_key('s')", "Sort"),
        ("f", "send_key('f')", "Flip"),
        ("h", "send_key('h')", "History"),
        ("c", "send_key('c')", "CPU"),
        ("m", "send_key('m')", "Mem"),
        ("r", "send_key('r')", "Read"),
        ("w", "send_key('w')", "Write"),
        ("d", "send_key('d')", "Disk"),
        ("p", "send_key('p')", "PID"),
    ]

    def __init__(
        self,
        config: Config | None = None,
        ingestor: SnapshotIngestor | None = None,
    ) -> None:
        """Initialize the SparktopApp.

        Args:
            config: Settings; defaults when None.
            ingestor: Snapshot source; a psutil-backed SnapshotIngestor when None.
        """
        super().__init__()
        self._settings = config or Config()
        engine = self._settings.engine
        display = self._settings.display

        self._frames: Queue[Frame] = Queue()
        self._stream = EventStream()
        self._stream.attach(TickProducer(self._stream, engine.tick_interval))
        self._store = ProcessStore(
            ewma_weight=engine.ewma_weight,
            tombstone_ttl=engine.tombstone_ttl,
            sample_limit=engine.sample_limit,
            store_smoothed=engine.store_smoothed,
        )
        self._ingestor = ingestor or SnapshotIngestor(failure_threshold=engine.failure_threshold)
        self._control_loop = ControlLoop(
            self._stream,
            self._ingestor,
            self._store,
            self._frames.put,
            view_state=ViewState(
                sort_key=SortKey(display.sort_by),
                descending=display.descending,
                metric=Metric(display.metric),
            ),
            width_for=self._history_width,
        )
        self._control_thread = threading.Thread(
            target=self._run_control_loop, daemon=True, name="ControlLoop"
        )
        self._shut_down = False

    def _run_control_loop(self) -> None:
        """Run the control loop, exiting the app if it raises."""
        try:
            self._control_loop.run()
        except Exception as e:
            log.exception("control_loop_failed")
            self.call_from_thread(self.exit, message=f"sparktop stopped: {type(e).__name__}: {e}")

    def _history_width(self, terminal_width: int) -> int:
        return history_width_for(terminal_width - _BORDER, self._settings.display.min_history_width)

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield StatusBar(id="status")
        yield ProcessTable(direction=self._settings.display.direction)
        yield Footer()

    def on_mount(self) -> None:
        """Start the control loop and its producers when the app is mounted."""
        self._stream.post(Resize(self.size.width, self.size.height))
        self._control_thread.start()
        self._stream.start()
        # Poll the frame queue for updates
        self.set_interval(0.25, self._check_for_updates)

    def on_resize(self, event: events.Resize) -> None:
        """Forward terminal resizes to the control loop."""
        self._stream.post(Resize(event.size.width, event.size.height))

    def on_unmount(self) -> None:
        self._stop_producers()

    def _check_for_updates(self) -> None:
        """Drain the frame queue and show the most recent frame."""
        frame = None
        while True:
            try:
                frame = self._frames.get_nowait()
            except Empty:
                break

        if frame is not None:
            self._update_ui(frame)

    def _update_ui(self, frame: Frame) -> None:
        """Update the UI with a new frame."""
        self.query_one("#status", StatusBar).update_frame(frame)
        self.query_one(ProcessTable).update_frame(frame)

    def action_send_key(self, key: str) -> None:
        """Hand a key press to the control loop."""
        self._stream.post(Key(key))

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self._stop_producers()
        self.exit()

    def _stop_producers(self) -> None:
        if self._shut_down:
            return
        self._shut_down = True
        for producer in self._stream.producers:
            producer.stop()
        self._stream.post(Quit())
        log.info("app_stopped", ticks=self._control_loop.ticks)


def run_tui(config: Config) -> None:
    """Run the Textual interface."""
    app = SparktopApp(config)
    app.run()
