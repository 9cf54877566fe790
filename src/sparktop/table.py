"""Process table layout shared by the Textual UI and the console mode."""

from rich.text import Text

from sparktop.engine import Frame, FrameRow, SortKey
from sparktop.models import Metric
from sparktop.sparkline import format_cpu, format_mib, format_rate, render_bars, scale_for

# (label, key, width); the history column takes the remaining width
COLUMNS: tuple[tuple[str, str, int], ...] = (
    ("PID", "pid", 7),
    ("PPID", "ppid", 7),
    ("NAME", "name", 16),
    ("S", "state", 2),
    ("CPU%", "cpu", 6),
    ("MEM", "memory", 7),
    ("READ", "disk_read", 9),
    ("WRITE", "disk_write", 9),
)
HISTORY_KEY = "history"
# Cell padding between columns
COLUMN_GAP = 2
FIXED_WIDTH = sum(width + COLUMN_GAP for _, _, width in COLUMNS)

METRIC_LABELS = {
    Metric.CPU: "cpu history",
    Metric.MEMORY: "mem history",
    Metric.DISK_READ: "read history",
    Metric.DISK_WRITE: "write history",
}

_SORT_COLUMNS = {
    SortKey.PID: "pid",
    SortKey.CPU: "cpu",
    SortKey.MEMORY: "memory",
    SortKey.DISK_READ: "disk_read",
    SortKey.DISK_WRITE: "disk_write",
}


def history_width_for(terminal_width: int, minimum: int = 10) -> int:
    """Columns left for the history sparkline on a terminal this wide."""
    return max(minimum, terminal_width - FIXED_WIDTH - COLUMN_GAP)


def column_label(label: str, key: str, frame: Frame | None) -> str:
    """Header label with a sort arrow on the sorted column."""
    if frame is None:
        return label
    sorted_keys = (
        ("disk_read", "disk_write")
        if frame.sort_key is SortKey.DISK_TOTAL
        else (_SORT_COLUMNS.get(frame.sort_key),)
    )
    if key in sorted_keys:
        return f"{label}{'↓' if frame.descending else '↑'}"
    return label


def state_cell(row: FrameRow) -> Text:
    """'R' for live processes, the tombstone countdown for dead ones."""
    if row.view.alive:
        return Text("R")
    return Text(f"{row.view.ticks_remaining}", style="red")


def row_cells(row: FrameRow, frame: Frame, direction: str = "rtl") -> list[str | Text]:
    """Cells for one process, in COLUMNS order followed by the history."""
    view = row.view
    history = render_bars(row.bars, scale_for(frame.metric, row.bars), direction)
    cells: list[str | Text] = [
        str(view.pid),
        str(view.ppid),
        view.name[:16],
        state_cell(row),
        format_cpu(view.cpu),
        format_mib(view.memory).strip(),
        format_rate(view.disk_read),
        format_rate(view.disk_write),
        history,
    ]
    if not view.alive:
        cells = [Text(c.plain if isinstance(c, Text) else c, style="dim") for c in cells[:-1]] + [
            history
        ]
    return cells


def status_line(frame: Frame) -> Text:
    """One-line summary: tick, process counts and sampling health."""
    text = Text()
    text.append(f"tick {frame.tick}  ", style="bold")
    text.append(f"{frame.alive} running", style="green")
    text.append(f"  {frame.tombstoned} exited", style="dim")
    text.append(f"  history: {METRIC_LABELS[frame.metric]}")
    if frame.status.degraded:
        text.append(
            f"  sampling degraded ({frame.status.consecutive_failures} failures: "
            f"{frame.status.last_error})",
            style="bold red",
        )
    elif frame.status.consecutive_failures:
        text.append("  sample skipped", style="yellow")
    return text
