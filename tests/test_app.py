"""Tests for sparktop application."""

import asyncio
from types import MappingProxyType

import pytest
from textual.widgets import DataTable

from sparktop.app import ProcessTable, SparktopApp, StatusBar
from sparktop.config import Config
from sparktop.engine import Frame, FrameRow, SortKey
from sparktop.errors import InvariantViolation
from sparktop.models import Bar, LifeState, Metric, ProcessView, RawSample
from sparktop.monitor import IngestStatus


class StaticIngestor:
    """Always reports the same two processes."""

    def __init__(self) -> None:
        self.status = IngestStatus()

    def sample(self) -> dict[int, RawSample]:
        return {
            10: RawSample(pid=10, name="idle", ppid=1, cpu=0.01, disk_read=0.0, disk_write=0.0, memory=5.0),
            20: RawSample(pid=20, name="busy", ppid=1, cpu=0.9, disk_read=0.0, disk_write=0.0, memory=50.0),
        }


class FailingIngestor:
    """Raises on the first sample."""

    def __init__(self) -> None:
        self.status = IngestStatus()

    def sample(self) -> dict[int, RawSample]:
        raise InvariantViolation("boom")


def fast_config() -> Config:
    config = Config()
    config.engine.tick_interval = 0.05
    return config


def make_frame(pids: list[int], **kwargs) -> Frame:
    rows = tuple(
        FrameRow(
            view=ProcessView(
                pid=pid,
                name=f"p{pid}",
                ppid=1,
                state=LifeState.ALIVE,
                ticks_remaining=0,
                smoothed=MappingProxyType({metric: 0.0 for metric in Metric}),
                history_length=1,
                first_seen_tick=1,
            ),
            bars=(Bar(0.0, 1),) * 4,
        )
        for pid in pids
    )
    fields = dict(
        tick=1,
        rows=rows,
        status=IngestStatus(),
        history_width=4,
        metric=Metric.CPU,
        sort_key=SortKey.CPU,
        descending=True,
    )
    fields.update(kwargs)
    return Frame(**fields)


@pytest.mark.asyncio
async def test_app_creation():
    """Test SparktopApp can be instantiated."""
    app = SparktopApp(fast_config(), ingestor=StaticIngestor())
    assert app.title == "sparktop"
    assert app._control_loop is not None
    assert app._frames is not None


@pytest.mark.asyncio
async def test_app_compose():
    """Test SparktopApp composes correctly."""
    app = SparktopApp(fast_config(), ingestor=StaticIngestor())
    async with app.run_test() as pilot:
        assert pilot.app.query_one("#status") is not None
        assert pilot.app.query_one("#process-table") is not None


@pytest.mark.asyncio
async def test_app_receives_frames_from_loop():
    """Test frames produced by the control loop reach the table."""
    app = SparktopApp(fast_config(), ingestor=StaticIngestor())
    async with app.run_test() as pilot:
        await pilot.pause(1.0)

        process_table = pilot.app.query_one(ProcessTable)
        assert process_table.current_pids == [20, 10]
        status = pilot.app.query_one("#status", StatusBar)
        assert status.frame is not None
        assert status.frame.tick >= 1


@pytest.mark.asyncio
async def test_app_sort_binding():
    """Test that p re-sorts the table by pid."""
    app = SparktopApp(fast_config(), ingestor=StaticIngestor())
    async with app.run_test() as pilot:
        await pilot.pause(0.5)
        await pilot.press("p")
        await pilot.pause(0.5)

        assert app._control_loop.view_state.sort_key is SortKey.PID
        assert pilot.app.query_one(ProcessTable).current_pids == [10, 20]


@pytest.mark.asyncio
async def test_app_quit_binding():
    """Test that 'q' stops the control loop and exits."""
    app = SparktopApp(fast_config(), ingestor=StaticIngestor())
    async with app.run_test() as pilot:
        await pilot.pause(0.2)
        await pilot.press("q")

    app._control_thread.join(timeout=2.0)
    assert not app._control_thread.is_alive()


@pytest.mark.asyncio
async def test_app_exits_when_control_loop_fails(monkeypatch):
    """Test an exception in the control loop exits the app with a message."""
    app = SparktopApp(fast_config(), ingestor=FailingIngestor())
    messages = []
    exit_app = app.exit

    def record_exit(*args, **kwargs):
        messages.append(kwargs.get("message"))
        exit_app(*args, **kwargs)

    monkeypatch.setattr(app, "exit", record_exit)
    async with app.run_test():
        await asyncio.sleep(1.0)

    app._control_thread.join(timeout=2.0)
    assert not app._control_thread.is_alive()
    assert len(messages) == 1
    assert "InvariantViolation: boom" in messages[0]


@pytest.mark.asyncio
async def test_process_table_update_frame():
    """Test ProcessTable shows one row per process in frame order."""
    app = SparktopApp(fast_config(), ingestor=StaticIngestor())
    async with app.run_test() as pilot:
        process_table = pilot.app.query_one(ProcessTable)
        process_table.update_frame(make_frame([300, 100, 200]))

        table = pilot.app.query_one("#process-table", DataTable)
        assert process_table.current_pids == [300, 100, 200]
        assert table.row_count == 3


@pytest.mark.asyncio
async def test_process_table_removes_old_processes():
    """Test ProcessTable drops rows for processes no longer in the frame."""
    app = SparktopApp(fast_config(), ingestor=StaticIngestor())
    async with app.run_test() as pilot:
        process_table = pilot.app.query_one(ProcessTable)
        process_table.update_frame(make_frame([100, 200]))
        process_table.update_frame(make_frame([200]))

        table = pilot.app.query_one("#process-table", DataTable)
        assert process_table.current_pids == [200]
        assert table.row_count == 1


@pytest.mark.asyncio
async def test_process_table_rebuilds_on_width_change():
    """Test a new history width rebuilds the columns."""
    app = SparktopApp(fast_config(), ingestor=StaticIngestor())
    async with app.run_test() as pilot:
        process_table = pilot.app.query_one(ProcessTable)
        process_table.update_frame(make_frame([100]))
        process_table.update_frame(make_frame([100], history_width=30))

        table = pilot.app.query_one("#process-table", DataTable)
        assert table.columns["history"].width == 30
        assert table.row_count == 1
