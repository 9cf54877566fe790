"""Tests for the event stream and its producers."""

import threading

import pytest

from sparktop.events import (
    EventStream,
    InputProducer,
    Key,
    Quit,
    Resize,
    ResizeProducer,
    Tick,
    TickProducer,
)


def scripted(values):
    """A blocking-read stand-in that returns values in order, then None."""
    it = iter(values)
    return lambda: next(it, None)


class TestEventStream:
    """Tests for EventStream."""

    def test_fifo_order(self):
        """Test events from one sender arrive in posting order."""
        stream = EventStream()
        stream.post(Tick())
        stream.post(Key("s"))
        stream.post(Resize(80, 24))
        assert stream.next_event() == Tick()
        assert stream.next_event() == Key("s")
        assert stream.next_event() == Resize(80, 24)

    def test_iteration_stops_after_quit(self):
        """Test iterating yields events up to and including Quit."""
        stream = EventStream()
        for event in (Tick(), Key("q"), Quit(), Tick()):
            stream.post(event)
        assert list(stream) == [Tick(), Key("q"), Quit()]
        # The event after Quit is still queued
        assert stream.next_event() == Tick()

    def test_events_are_immutable(self):
        """Test events cannot be changed after posting."""
        with pytest.raises(AttributeError):
            Key("a").key = "b"  # type: ignore[misc]

    def test_many_senders(self):
        """Test concurrent posters lose nothing and keep their own order."""
        stream = EventStream()
        per_sender = 200

        def send(sender: int) -> None:
            for i in range(per_sender):
                stream.post(Resize(sender, i))

        threads = [threading.Thread(target=send, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        received = [stream.next_event() for _ in range(4 * per_sender)]
        for sender in range(4):
            heights = [e.height for e in received if e.width == sender]
            assert heights == list(range(per_sender))

    def test_attach_does_not_start(self):
        """Test producers only run once start() is called."""
        stream = EventStream()
        producer = InputProducer(stream, scripted(["a"]))
        stream.attach(producer)
        assert not producer.is_alive()
        assert stream.producers == [producer]


class TestProducers:
    """Tests for the producer threads."""

    def test_tick_producer_emits_immediately(self):
        """Test the first Tick is posted without waiting an interval."""
        stream = EventStream()
        producer = TickProducer(stream, interval=10.0)
        stream.attach(producer)
        stream.start()
        try:
            assert stream.next_event() == Tick()
        finally:
            producer.stop()

    def test_tick_producer_repeats(self):
        """Test ticks keep coming at the interval."""
        stream = EventStream()
        producer = TickProducer(stream, interval=0.01)
        stream.attach(producer)
        stream.start()
        try:
            for _ in range(3):
                assert stream.next_event() == Tick()
        finally:
            producer.stop()

    def test_tick_producer_is_daemon(self):
        """Test producers never keep the interpreter alive."""
        producer = TickProducer(EventStream())
        assert producer.daemon is True
        assert producer.name == "TickProducer"

    def test_tick_interval_minimum(self):
        """Test the interval has a lower bound."""
        assert TickProducer(EventStream(), interval=0.0).interval > 0

    def test_input_producer_posts_keys(self):
        """Test each key read becomes a Key event and end of input stops it."""
        stream = EventStream()
        producer = InputProducer(stream, scripted(["s", "f", "q"]))
        stream.attach(producer)
        stream.start()
        producer.join(timeout=2.0)

        assert not producer.is_alive()
        assert [stream.next_event() for _ in range(3)] == [Key("s"), Key("f"), Key("q")]

    def test_resize_producer_posts_sizes(self):
        """Test each notification becomes a Resize event."""
        stream = EventStream()
        producer = ResizeProducer(stream, scripted([(120, 40), (80, 24)]))
        stream.attach(producer)
        stream.start()
        producer.join(timeout=2.0)

        assert not producer.is_alive()
        assert stream.next_event() == Resize(120, 40)
        assert stream.next_event() == Resize(80, 24)

    def test_stop(self):
        """Test a stopped producer exits its loop."""
        stream = EventStream()
        producer = TickProducer(stream, interval=0.01)
        stream.attach(producer)
        stream.start()
        producer.stop()
        producer.join(timeout=2.0)
        assert producer.stopped
        assert not producer.is_alive()
