"""Event stream: ticks, keys and resizes merged into one queue.

Each producer is a daemon thread blocking on its own primitive (a sleep, a
terminal read, a resize notification) and posting immutable events into a
shared Queue. A single consumer drains the queue with next_event().

The queue is unbounded. Nothing is dropped; the design assumes the consumer
handles events faster than the fastest producer emits them at the default
tick interval. That assumption is not enforced.

Shutdown is a Quit event. Producers are not joined: they are daemon threads
reclaimed at process exit.
"""

import threading
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from queue import Queue


@dataclass(slots=True, frozen=True)
class Tick:
    """Time to sample and redraw."""


@dataclass(slots=True, frozen=True)
class Key:
    """A key read from the terminal."""

    key: str


@dataclass(slots=True, frozen=True)
class Resize:
    """The terminal changed size."""

    width: int
    height: int


@dataclass(slots=True, frozen=True)
class Quit:
    """Stop the consumer loop."""


Event = Tick | Key | Resize | Quit


class EventStream:
    """Multi-producer, single-consumer event channel."""

    def __init__(self) -> None:
        self._queue: Queue[Event] = Queue()
        self._producers: list["Producer"] = []

    def post(self, event: Event) -> None:
        """Enqueue an event. Safe from any thread, never blocks."""
        self._queue.put(event)

    def next_event(self) -> Event:
        """Block until the next event is available."""
        return self._queue.get()

    def __iter__(self) -> Iterator[Event]:
        """Yield events up to and including the first Quit."""
        while True:
            event = self.next_event()
            yield event
            if isinstance(event, Quit):
                return

    def attach(self, producer: "Producer") -> None:
        """Register a producer; start() launches it."""
        self._producers.append(producer)

    def start(self) -> None:
        """Start every attached producer that is not running yet."""
        for producer in self._producers:
            if not producer.is_alive():
                producer.start()

    @property
    def producers(self) -> list["Producer"]:
        return list(self._producers)


class Producer(threading.Thread):
    """Daemon thread posting events into a stream."""

    def __init__(self, stream: EventStream, name: str) -> None:
        super().__init__(daemon=True, name=name)
        self._stream = stream
        self._stop_event = threading.Event()

    def stop(self) -> None:
        """Ask the producer to exit at its next opportunity."""
        self._stop_event.set()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()


class TickProducer(Producer):
    """Emits a Tick immediately and then every ``interval`` seconds."""

    def __init__(self, stream: EventStream, interval: float = 1.0) -> None:
        super().__init__(stream, name="TickProducer")
        self._interval = max(0.01, interval)

    @property
    def interval(self) -> float:
        return self._interval

    def run(self) -> None:
        while not self._stop_event.is_set():
            self._stream.post(Tick())
            # Wait for interval seconds or until stop is requested
            self._stop_event.wait(timeout=self._interval)


class InputProducer(Producer):
    """Posts a Key for every key returned by ``read_key``.

    ``read_key`` blocks until input is available and returns None at end of
    input, which ends the producer.
    """

    def __init__(self, stream: EventStream, read_key: Callable[[], str | None]) -> None:
        super().__init__(stream, name="InputProducer")
        self._read_key = read_key

    def run(self) -> None:
        while not self._stop_event.is_set():
            key = self._read_key()
            if key is None:
                return
            self._stream.post(Key(key))


class ResizeProducer(Producer):
    """Posts a Resize each time ``wait_for_resize`` returns a new size.

    ``wait_for_resize`` blocks until the terminal size changes and returns
    (width, height), or None when no more notifications will come.
    """

    def __init__(
        self,
        stream: EventStream,
        wait_for_resize: Callable[[], tuple[int, int] | None],
    ) -> None:
        super().__init__(stream, name="ResizeProducer")
        self._wait_for_resize = wait_for_resize

    def run(self) -> None:
        while not self._stop_event.is_set():
            size = self._wait_for_resize()
            if size is None:
                return
            self._stream.post(Resize(*size))
