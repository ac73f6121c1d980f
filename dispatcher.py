# dispatcher.py
import asyncio
import sys
from typing import Dict, Optional, Set

from records import RecordWriter
from worker import DEFAULT_TEMPLATE, RequestTemplate, Worker


class InvalidConfiguration(ValueError):
    pass


def validate(worker_count, period_ms):
    for name, value in (("worker count", worker_count), ("period", period_ms)):
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidConfiguration(f"{name} must be an integer, got {value!r}")
    if worker_count < 1:
        raise InvalidConfiguration(f"worker count must be >= 1, got {worker_count}")
    if period_ms < 0:
        raise InvalidConfiguration(f"period must be >= 0 ms, got {period_ms}")


class Dispatcher:
    """Runs N workers, each on its own fixed-rate timer.

    Tick k of a worker fires at start + k * period regardless of how long
    earlier ticks take. Every tick is a separate task, so invocations of the
    same worker overlap when the target is slower than the period. They are
    intentionally not serialized: that overlap is how server queuing shows up
    in the output. A period of 0 runs a worker back-to-back instead.
    """

    def __init__(self, template: RequestTemplate = DEFAULT_TEMPLATE, writer: Optional[RecordWriter] = None,
                 transport=None, timeout=None):
        self.template = template
        self.writer = writer or RecordWriter()
        self.transport = transport
        self.timeout = timeout
        self._workers: Dict[str, Worker] = {}
        self._schedule: Dict[str, asyncio.Task] = {}
        self._in_flight: Set[asyncio.Task] = set()
        self._stopped: Optional[asyncio.Event] = None
        self._started = False

    @property
    def identities(self):
        return list(self._workers)

    @property
    def workers(self):
        return dict(self._workers)

    @property
    def in_flight(self):
        return len(self._in_flight)

    def start(self, worker_count: int, period_ms: int):
        validate(worker_count, period_ms)
        if self._started:
            raise RuntimeError("Dispatcher already started")
        asyncio.get_running_loop()  # fail fast outside of a loop
        self._started = True
        self._stopped = asyncio.Event()

        for i in range(worker_count):
            identity = str(i)
            worker = Worker(identity, self.template, self.writer, transport=self.transport, timeout=self.timeout)
            self._workers[identity] = worker
            self._schedule[identity] = asyncio.create_task(
                self._fire_at_fixed_rate(worker, period_ms / 1000.0), name=f"timer-{identity}",
            )
        print(f"[Dispatcher] scheduled {worker_count} workers every {period_ms}ms", file=sys.stderr)

    async def _fire_at_fixed_rate(self, worker: Worker, period: float):
        loop = asyncio.get_running_loop()
        if period == 0:
            while True:
                await worker.run()
                await asyncio.sleep(0)  # an instant target must not starve the loop

        start = loop.time()
        tick = 0
        while True:
            self._spawn(worker)
            tick += 1
            # late ticks get a zero delay, so missed ticks are caught up rather than dropped
            await asyncio.sleep(max(0.0, start + tick * period - loop.time()))

    def _spawn(self, worker: Worker):
        task = asyncio.create_task(worker.run())
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def wait(self):
        if self._stopped is None:
            raise RuntimeError("Dispatcher not started")
        await self._stopped.wait()

    async def stop(self):
        if self._stopped is None or self._stopped.is_set():
            return
        tasks = list(self._schedule.values()) + list(self._in_flight)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        for worker in self._workers.values():
            await worker.aclose()
        self._stopped.set()
        print(f"[Dispatcher] stopped {len(self._workers)} workers", file=sys.stderr)

    async def run(self, worker_count: int, period_ms: int, duration: Optional[float] = None):
        self.start(worker_count, period_ms)
        try:
            await asyncio.wait_for(self.wait(), duration)
        except asyncio.TimeoutError:
            pass
        finally:
            await self.stop()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()
