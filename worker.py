# worker.py
import sys
import time
from dataclasses import dataclass, field
from typing import Mapping, Optional

import httpx

from records import RecordWriter, ResultRecord, failure_message

URL = "http://localhost:8088/search/test"


@dataclass(frozen=True)
class RequestTemplate:
    method: str = "POST"
    url: str = URL
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""

    def build(self, client: httpx.AsyncClient) -> httpx.Request:
        return client.build_request(self.method, self.url, headers=dict(self.headers), content=self.body)


DEFAULT_TEMPLATE = RequestTemplate()


class Worker:
    """Issues one request per run() over its own long lived client.

    run() never raises (short of cancellation): a failed request becomes a
    failure record so the schedule driving this worker keeps firing.
    """

    def __init__(self, identity: str, template: RequestTemplate = DEFAULT_TEMPLATE,
                 writer: Optional[RecordWriter] = None, transport=None, timeout=None):
        self.identity = identity
        self.template = template
        self.writer = writer or RecordWriter()
        self.transport = transport
        self.timeout = timeout
        self.client = self._new_client()

    def _new_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport, timeout=self.timeout)

    def _ensure_client(self) -> httpx.AsyncClient:
        if self.client.is_closed:
            print(f"[Worker {self.identity}] client closed, reconnecting", file=sys.stderr)
            self.client = self._new_client()
        return self.client

    async def run(self):
        response = None
        tic = time.perf_counter_ns()
        try:
            client = self._ensure_client()
            response = await client.send(self.template.build(client), stream=True)
            toc = time.perf_counter_ns()
            record = ResultRecord(
                self.identity, time.time_ns() // 1000, (toc - tic) // 1000, status=response.status_code,
            )
        except Exception as e:
            toc = time.perf_counter_ns()
            print(f"[Worker {self.identity}] ERROR: {failure_message(e)}", file=sys.stderr)
            record = ResultRecord(
                self.identity, time.time_ns() // 1000, (toc - tic) // 1000, error=failure_message(e),
            )
        finally:
            if response is not None:
                await self._release(response)
        self._emit(record)

    def _emit(self, record: ResultRecord):
        # a broken sink loses this record but never the worker's schedule
        try:
            self.writer.emit(record)
        except Exception as e:
            print(f"[Worker {self.identity}] failed to write record: {failure_message(e)}", file=sys.stderr)

    async def _release(self, response: httpx.Response):
        # drain before closing so the pooled connection can serve the next tick
        try:
            await response.aread()
        except Exception as e:
            print(f"[Worker {self.identity}] failed to drain response: {failure_message(e)}", file=sys.stderr)
        finally:
            try:
                await response.aclose()
            except Exception as e:
                print(f"[Worker {self.identity}] failed to close response: {failure_message(e)}", file=sys.stderr)

    async def aclose(self):
        await self.client.aclose()
