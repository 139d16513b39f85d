"""Node stats collector.

`StatsCollector` implements the two callbacks `prometheus_client` expects from
a custom collector: `describe()` (static metadata, no network) and
`collect()` (one full scrape cycle).

Each cycle runs entirely under one exclusive lock:

  reset -> fetch -> decode -> remap -> snapshot

and only the finished snapshot is handed back to the registry, so concurrent
scrapes observe strictly sequential cycles and never a half-reset or
half-remapped instrument set.

Failure handling per cycle:
  unreachable / body read failure  -> up=0, instruments stay cleared
  decode failure / non-2xx status  -> up=1, instruments stay cleared
  node count != 1                  -> warning, remap whatever nodes exist
None of these escape `collect()`; the next scrape retries from scratch.
"""
from __future__ import annotations

import logging
import socket
import threading
import time
from enum import Enum

import requests
from prometheus_client.core import Metric

from ..config.runtime_config import ExporterConfig
from ..domain.models import NodeStatsResponse, decode_node_stats
from ..metrics.instruments import LabeledInstrument
from ..metrics.registry import InstrumentTables, build_instruments
from ..metrics.spec import NAMESPACE, UP_SPEC
from ..utils.exceptions import DecodeError, FetchError, ReadFailureError, UnreachableError
from ..version import get_version
from .remap import check_mapping, remap_node

logger = logging.getLogger(__name__)

__all__ = ["CycleOutcome", "StatsCollector"]

_CHUNK_SIZE = 64 * 1024


class CycleOutcome(Enum):
    OK = "ok"
    FETCH_FAILED = "fetch_failed"
    DECODE_FAILED = "decode_failed"


class StatsCollector:
    def __init__(self, uri: str, timeout: float = 5.0, *,
                 tables: InstrumentTables | None = None,
                 namespace: str = NAMESPACE,
                 session: requests.Session | None = None) -> None:
        self.uri = uri
        self.timeout = timeout
        self._tables = tables if tables is not None else build_instruments(namespace=namespace)
        check_mapping(self._tables)
        self._up = LabeledInstrument(UP_SPEC, namespace)
        self._up.set(0)
        if session is None:
            session = requests.Session()
            session.headers.update({
                "Accept": "application/json",
                "User-Agent": f"es-exporter/{get_version()}",
            })
        self._session = session
        self._lock = threading.Lock()
        self.last_outcome: CycleOutcome | None = None

    @classmethod
    def from_config(cls, config: ExporterConfig) -> StatsCollector:
        return cls(config.stats_uri, config.es_timeout)

    @property
    def tables(self) -> InstrumentTables:
        return self._tables

    @property
    def up(self) -> LabeledInstrument:
        return self._up

    def close(self) -> None:
        self._session.close()

    def describe(self) -> list[Metric]:
        return [self._up.describe(), *self._tables.describe()]

    def collect(self) -> list[Metric]:
        with self._lock:
            started = time.monotonic()
            self._tables.reset()
            self.last_outcome = self._run_cycle()
            families = [self._up.collect(), *(instrument.collect() for instrument in self._tables)]
            logger.debug("scrape cycle %s in %.3fs", self.last_outcome.value, time.monotonic() - started)
        return families

    def _run_cycle(self) -> CycleOutcome:
        try:
            status, body = self._fetch()
        except FetchError as e:
            self._up.set(0)
            logger.error("Error while querying Elasticsearch at %s: %s", self.uri, e)
            return CycleOutcome.FETCH_FAILED

        self._up.set(1)
        if not 200 <= status < 300:
            logger.error("Elasticsearch at %s answered HTTP %d; skipping this cycle", self.uri, status)
            return CycleOutcome.DECODE_FAILED
        try:
            response = decode_node_stats(body)
        except DecodeError as e:
            logger.error("Failed to decode node stats from %s: %s", self.uri, e)
            return CycleOutcome.DECODE_FAILED

        self._remap(response)
        return CycleOutcome.OK

    def _remap(self, response: NodeStatsResponse) -> None:
        # Only the local node is expected; extra nodes overwrite earlier ones (last wins).
        if (n := len(response.nodes)) != 1:
            logger.warning("Unexpected number of nodes returned: %d", n)
        for stats in response.nodes.values():
            remap_node(self._tables, response.cluster_name, stats)

    def _fetch(self) -> tuple[int, bytes]:
        """GET the stats endpoint; the timeout bounds connect and the whole body read.

        Per-read socket timeouts alone do not cap a body that trickles in, so a
        timer shuts the connection down once the deadline passes and the
        blocked read returns.
        """
        deadline = time.monotonic() + self.timeout
        try:
            resp = self._session.get(self.uri, timeout=(self.timeout, self.timeout), stream=True)
        except requests.RequestException as e:
            raise UnreachableError(str(e)) from e
        with resp:
            watchdog = threading.Timer(max(deadline - time.monotonic(), 0.0), _abort_read, args=(resp,))
            watchdog.daemon = True
            watchdog.start()
            chunks: list[bytes] = []
            try:
                for chunk in resp.iter_content(chunk_size=_CHUNK_SIZE):
                    chunks.append(chunk)
                    if time.monotonic() > deadline:
                        break
            except requests.RequestException as e:
                if time.monotonic() <= deadline:
                    raise ReadFailureError(str(e)) from e
            finally:
                watchdog.cancel()
            if time.monotonic() > deadline:
                raise ReadFailureError(f"response body not received within {self.timeout}s")
            return resp.status_code, b"".join(chunks)


def _abort_read(resp: requests.Response) -> None:
    """Shut down the socket under a streaming response, waking a blocked read."""
    sock = getattr(getattr(resp.raw, "connection", None), "sock", None)
    if sock is None:
        return
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError as e:
        logger.debug("body read already finished when the deadline fired: %s", e)
