"""Concurrent crawl of the caller graph reaching one function.

Queries run on a fixed-size thread pool. The thread calling :meth:`Crawler.crawl`
is the only one that touches the visited set, the pending futures and the
graph: workers just return a :class:`QueryResult`, and the coordinator merges
it. A function is therefore discovered, and queued, at most once.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Dict, Optional, Protocol

from . import config
from .errors import CallGraphError
from .models import CrawlReport, Edge, Function, Graph, QueryResult, SkippedNode

logger = logging.getLogger(__name__)


class Gateway(Protocol):
    def call_hierarchy(self, position: str, cancel: Optional[threading.Event] = None) -> QueryResult: ...


class Crawler:
    """Follows edges from a function to the functions that call it.

    Args:
        gateway: Answers call-hierarchy queries (normally a GoplsGateway).
        max_lineages: Upper bound on distinct functions discovered, start included.
        max_workers: Number of queries allowed in flight at once.
        fail_fast: Raise the first query error instead of skipping that function.
    """

    def __init__(
        self,
        gateway: Gateway,
        max_lineages: Optional[int] = None,
        max_workers: Optional[int] = None,
        fail_fast: Optional[bool] = None,
    ):
        self.gateway = gateway
        self.max_lineages = config.MAX_LINEAGES if max_lineages is None else max_lineages
        self.max_workers = config.MAX_WORKERS if max_workers is None else max_workers
        if self.max_lineages < 1 or self.max_workers < 1:
            raise ValueError(
                f"max_lineages and max_workers must be positive, got {self.max_lineages} and {self.max_workers}"
            )
        self.fail_fast = config.FAIL_FAST if fail_fast is None else fail_fast

    def crawl(self, start: Function) -> CrawlReport:
        report = CrawlReport(start=start)
        report.visited.add(start)
        pending: Dict[Future, Function] = {}
        cancel = threading.Event()

        executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="callergraph")
        try:
            pending[executor.submit(self._visit, start, cancel)] = start
            while pending:
                done, _ = wait(pending, return_when=FIRST_COMPLETED)
                for future in done:
                    function = pending.pop(future)
                    try:
                        result = future.result()
                    except CallGraphError as exc:
                        if self.fail_fast:
                            raise
                        logger.warning("Skipping %s: %s", function.name, exc)
                        report.skipped.append(SkippedNode(function=function, reason=str(exc)))
                        continue
                    if not self._merge(executor, pending, cancel, report, function, result):
                        return report
        finally:
            # Kill queries still running so no gopls process outlives the crawl.
            cancel.set()
            for future in pending:
                future.cancel()
            executor.shutdown(wait=True, cancel_futures=True)

        logger.info(
            "Crawl finished: %d functions, %d edges, %d skipped",
            len(report.visited), len(report.graph), len(report.skipped),
        )
        return report

    def build_graph(self, start: Function) -> Graph:
        return self.crawl(start).graph

    def _visit(self, function: Function, cancel: threading.Event) -> QueryResult:
        logger.info("visiting %s:%s", function.name, function.location)
        return self.gateway.call_hierarchy(function.position, cancel=cancel)

    def _merge(
        self,
        executor: ThreadPoolExecutor,
        pending: Dict[Future, Function],
        cancel: threading.Event,
        report: CrawlReport,
        callee: Function,
        result: QueryResult,
    ) -> bool:
        """Record edges into *callee* and queue newly discovered callers.

        Returns False once the lineage bound stops the crawl.
        """
        for call_site in result.callers:
            caller = call_site.function
            if caller.is_test:
                continue
            if caller not in report.visited:
                if len(report.visited) >= self.max_lineages:
                    logger.warning("Reached max number of lineages (%d)", self.max_lineages)
                    report.lineage_limit_reached = True
                    return False
                report.visited.add(caller)
                pending[executor.submit(self._visit, caller, cancel)] = caller
            logger.debug("%s -> %s at %s", caller.name, callee.name, call_site.location)
            report.graph.add(Edge(caller=call_site, callee=callee))
        return True
