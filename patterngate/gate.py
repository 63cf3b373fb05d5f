"""Gate controller: walk, match and aggregate, then decide pass/fail."""

from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional, Set

from .errors import GateStateError
from .matcher import FileScan, scan_file
from .policy import Policy
from .result import DIAG_CANCELLED, DIAG_WALK_WARNING, Diagnostic, Report, aggregate
from .rules.catalog import Catalog
from .utils.walker import FileWalk, WalkWarning, walk

logger = logging.getLogger(__name__)


class GateState(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    DONE = "done"


@dataclass(frozen=True)
class GateOutcome:
    report: Report
    success: bool


class _Collector:
    """Append-only sink shared by the worker threads."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.scans: List[FileScan] = []
        self.diagnostics: List[Diagnostic] = []

    def add_scan(self, scan: FileScan) -> None:
        with self._lock:
            self.scans.append(scan)

    def add_warning(self, warning: WalkWarning) -> None:
        with self._lock:
            self.diagnostics.append(Diagnostic(DIAG_WALK_WARNING, warning.path, warning.message))


class GateController:
    """Drive one scan through ``IDLE -> SCANNING -> DONE``.

    Files are scanned on a bounded thread pool fed lazily from the walker. The
    report order comes from ``aggregate``, so it does not depend on which
    worker finishes first. ``cancel()`` stops scheduling new files; scans that
    already started run to completion.
    """

    def __init__(self, workers: Optional[int] = None) -> None:
        self.workers = workers
        self.state = GateState.IDLE
        self._cancel = threading.Event()
        self._state_lock = threading.Lock()

    def cancel(self) -> None:
        self._cancel.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def run(
        self,
        root: Path | str,
        catalog: Catalog,
        policy: Policy,
        base: Path | str | None = None,
    ) -> GateOutcome:
        """Scan ``root`` and gate the result.

        ``base`` anchors reported paths when ``root`` is a single file and
        defaults to the current working directory.
        """

        with self._state_lock:
            if self.state is GateState.SCANNING:
                raise GateStateError("A scan is already in progress")
            self.state = GateState.SCANNING

        try:
            report = self._scan(Path(root), catalog, policy, base)
        finally:
            with self._state_lock:
                self.state = GateState.DONE
                self._cancel.clear()

        logger.info(
            "Scan finished: %d files, %d findings, verdict=%s",
            report.files_scanned,
            report.summary.total,
            report.verdict,
        )
        return GateOutcome(report=report, success=report.passed)

    def _pool_size(self, policy: Policy) -> int:
        return self.workers or policy.workers or os.cpu_count() or 1

    def _scan(self, root: Path, catalog: Catalog, policy: Policy, base: Path | str | None) -> Report:
        collector = _Collector()
        files = walk(root, policy.include_extensions, policy.exclude, on_warning=collector.add_warning, base=base)
        pool_size = self._pool_size(policy)
        logger.debug("Scanning %s with %d rules on %d workers", root, len(catalog), pool_size)

        complete = self._dispatch(files, catalog, collector, pool_size)

        diagnostics = list(collector.diagnostics)
        findings = []
        files_scanned = 0
        for scan in collector.scans:
            diagnostics.extend(scan.diagnostics)
            findings.extend(scan.findings)
            if scan.scanned:
                files_scanned += 1
        if not complete:
            diagnostics.append(Diagnostic(DIAG_CANCELLED, ".", "scan cancelled before all files were scanned"))
        return aggregate(findings, policy, diagnostics, files_scanned=files_scanned, complete=complete)

    def _dispatch(self, files: FileWalk, catalog: Catalog, collector: _Collector, pool_size: int) -> bool:
        """Feed files to the pool with at most ``2 * pool_size`` in flight.

        Returns ``False`` when cancellation left files unscanned.
        """

        max_in_flight = pool_size * 2
        in_flight: Set[Future] = set()
        complete = True

        def task(path: Path) -> bool:
            if self._cancel.is_set():
                return False
            collector.add_scan(scan_file(path, catalog, files.relative(path)))
            return True

        with ThreadPoolExecutor(max_workers=pool_size, thread_name_prefix="patterngate") as executor:
            for path in files:
                if self._cancel.is_set():
                    complete = False
                    break
                if len(in_flight) >= max_in_flight:
                    done, in_flight = wait(in_flight, return_when=FIRST_COMPLETED)
                    for future in done:
                        complete = future.result() and complete
                in_flight.add(executor.submit(task, path))
            for future in in_flight:
                complete = future.result() and complete
        return complete
