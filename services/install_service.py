"""
Batch printer installation with a thread per batch.

This service installs a user's selection of printers in the background.
Each batch gets its own thread; inside the batch every printer runs the
same unit of work:

    resolve driver URL -> download PPD (temp file) -> (re)install queue

COMPLETE FAILURE CAPTURE:
    - Every printer produces exactly one InstallOutcome, wherever the unit
      failed (missing model, download, temp file, lpadmin)
    - No exception escapes a batch; successes are never rolled back
    - success_count + failure_count == number of dispatched printers

Scheduling policies:
    - SEQUENTIAL: one printer at a time, outcomes in selection order
    - PARALLEL: one thread per printer, outcomes in completion order,
      the outcome list is lock-protected and the batch joins all threads

Thread Safety:
    - Printers are passed in as an immutable tuple copied at selection time,
      together with the configuration snapshot they were selected from,
      so a concurrent configuration refresh cannot change a running batch
    - BatchResultStore and BatchRunner progress use threading.Lock
    - Cancellation only prevents new per-printer work; an lpadmin call that
      has started is always allowed to finish

Usage:
    # At app startup
    install_service = InstallService(installer, fetch_driver)

    # On "install" (main thread)
    batch_id = install_service.submit_batch(selected_printers, config)

    # Polling (main thread)
    progress = install_service.get_progress(batch_id)
    result = install_service.get_result(batch_id)

    # At app shutdown
    install_service.shutdown()
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections import Counter, OrderedDict
from contextlib import AbstractContextManager
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from core.exceptions import BatchAlreadyRunningError, InstallStepError
from models.install_result import (
    BatchProgress,
    BatchResult,
    BatchStatus,
    InstallOutcome,
    InstallPolicy,
)
from models.printer_config import Printer, PrinterConfiguration
from modules.driver_fetcher import downloaded_driver
from modules.driver_resolver import resolve_driver_url
from modules.queue_installer import QueueInstaller, validate_queue_name
from logging_config import get_logger, get_batch_logger, set_thread_name


# Module logger
logger = get_logger(__name__)

CANCELLED_REASON = "cancelled before start"

# Finished batches kept for the batch page and the polling endpoint
DEFAULT_MAX_RESULTS = 20

# url -> context manager yielding the local PPD path
DriverFetcher = Callable[[str], AbstractContextManager]


def dedupe_by_name(printers: Iterable[Printer]) -> Tuple[Tuple[Printer, ...], Tuple[str, ...]]:
    """
    Keep the first printer for each queue name.

    Returns:
        (unique printers in original order, names of dropped duplicates)
    """
    seen = set()
    unique: List[Printer] = []
    dropped: List[str] = []
    for printer in printers:
        if printer.name in seen:
            dropped.append(printer.name)
            continue
        seen.add(printer.name)
        unique.append(printer)
    return tuple(unique), tuple(dropped)


def install_printer(
    printer: Printer,
    config: PrinterConfiguration,
    installer: QueueInstaller,
    fetch_driver: DriverFetcher = downloaded_driver,
    unit_logger: Optional[logging.Logger] = None
) -> InstallOutcome:
    """
    Run the full install unit for one printer.

    Never raises: every failure becomes a failed InstallOutcome whose reason
    names the cause (model, URL, lpadmin output).
    """
    log = unit_logger or logger

    try:
        validate_queue_name(printer.name)
        url = resolve_driver_url(printer, config)
        log.debug(f"Driver for '{printer.name}' ({printer.model}): {url}")

        with fetch_driver(url) as ppd_path:
            return installer.install(printer, Path(ppd_path))

    except InstallStepError as e:
        log.warning(f"Installing '{printer.name}' failed: {e}")
        return InstallOutcome.failed(printer, str(e))
    except Exception as e:
        log.error(f"Unexpected error installing '{printer.name}': {e}", exc_info=True)
        return InstallOutcome.failed(printer, f"unexpected error: {e}")


class BatchRunner:
    """
    Runs one batch and tracks its progress.

    `unit` installs a single printer and must not raise (install_printer
    satisfies this); the runner still guards against it.
    """

    def __init__(
        self,
        batch_id: str,
        printers: Tuple[Printer, ...],
        unit: Callable[[Printer], InstallOutcome],
        policy: InstallPolicy = InstallPolicy.SEQUENTIAL,
        cancel_event: Optional[threading.Event] = None,
        skipped_duplicates: Tuple[str, ...] = ()
    ):
        self.batch_id = batch_id
        self.printers = tuple(printers)
        self.policy = policy
        self.skipped_duplicates = skipped_duplicates
        self._unit = unit
        self._cancel_event = cancel_event or threading.Event()
        self._logger = get_batch_logger(batch_id)

        self._lock = threading.Lock()
        self._outcomes: List[InstallOutcome] = []
        self._status = BatchStatus.PENDING
        self._current = ""
        self._started_at: Optional[datetime] = None

    @property
    def cancel_event(self) -> threading.Event:
        return self._cancel_event

    def cancel(self) -> None:
        self._cancel_event.set()

    def progress(self) -> BatchProgress:
        with self._lock:
            return BatchProgress(
                batch_id=self.batch_id,
                status=self._status,
                total=len(self.printers),
                completed=len(self._outcomes),
                current=self._current,
            )

    def run(self) -> BatchResult:
        """Install every printer and return the aggregate result."""
        started_at = datetime.now(timezone.utc)
        with self._lock:
            self._status = BatchStatus.RUNNING
            self._started_at = started_at

        self._logger.info(
            f"Installing {len(self.printers)} printers ({self.policy.value})"
        )

        if self.policy == InstallPolicy.PARALLEL:
            self._run_parallel()
        else:
            self._run_sequential()

        cancelled = self._cancel_event.is_set()
        with self._lock:
            outcomes = list(self._outcomes)
            self._status = BatchStatus.CANCELLED if cancelled else BatchStatus.COMPLETED

        result = BatchResult.from_outcomes(
            self.batch_id,
            outcomes,
            policy=self.policy,
            cancelled=cancelled,
            started_at=started_at,
            skipped_duplicates=self.skipped_duplicates,
        )
        self._logger.info(
            f"Batch finished - success: {result.success_count}, failed: {result.failure_count}"
        )
        return result

    def aborted_result(self, reason: str) -> BatchResult:
        """
        Result for a batch whose run() raised.

        Outcomes already recorded stand as they are (installed queues are
        not rolled back); only printers without an outcome are failed.
        """
        with self._lock:
            outcomes = list(self._outcomes)
            started_at = self._started_at
            self._status = BatchStatus.COMPLETED

        recorded = Counter(outcome.printer_name for outcome in outcomes)
        for printer in self.printers:
            if recorded[printer.name]:
                recorded[printer.name] -= 1
            else:
                outcomes.append(InstallOutcome.failed(printer, f"batch aborted: {reason}"))

        return BatchResult.from_outcomes(
            self.batch_id,
            outcomes,
            policy=self.policy,
            cancelled=self._cancel_event.is_set(),
            started_at=started_at,
            skipped_duplicates=self.skipped_duplicates,
        )

    def _run_sequential(self) -> None:
        for printer in self.printers:
            self._run_unit(printer)

    def _run_parallel(self) -> None:
        threads = []
        for printer in self.printers:
            if self._cancel_event.is_set():
                self._record(InstallOutcome.failed(printer, CANCELLED_REASON))
                continue

            thread = threading.Thread(
                target=self._run_unit,
                args=(printer,),
                name=f"Install-{printer.name}",
                daemon=True
            )
            threads.append(thread)
            thread.start()

        # All units must finish before the result is final
        for thread in threads:
            thread.join()

    def _run_unit(self, printer: Printer) -> None:
        if self._cancel_event.is_set():
            self._record(InstallOutcome.failed(printer, CANCELLED_REASON))
            return

        with self._lock:
            self._current = printer.name

        try:
            outcome = self._unit(printer)
        except Exception as e:
            self._logger.error(f"Install unit for '{printer.name}' raised: {e}", exc_info=True)
            outcome = InstallOutcome.failed(printer, f"unexpected error: {e}")

        self._record(outcome)

    def _record(self, outcome: InstallOutcome) -> None:
        with self._lock:
            self._outcomes.append(outcome)


class BatchResultStore:
    """
    Thread-safe storage for finished batch results.

    Batch threads WRITE results here, routes READ them as often as the
    batch page is reloaded. Only the newest `max_results` are kept.
    """

    def __init__(self, max_results: int = DEFAULT_MAX_RESULTS):
        self._results: "OrderedDict[str, BatchResult]" = OrderedDict()
        self._max_results = max(1, max_results)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._results)

    def put_result(self, result: BatchResult) -> None:
        with self._lock:
            self._results[result.batch_id] = result
            self._results.move_to_end(result.batch_id)
            while len(self._results) > self._max_results:
                evicted, _ = self._results.popitem(last=False)
                logger.debug(f"Evicted result for batch {evicted[:8]}")
            logger.debug(f"Stored result for batch {result.batch_id[:8]}")

    def get_result(self, batch_id: str) -> Optional[BatchResult]:
        with self._lock:
            return self._results.get(batch_id)


class InstallService:
    """
    Service for installing selected printers in the background.

    Creates one thread per batch and allows one batch at a time, the same
    way the install button stays disabled while an install is running.

    Attributes:
        policy: InstallPolicy used for new batches
    """

    def __init__(
        self,
        installer: QueueInstaller,
        fetch_driver: DriverFetcher = downloaded_driver,
        policy: InstallPolicy = InstallPolicy.SEQUENTIAL,
        dedupe: bool = True,
        max_results: int = DEFAULT_MAX_RESULTS
    ):
        self._installer = installer
        self._fetch_driver = fetch_driver
        self.policy = policy
        self._dedupe = dedupe
        self._result_store = BatchResultStore(max_results)

        self._runners_lock = threading.Lock()
        self._runners: Dict[str, BatchRunner] = {}
        self._threads: Dict[str, threading.Thread] = {}

        logger.info(f"InstallService initialized (policy: {policy.value}, dedupe: {dedupe})")

    @property
    def active_batch_id(self) -> Optional[str]:
        with self._runners_lock:
            for batch_id, thread in self._threads.items():
                if thread.is_alive():
                    return batch_id
        return None

    def create_runner(
        self,
        printers: Iterable[Printer],
        config: PrinterConfiguration,
        batch_id: Optional[str] = None
    ) -> BatchRunner:
        """Build a runner for a snapshot of the selected printers."""
        if batch_id is None:
            batch_id = str(uuid.uuid4())

        selected = tuple(printers)
        skipped: Tuple[str, ...] = ()
        if self._dedupe:
            selected, skipped = dedupe_by_name(selected)
            if skipped:
                logger.warning(
                    f"Batch {batch_id[:8]}: skipping duplicate selections {list(skipped)}"
                )

        batch_logger = get_batch_logger(batch_id)

        def unit(printer: Printer) -> InstallOutcome:
            return install_printer(
                printer, config, self._installer, self._fetch_driver, batch_logger
            )

        return BatchRunner(
            batch_id, selected, unit, policy=self.policy, skipped_duplicates=skipped
        )

    def submit_batch(
        self,
        printers: Iterable[Printer],
        config: PrinterConfiguration,
        batch_id: Optional[str] = None
    ) -> str:
        """
        Start installing a batch in a background thread.

        Returns:
            batch_id (UUID string); poll get_progress()/get_result()

        Raises:
            BatchAlreadyRunningError: If another batch is still running
        """
        with self._runners_lock:
            for running_id, thread in self._threads.items():
                if thread.is_alive():
                    raise BatchAlreadyRunningError(running_id)
            self._threads.clear()

            runner = self.create_runner(printers, config, batch_id)
            thread = threading.Thread(
                target=self._batch_thread_main,
                args=(runner,),
                name=f"Batch-{runner.batch_id[:8]}",
                daemon=True
            )
            self._runners[runner.batch_id] = runner
            self._threads[runner.batch_id] = thread

            logger.info(
                f"Submitting batch {runner.batch_id[:8]} with {len(runner.printers)} printers"
            )
            thread.start()

        return runner.batch_id

    def get_progress(self, batch_id: str) -> Optional[BatchProgress]:
        """Live progress of a batch, or its final state if it has finished."""
        with self._runners_lock:
            runner = self._runners.get(batch_id)
        if runner is not None:
            return runner.progress()

        result = self._result_store.get_result(batch_id)
        if result is None:
            return None
        return BatchProgress(
            batch_id=batch_id,
            status=result.status,
            total=result.total,
            completed=result.total,
        )

    def get_result(self, batch_id: str) -> Optional[BatchResult]:
        """Finished result of a batch (None while still running)."""
        return self._result_store.get_result(batch_id)

    def cancel(self, batch_id: str) -> bool:
        """
        Stop starting new printers in a running batch.

        Returns:
            True if the batch was running and has been asked to stop
        """
        with self._runners_lock:
            runner = self._runners.get(batch_id)
        if runner is None:
            return False
        logger.info(f"Cancelling batch {batch_id[:8]}")
        runner.cancel()
        return True

    def shutdown(self, timeout_per_thread: float = 30.0) -> None:
        """Cancel pending work and wait for running batches to finish."""
        with self._runners_lock:
            runners = list(self._runners.values())
            active = list(self._threads.items())

        for runner in runners:
            runner.cancel()

        if not active:
            logger.info("No active batch threads to wait for")
            return

        for batch_id, thread in active:
            if thread.is_alive():
                thread.join(timeout=timeout_per_thread)
                if thread.is_alive():
                    logger.warning(f"Batch thread {batch_id[:8]} did not complete in time")

        logger.info("Install service shutdown complete")

    def _batch_thread_main(self, runner: BatchRunner) -> None:
        set_thread_name(f"Batch-{runner.batch_id[:8]}")
        batch_logger = get_batch_logger(runner.batch_id)
        batch_logger.info("Batch thread starting")

        try:
            result = runner.run()
        except Exception as e:
            batch_logger.error(f"Batch failed: {e}", exc_info=True)
            result = runner.aborted_result(str(e))

        self._result_store.put_result(result)

        with self._runners_lock:
            self._runners.pop(runner.batch_id, None)

        batch_logger.info("Batch thread exiting")
