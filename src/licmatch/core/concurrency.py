# concurrency.py
# SPDX-License-Identifier: MIT
"""Concurrency helpers and executor configuration for corpus scans.

Wraps a thread pool executor with a bounded submission window so that
whole-corpus scans keep a fixed number of comparisons in flight and
consume results in completion order.
"""
from __future__ import annotations

from collections.abc import Callable, Iterable
from concurrent.futures import (
    FIRST_COMPLETED,
    Future,
    ThreadPoolExecutor,
    wait,
)
from dataclasses import dataclass
from typing import Literal, TypeVar

from .config import ScanConfig
from .log import get_logger

log = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class ExecutorConfig:
    """Immutable executor settings used to construct worker pools.

    Attributes:
        max_workers (int): Maximum number of worker threads.
        window (int): Maximum number of in-flight tasks allowed
            before backpressure is applied.
        kind (Literal["thread"]): Executor implementation to use.
    """
    max_workers: int
    window: int
    kind: Literal["thread"] = "thread"


class Executor:
    """Run tasks in a thread pool with bounded submission.

    This wrapper keeps at most ``cfg.window`` tasks in flight and
    delivers results to callbacks in completion order, not submission
    order.

    Attributes:
        cfg (ExecutorConfig): Executor configuration for this
            instance.
    """

    def __init__(self, cfg: ExecutorConfig) -> None:
        self.cfg = cfg

    def _make_executor(self) -> ThreadPoolExecutor:
        if self.cfg.max_workers < 1:
            raise ValueError("Executor requires max_workers >= 1")
        return ThreadPoolExecutor(
            max_workers=self.cfg.max_workers,
            thread_name_prefix="licmatch-scan",
        )

    def map_unordered(
        self,
        items: Iterable[T],
        fn: Callable[[T], R],
        on_result: Callable[[R], None],
        *,
        fail_fast: bool = False,
        on_error: Callable[[BaseException], None] | None = None,
    ) -> None:
        """Submit items to workers and consume results as they complete.

        At most ``window`` items are in flight; results reach
        ``on_result`` as they finish. A failure to submit an item and an
        exception raised by ``fn`` are both reported to ``on_error``.

        Args:
            items (Iterable[T]): Items to process.
            fn (Callable[[T], R]): Worker function invoked for each
                item.
            on_result (Callable[[R], None]): Callback invoked for each
                successful result.
            fail_fast (bool): Whether to re-raise the first worker or
                submission error and abort further processing.
            on_error (Callable[[BaseException], None] | None): Receives
                worker and submission errors.

        Raises:
            Exception: Propagates the first worker or submission error
                when ``fail_fast`` is True.
        """

        window = max(self.cfg.window, self.cfg.max_workers)
        with self._make_executor() as pool:
            pending: list[Future[R]] = []

            def _drain(block: bool = False) -> None:
                nonlocal pending
                if not pending:
                    return
                done, still = wait(
                    pending,
                    timeout=None if block else 0.0,
                    return_when=FIRST_COMPLETED,
                )
                pending = list(still)
                for fut in done:
                    try:
                        result = fut.result()
                    except Exception as exc:  # noqa: BLE001
                        if on_error:
                            on_error(exc)
                        if fail_fast:
                            for other in pending:
                                other.cancel()
                            raise
                        continue
                    on_result(result)

            for item in items:
                try:
                    fut = pool.submit(fn, item)
                    pending.append(fut)
                except Exception as exc:  # noqa: BLE001
                    log.warning("Could not submit scan item %r: %s", item, exc)
                    if on_error:
                        on_error(exc)
                    if fail_fast:
                        raise
                    continue
                if len(pending) >= window:
                    _drain(block=True)

            while pending:
                _drain(block=True)


def resolve_scan_executor_config(
    scan: ScanConfig, n_items: int | None = None
) -> tuple[ExecutorConfig, bool]:
    """Build executor settings for a whole-corpus scan.

    ``max_workers`` of 0 means ``os.cpu_count()``; the submission window
    defaults to four times the worker count. ``"process"`` and ``"auto"``
    executor kinds resolve to threads since compiled matchers are shared
    in-process. When ``n_items`` is known the worker count never exceeds it.

    Args:
        scan (ScanConfig): Scan section of the configuration.
        n_items (int | None): Number of items to be scanned, if known.

    Returns:
        tuple[ExecutorConfig, bool]: Executor configuration and the
            ``fail_fast`` flag.
    """
    max_workers = scan.resolved_workers()
    if n_items is not None:
        max_workers = max(1, min(max_workers, n_items))
    window = scan.submit_window or (max_workers * 4)
    raw_kind = (scan.executor_kind or "auto").strip().lower()
    if raw_kind != "thread":
        log.debug("Scan executor kind %r resolved to 'thread'.", raw_kind)
    exec_cfg = ExecutorConfig(max_workers=max_workers, window=max(window, max_workers), kind="thread")
    return exec_cfg, bool(scan.fail_fast)


__all__ = [
    "Executor",
    "ExecutorConfig",
    "resolve_scan_executor_config",
]
