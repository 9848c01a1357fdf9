"""Explicit timing spans for the training pipeline.

A `Timer` is a plain value handed to the functions that want to report spans.
There is no process-wide switch: a disabled timer measures nothing and reports
nothing, and results never depend on whether timing is enabled.
"""

from __future__ import annotations

import contextlib
import time
from collections.abc import Callable, Generator
from dataclasses import dataclass

from loguru import logger

from histree.logging import TIMING_LEVEL

type SpanReporter = Callable[[str, float], None]


def log_span(label: str, elapsed: float) -> None:
    """Report a finished span through loguru at the TIMING level.

    Args:
        label (str): Name of the span, e.g. `"quantize"`.
        elapsed (float): Wall-clock duration in seconds.
    """
    logger.log(TIMING_LEVEL, "{label}: {elapsed:.6f}s", label=label, elapsed=elapsed)


@dataclass(frozen=True)
class Timer:
    """Measures named spans and hands their durations to a reporter.

    Attributes:
        enabled (bool): When False, spans are no-ops. Defaults to False.
        reporter (SpanReporter): Callback receiving `(label, seconds)` for each
            finished span. Defaults to `log_span`.

    Examples:
        >>> spans = []
        >>> timer = Timer(enabled=True, reporter=lambda label, secs: spans.append(label))
        >>> with timer.span("quantize"):
        ...     pass
        >>> spans
        ['quantize']
    """

    enabled: bool = False
    reporter: SpanReporter = log_span

    @contextlib.contextmanager
    def span(self, label: str) -> Generator[None]:
        """Time the enclosed block and report it when the timer is enabled.

        The span is reported even if the block raises.

        Args:
            label (str): Name of the span.

        Yields:
            None: Control to the timed block.
        """
        if not self.enabled:
            yield
            return
        start = time.perf_counter()
        try:
            yield
        finally:
            self.reporter(label, time.perf_counter() - start)

    def timed[T](self, label: str, fn: Callable[[], T]) -> T:
        """Call `fn` inside a span and return its result.

        Args:
            label (str): Name of the span.
            fn (Callable[[], T]): Zero-argument callable to time.

        Returns:
            T: Whatever `fn` returns.
        """
        with self.span(label):
            return fn()


DISABLED_TIMER = Timer()
