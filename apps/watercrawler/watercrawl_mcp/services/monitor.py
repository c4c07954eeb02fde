"""
Time-boxed monitoring of long-running WaterCrawl requests.

The MonitorEngine pulls events from a crawl or search event source one at a
time, keeps them in an append-only log, and stops when the job reaches a
terminal condition or the caller's wall-clock budget runs out. Timeouts are a
normal outcome: the report carries whatever events arrived before the cutoff.

Crawl and search jobs share one loop; they differ only in how the event source
is opened and in which events end the monitoring (see MONITOR_POLICIES).
"""

import logging
import math
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol

from .models import (
    JobEvent,
    JobKind,
    MonitorOptions,
    MonitorReport,
    MonitorStatus,
    ResultEvent,
    StateEvent,
)

logger = logging.getLogger(__name__)


class MonitorConfigurationError(ValueError):
    """Raised for invalid monitor arguments, before any polling happens."""


class JobEventSource(Protocol):
    """A single pass over a job's event stream."""

    async def next_event(self) -> JobEvent | None:
        """Return the next event, or None once the stream is exhausted."""
        ...

    async def aclose(self) -> None:
        ...


class JobEventClient(Protocol):
    """Remote job client capability required by the engine."""

    def open_crawl_events(self, job_id: str, download: bool) -> JobEventSource:
        ...

    def open_search_events(self, job_id: str, download: bool) -> JobEventSource:
        ...


def _is_terminal_state(event: JobEvent) -> bool:
    return isinstance(event, StateEvent) and event.is_terminal


def crawl_should_stop(event: JobEvent) -> bool:
    # Depending on batching, the crawl API reports completion either with a
    # final result or with a terminal state; whichever comes first wins.
    if isinstance(event, ResultEvent) and event.final:
        return True
    return _is_terminal_state(event)


def search_should_stop(event: JobEvent) -> bool:
    return _is_terminal_state(event)


@dataclass(frozen=True)
class MonitorPolicy:
    """Per-kind strategy: how to open the event source and when to stop."""

    open_source: Callable[[JobEventClient, str, bool], JobEventSource]
    should_stop: Callable[[JobEvent], bool]


MONITOR_POLICIES: dict[JobKind, MonitorPolicy] = {
    JobKind.CRAWL: MonitorPolicy(
        open_source=lambda client, job_id, download: client.open_crawl_events(job_id, download),
        should_stop=crawl_should_stop,
    ),
    JobKind.SEARCH: MonitorPolicy(
        open_source=lambda client, job_id, download: client.open_search_events(job_id, download),
        should_stop=search_should_stop,
    ),
}


def coerce_job_kind(kind: JobKind | str) -> JobKind:
    """Accept a JobKind or its string value."""
    try:
        return JobKind(kind)
    except ValueError:
        valid = ", ".join(k.value for k in JobKind)
        raise MonitorConfigurationError(f"Unknown monitor type: {kind}. Valid types: {valid}") from None


def validate_monitor_options(options: MonitorOptions) -> None:
    """Reject option values the engine cannot honor."""
    timeout = options.timeout_seconds
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
        raise MonitorConfigurationError(f"timeout_seconds must be a number, got {timeout!r}")
    if math.isnan(timeout) or timeout <= 0:
        raise MonitorConfigurationError(f"timeout_seconds must be positive, got {timeout!r}")
    if not isinstance(options.download, bool):
        raise MonitorConfigurationError(f"download must be a boolean, got {options.download!r}")


class MonitorEngine:
    """
    Drives a job event source to completion or timeout.

    The engine holds no per-call state between calls; every monitor() call owns
    its start time and event log, so one engine can serve concurrent calls.
    """

    def __init__(
        self,
        client: JobEventClient,
        clock: Callable[[], float] = time.monotonic,
        policies: dict[JobKind, MonitorPolicy] | None = None,
    ):
        self.client = client
        self._clock = clock
        self._policies = policies or MONITOR_POLICIES

    async def monitor(
        self,
        kind: JobKind | str,
        job_id: str,
        options: MonitorOptions | None = None,
        on_event: Callable[[JobEvent, int], Awaitable[None]] | None = None,
    ) -> MonitorReport:
        """
        Monitor a crawl or search request until it finishes or the budget runs out.

        Args:
            kind: Job type to monitor
            job_id: Identifier of the remote request
            options: Download flag and timeout budget
            on_event: Optional coroutine called with each event and the log size

        Returns:
            MonitorReport: "completed" or "timeout" with the collected events

        Raises:
            MonitorConfigurationError: If the arguments are invalid
            Exception: Any fault raised by the event source, unchanged
        """
        kind = coerce_job_kind(kind)
        options = options or MonitorOptions()
        validate_monitor_options(options)
        if not isinstance(job_id, str) or not job_id.strip():
            raise MonitorConfigurationError("job_id must be a non-empty string")

        policy = self._policies[kind]
        events: list[JobEvent] = []
        started = self._clock()

        logger.debug(
            f"Monitoring {kind.value} request {job_id} "
            f"(download={options.download}, timeout={options.timeout_seconds}s)"
        )

        source = policy.open_source(self.client, job_id, options.download)
        try:
            while True:
                event = await source.next_event()
                if event is None:
                    logger.debug(f"Event stream for {kind.value} request {job_id} ended")
                    break

                events.append(event)
                if on_event is not None:
                    await on_event(event, len(events))

                if self._clock() - started > options.timeout_seconds:
                    logger.info(
                        f"Monitoring {kind.value} request {job_id} timed out after "
                        f"{options.timeout_seconds}s with {len(events)} events"
                    )
                    return MonitorReport.timed_out(events, options.timeout_seconds)

                if policy.should_stop(event):
                    logger.debug(f"{kind.value} request {job_id} reached a terminal event: {event.type}")
                    break
        finally:
            await source.aclose()

        return MonitorReport(status=MonitorStatus.COMPLETED, events=list(events))
