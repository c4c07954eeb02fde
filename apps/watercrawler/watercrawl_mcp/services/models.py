"""
Event and report models for WaterCrawl request monitoring.

WaterCrawl streams job progress as JSON messages of the form
``{"type": "state" | "result" | ..., "data": {...}}``. Each message is parsed
into a JobEvent subclass; the monitor engine accumulates them into a
MonitorReport.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict

TERMINAL_STATUSES = frozenset({"finished", "failed", "cancelled"})


class JobKind(str, Enum):
    """Remote job types that can be monitored."""

    CRAWL = "crawl"
    SEARCH = "search"


class MonitorStatus(str, Enum):
    """How a monitor call ended."""

    COMPLETED = "completed"
    TIMEOUT = "timeout"


class JobEvent(BaseModel):
    """A single message from a job event stream."""

    model_config = ConfigDict(frozen=True)

    type: str
    data: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "data": self.data}


class StateEvent(JobEvent):
    """Job status snapshot; ``data`` is the crawl or search request payload."""

    type: Literal["state"] = "state"

    @property
    def status(self) -> str | None:
        if isinstance(self.data, dict):
            return self.data.get("status")
        return None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class ResultEvent(JobEvent):
    """
    One unit of job output (a crawled page or a search hit).

    ``final`` marks the result that closes a crawl. It is read from a ``final``
    key on the message or its data. WaterCrawl streams are not known to send
    that key, so in practice a crawl monitor ends on a terminal state event and
    page results never stop it.
    """

    type: Literal["result"] = "result"
    final: bool = False

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        if self.final:
            payload["final"] = True
        return payload


def parse_job_event(payload: dict[str, Any]) -> JobEvent:
    """
    Build the matching JobEvent for a decoded stream message.

    Unknown message types are preserved as plain JobEvents so nothing the
    remote API sends is dropped.
    """
    if not isinstance(payload, dict):
        raise ValueError(f"Job event must be a JSON object, got {type(payload).__name__}")

    event_type = payload.get("type")
    data = payload.get("data")

    if event_type == "state":
        return StateEvent(data=data)
    if event_type == "result":
        final = bool(payload.get("final")) or (isinstance(data, dict) and bool(data.get("final")))
        return ResultEvent(data=data, final=final)
    if not isinstance(event_type, str) or not event_type:
        raise ValueError(f"Job event is missing its type: {payload!r}")
    return JobEvent(type=event_type, data=data)


@dataclass(frozen=True)
class MonitorOptions:
    """Caller options for a single monitor call."""

    download: bool = True
    timeout_seconds: float = 30


@dataclass
class MonitorReport:
    """Outcome of a monitor call: its terminal status and every event collected."""

    status: MonitorStatus
    events: list[JobEvent] = field(default_factory=list)
    message: str | None = None

    @classmethod
    def timed_out(cls, events: list[JobEvent], timeout_seconds: float) -> "MonitorReport":
        return cls(
            status=MonitorStatus.TIMEOUT,
            events=list(events),
            message=f"Monitoring timed out after {timeout_seconds:g} seconds",
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"status": self.status.value}
        if self.message:
            result["message"] = self.message
        result["events"] = [event.to_dict() for event in self.events]
        return result
