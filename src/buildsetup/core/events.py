"""Functional events for a setup run.

Progress records (``setup started``, ``unit.build completed`` ...) are kept
apart from debug logging. They are queued on an ``EventBus`` and handed to
observers on a background thread, so a slow terminal or disk never holds up
a build. Each run's events end up in one JSONL file under the workdir.
"""

from __future__ import annotations

import json
import os
import threading
import time
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from queue import Full, Queue
from typing import Any, Dict, List, Optional

from buildsetup.core.logger import get_logger

DEFAULT_SCHEMA_VERSION = "1.0"

logger = get_logger(__name__)

# Optional global bus for framework-wide access without changing signatures
_GLOBAL_BUS: Optional["EventBus"] = None


def set_global_bus(bus: Optional["EventBus"]) -> None:
    global _GLOBAL_BUS
    _GLOBAL_BUS = bus


def get_global_bus() -> Optional["EventBus"]:
    return _GLOBAL_BUS


def publish_event(
    *,
    stage: str,
    status: str,
    duration_ms: Optional[int] = None,
    details: Optional[Dict[str, Any]] = None,
    error: Optional[Dict[str, Any]] = None,
) -> None:
    """Publish to the global bus; a no-op when no bus is installed."""
    bus = _GLOBAL_BUS
    if bus is None:
        return
    try:
        bus.publish(stage=stage, status=status, duration_ms=duration_ms, details=details, error=error)
    except Exception as exc:  # noqa: BLE001 - observers must never break a build
        logger.debug(f"Dropping event {stage}/{status}: {exc}")


class timed_stage:
    """Publish started, then completed or failed, around a block.

    Usage:
        with timed_stage("packages.install", details={"manager": "apt-get"}):
            install_packages(...)
    """

    def __init__(self, stage: str, *, details: Optional[Dict[str, Any]] = None):
        self.stage = stage
        self.details = details
        self._started = 0.0

    def __enter__(self) -> "timed_stage":
        self._started = time.monotonic()
        publish_event(stage=self.stage, status="started", details=self.details)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):  # type: ignore
        elapsed = int((time.monotonic() - self._started) * 1000)
        error = None
        if exc_type is not None:
            error = {"code": exc_type.__name__, "message": str(exc_val)}
        publish_event(
            stage=self.stage,
            status="failed" if error else "completed",
            duration_ms=elapsed,
            details=self.details,
            error=error,
        )
        return False


@dataclass
class FunctionalEvent:
    schema_version: str = DEFAULT_SCHEMA_VERSION
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    seq_no: int = 0
    ts: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    run_id: str = "-"
    setup_name: str = "-"

    stage: str = "-"  # setup, packages.install, unit.fetch, unit.build ...
    status: str = "-"  # started|completed|failed|degraded

    duration_ms: Optional[int] = None
    details: Optional[Dict[str, Any]] = None
    error: Optional[Dict[str, Any]] = None

    def to_json(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False, default=str)


class EventObserver:
    """Receives events on the bus thread. ``close`` runs once at shutdown."""

    def handle(self, event: FunctionalEvent) -> None:  # pragma: no cover
        raise NotImplementedError

    def close(self) -> None:
        pass


class StdoutObserver(EventObserver):
    """One progress line per event."""

    def handle(self, event: FunctionalEvent) -> None:
        parts = [event.ts, f"run={event.run_id}", f"{event.stage} {event.status}"]
        if event.duration_ms is not None:
            parts[-1] += f" duration_ms={event.duration_ms}"
        if event.details:
            parts.append(f"details={dict(list(event.details.items())[:4])}")
        if event.error:
            parts.append(f"error={event.error.get('code')}: {event.error.get('message')}")
        print(" | ".join(parts))


class MemoryJSONLObserver(EventObserver):
    """Collects a run's events and writes them as one JSONL file on close.

    Layout: ``<base_path>/<setup_name>/<YYYY-MM-DD>/<run_id>.jsonl``.
    """

    def __init__(self, base_path: str, setup_name: str, run_id: str) -> None:
        date_str = datetime.now(timezone.utc).strftime("%Y-%m-%d")
        self.dir_path = os.path.join(base_path, setup_name, date_str)
        self.file_path = os.path.join(self.dir_path, f"{run_id}.jsonl")
        self._lines: List[str] = []

    def handle(self, event: FunctionalEvent) -> None:
        self._lines.append(event.to_json())

    def close(self) -> None:
        if not self._lines:
            return
        try:
            os.makedirs(self.dir_path, exist_ok=True)
            with open(self.file_path, "w", encoding="utf-8") as f:
                f.write("\n".join(self._lines) + "\n")
        except OSError as e:
            logger.warning(f"Event log write failed: {type(e).__name__}: {e}")
            return
        self._lines.clear()


_STOP = object()


class EventBus:
    """Bounded queue drained by one dispatcher thread.

    A ``completed`` or ``failed`` event without an explicit duration gets one
    from the last ``started`` event of the same stage. When the queue is full
    events are dropped rather than blocking the build.
    """

    def __init__(
        self,
        *,
        run_id: str,
        setup_name: str,
        observers: Optional[List[EventObserver]] = None,
        queue_size: int = 10_000,
    ) -> None:
        self.run_id = str(run_id)
        self.setup_name = setup_name
        self.observers: List[EventObserver] = list(observers or [])
        self.dropped = 0

        self._q: Queue = Queue(maxsize=max(1, queue_size))
        self._seq_no = 0
        self._started_at: Dict[str, float] = {}
        self._worker: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._worker is not None:
            return
        self._worker = threading.Thread(target=self._dispatch, name="buildsetup-events")
        self._worker.start()

    def shutdown(self) -> None:
        """Deliver everything queued so far, then close the observers."""
        if self._worker is None:
            return
        # Blocking put: the stop marker must land behind every queued event
        self._q.put(_STOP)
        self._worker.join()
        self._worker = None
        for obs in self.observers:
            try:
                obs.close()
            except Exception as exc:  # noqa: BLE001
                logger.debug(f"Observer {type(obs).__name__} close failed: {exc}")

    def _dispatch(self) -> None:
        while True:
            item = self._q.get()
            if item is _STOP:
                return
            for obs in self.observers:
                try:
                    obs.handle(item)
                except Exception as exc:  # noqa: BLE001 - isolate observer failures
                    logger.debug(f"Observer {type(obs).__name__} failed: {exc}")

    def publish(
        self,
        *,
        stage: str,
        status: str,
        duration_ms: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        error: Optional[Dict[str, Any]] = None,
    ) -> None:
        now = time.monotonic()
        if status == "started":
            self._started_at[stage] = now
        elif status in ("completed", "failed"):
            started = self._started_at.pop(stage, None)
            if duration_ms is None and started is not None:
                duration_ms = int((now - started) * 1000)

        self._seq_no += 1
        event = FunctionalEvent(
            seq_no=self._seq_no,
            run_id=self.run_id,
            setup_name=self.setup_name,
            stage=stage,
            status=status,
            duration_ms=duration_ms,
            details=details,
            error=error,
        )
        try:
            self._q.put_nowait(event)
        except Full:
            self.dropped += 1
            if self.dropped % 100 == 1:
                logger.warning(f"Event queue full, {self.dropped} event(s) dropped so far")


def _env(name: str, default: str) -> str:
    value = os.getenv(name)
    return value if value else default


def build_default_bus(*, run_id: str, setup_name: str, base_path: str) -> Optional[EventBus]:
    """Construct the run's EventBus from environment variables.

    BUILDSETUP_EVENTS_ENABLED: "true" | "false" (default: "true")
    BUILDSETUP_EVENTS_TRANSPORTS: comma list of stdout, jsonl (default: both)
    BUILDSETUP_EVENTS_PATH: JSONL base path (default: the ``base_path`` argument)
    BUILDSETUP_EVENTS_QUEUE_SIZE: int (default: 10000)
    """
    if _env("BUILDSETUP_EVENTS_ENABLED", "true").lower() != "true":
        return None

    transports = {t.strip() for t in _env("BUILDSETUP_EVENTS_TRANSPORTS", "stdout,jsonl").split(",")}
    observers: List[EventObserver] = []
    if "stdout" in transports:
        observers.append(StdoutObserver())
    if "jsonl" in transports:
        events_path = _env("BUILDSETUP_EVENTS_PATH", base_path)
        observers.append(MemoryJSONLObserver(base_path=events_path, setup_name=setup_name, run_id=run_id))

    try:
        queue_size = int(_env("BUILDSETUP_EVENTS_QUEUE_SIZE", "10000"))
    except ValueError:
        queue_size = 10_000

    return EventBus(run_id=run_id, setup_name=setup_name, observers=observers, queue_size=queue_size)
