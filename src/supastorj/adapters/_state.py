# pyright: reportAny=false, reportExplicitAny=false
"""Backend state translation.

Every backend payload is parsed into a RawState exactly once, at the edge
where it enters the adapter. The state mapping and health evaluation below
operate only on RawState, so both adapters share one decision table.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ._models import HealthResult, ServiceState

EXITED = "exited"
RESTARTING = "restarting"
HEALTHY = "healthy"


@dataclass(frozen=True, slots=True)
class ProbeResult:
    """Result of the backend's own health probe.

    Attributes:
        status: Probe status, e.g. ``healthy``, ``unhealthy``, ``starting``.
        failing_streak: Consecutive failed probes.
        log: Most recent probe entries as reported by the backend.
    """

    status: str
    failing_streak: int = 0
    log: tuple[dict[str, Any], ...] = ()

    @property
    def healthy(self) -> bool:
        return self.status == HEALTHY


@dataclass(frozen=True, slots=True)
class RawState:
    """Parsed backend state of one service.

    Attributes:
        running: Backend reports the service as running.
        paused: Backend reports the service as paused or suspended.
        restarting: Backend reports an in-progress restart.
        status: Backend status word, normalized to lowercase.
        exit_code: Exit code of the last run, if the service has exited.
        probe: Attached health probe result, if any.
        started_at: Start timestamp as reported by the backend.
        pid: Main process id, when known.
        has_state: False when the backend returned a record without any
            state information.
    """

    running: bool = False
    paused: bool = False
    restarting: bool = False
    status: str = ""
    exit_code: int | None = None
    probe: ProbeResult | None = None
    started_at: str | None = None
    pid: int | None = None
    has_state: bool = True

    @classmethod
    def without_state(cls) -> RawState:
        return cls(has_state=False)

    @classmethod
    def from_container(cls, inspect: dict[str, Any]) -> RawState:
        """Parse a Docker ``/containers/{id}/json`` payload.

        Args:
            inspect: The decoded inspection document.

        Returns:
            The parsed state.
        """
        state = inspect.get("State")
        if not isinstance(state, dict) or not state:
            return cls.without_state()

        probe: ProbeResult | None = None
        health = state.get("Health")
        if isinstance(health, dict) and health:
            probe = ProbeResult(
                status=str(health.get("Status", "unknown")).lower(),
                failing_streak=int(health.get("FailingStreak") or 0),
                log=tuple(
                    entry
                    for entry in health.get("Log") or ()
                    if isinstance(entry, dict)
                ),
            )

        exit_code = state.get("ExitCode")
        pid = state.get("Pid")
        return cls(
            running=bool(state.get("Running")),
            paused=bool(state.get("Paused")),
            restarting=bool(state.get("Restarting")),
            status=str(state.get("Status") or "").lower(),
            exit_code=exit_code if isinstance(exit_code, int) else None,
            probe=probe,
            started_at=state.get("StartedAt") or None,
            pid=pid if isinstance(pid, int) and pid > 0 else None,
        )

    @classmethod
    def from_systemd(cls, properties: dict[str, str]) -> RawState:
        """Parse ``systemctl show`` properties.

        A finished ``oneshot`` unit whose main process exited 0 is reported
        with status ``exited`` so that it counts as a successful job. Any
        other inactive unit is reported as ``inactive``.

        Args:
            properties: Property name to value, as printed by systemctl.

        Returns:
            The parsed state.
        """
        active = properties.get("ActiveState", "")
        if not active:
            return cls.without_state()

        exit_code = _int_or_none(properties.get("ExecMainStatus"))
        pid = _int_or_none(properties.get("MainPID"))
        sub_state = properties.get("SubState", "")

        status = active
        if active in {"active", "reloading"}:
            status = "exited" if sub_state == EXITED else "running"
        elif active == "inactive" and properties.get("Type") == "oneshot":
            if properties.get("Result") == "success":
                status = EXITED

        return cls(
            running=active in {"active", "reloading"} and sub_state != EXITED,
            restarting=sub_state == "auto-restart",
            status=status,
            exit_code=exit_code,
            started_at=properties.get("ActiveEnterTimestamp") or None,
            pid=pid if pid else None,
        )

    @classmethod
    def from_process(
        cls,
        pid: int,
        *,
        alive: bool,
        paused: bool = False,
        started_at: str | None = None,
    ) -> RawState:
        """Build a state from a PID-file lookup.

        Args:
            pid: Process id read from the PID file.
            alive: Whether the process exists.
            paused: Whether the process is stopped by a signal.
            started_at: Process start time, if known.

        Returns:
            The parsed state.
        """
        if not alive:
            return cls(status="dead", pid=pid)
        return cls(
            running=not paused,
            paused=paused,
            status="paused" if paused else "running",
            started_at=started_at,
            pid=pid,
        )

    def with_probe(self, probe: ProbeResult) -> RawState:
        """Return a copy of this state with a probe result attached."""
        return RawState(
            running=self.running,
            paused=self.paused,
            restarting=self.restarting,
            status=self.status,
            exit_code=self.exit_code,
            probe=probe,
            started_at=self.started_at,
            pid=self.pid,
            has_state=self.has_state,
        )


def _int_or_none(value: str | None) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError:
        return None


def is_completed(raw: RawState) -> bool:
    """Return True when the service is a job that exited successfully."""
    return raw.status == EXITED and raw.exit_code == 0


def map_state(raw: RawState | None) -> ServiceState:
    """Map a backend state to a ServiceState.

    Rules are applied in priority order; the first match wins:
    running, paused, restarting, completed job, anything else.

    Args:
        raw: The parsed state, or None when the backend has no record.

    Returns:
        The derived service state.
    """
    if raw is None:
        return ServiceState.STOPPED
    if not raw.has_state:
        return ServiceState.UNKNOWN
    if raw.running:
        return ServiceState.RUNNING
    if raw.paused:
        return ServiceState.STOPPED
    if raw.restarting or raw.status == RESTARTING:
        return ServiceState.RESTARTING
    if is_completed(raw):
        # One-shot jobs that finished cleanly count as running.
        return ServiceState.RUNNING
    return ServiceState.STOPPED


def evaluate_health(raw: RawState | None) -> HealthResult:
    """Evaluate the health of a service from its backend state.

    Args:
        raw: The parsed state, or None when the backend has no record.

    Returns:
        The health result.
    """
    if raw is None:
        return HealthResult(healthy=False, message="not found")
    if not raw.has_state:
        return HealthResult(healthy=False, message="no state information")
    if is_completed(raw):
        return HealthResult(healthy=True, message="completed successfully")
    if not raw.running:
        code = raw.exit_code if raw.exit_code is not None else "unknown"
        return HealthResult(healthy=False, message=f"stopped (exit code: {code})")
    if raw.probe is not None:
        return HealthResult(
            healthy=raw.probe.healthy,
            message=raw.probe.status,
            details={
                "failing_streak": raw.probe.failing_streak,
                "log": list(raw.probe.log),
            },
        )
    return HealthResult(healthy=True, message="running, no health check configured")
