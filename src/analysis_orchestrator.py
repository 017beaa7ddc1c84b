"""
Two-phase (ED/ES) analysis workflow.

The orchestrator owns the ``Session`` state machine:

    IDLE -> RUNNING(ED) -> RUNNING(ES) -> SUCCEEDED | FAILED

Phases are submitted sequentially, ED first. Failure policy is best-effort:
a failed ED submission is recorded and ES is still attempted. A phase result
is only written once its submission has fully succeeded, so a failed re-run
never discards an earlier result. The ejection fraction is recomputed from
scratch after every run in which both results are present.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from analysis_errors import AnalysisError, DivisionByZeroError, ValidationError
from ejection_fraction import compute_ejection_fraction
from frame_submitter import FrameBlob, FrameSubmitter, PhaseResult, normalize_endpoint

logger = logging.getLogger(__name__)

# Serializes the check-and-set of Session.running across worker threads.
_RUN_GUARD = threading.Lock()


class Phase(Enum):
    ED = "ED"
    ES = "ES"


PHASE_ORDER = (Phase.ED, Phase.ES)


class RunState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    FAILED = "failed"
    SUCCEEDED = "succeeded"


@dataclass(frozen=True)
class SessionStatus:
    state: RunState = RunState.IDLE
    phase: Optional[Phase] = None
    reason: Optional[str] = None
    error_kind: Optional[str] = None

    @classmethod
    def running(cls, phase: Phase) -> "SessionStatus":
        return cls(RunState.RUNNING, phase=phase)

    @classmethod
    def failed(cls, reason: str, error_kind: Optional[str] = None) -> "SessionStatus":
        return cls(RunState.FAILED, reason=reason, error_kind=error_kind)

    def describe(self) -> str:
        if self.state is RunState.RUNNING:
            return f"Processing {self.phase.value}..."
        if self.state is RunState.FAILED:
            return f"Failed: {self.reason}"
        if self.state is RunState.SUCCEEDED:
            return "Analysis complete"
        return "Idle"


@dataclass
class Session:
    """State for one analysis workflow (one page load / one CLI call)."""

    endpoint: str = ""
    selections: Dict[Phase, FrameBlob] = field(default_factory=dict)
    results: Dict[Phase, PhaseResult] = field(default_factory=dict)
    derived_metric: Optional[float] = None
    metric_error: Optional[str] = None
    phase_errors: Dict[Phase, str] = field(default_factory=dict)
    status: SessionStatus = field(default_factory=SessionStatus)
    history: List[SessionStatus] = field(default_factory=list)
    running: bool = False

    def select_frame(self, phase: Phase, blob: FrameBlob) -> None:
        self.selections[phase] = blob

    def clear_selection(self, phase: Phase) -> None:
        """Drop the selected file for ``phase``; results are kept."""
        self.selections.pop(phase, None)

    def reset(self) -> None:
        """Explicit full reset: selections, results and metric."""
        if self.running:
            raise ValidationError("Cannot reset while a run is in progress")
        self.selections.clear()
        self.results.clear()
        self.phase_errors.clear()
        self.derived_metric = None
        self.metric_error = None
        self.status = SessionStatus()
        self.history.clear()


# User-facing wording per error kind; logs keep the exact class name.
_USER_MESSAGES = {
    "ConnectivityError": "connection failed, check endpoint/service availability",
    "ResponseShapeError": "connection failed, check endpoint/service availability",
    "ValidationError": "invalid input",
}


def _user_reason(phase: Optional[Phase], exc: Exception) -> str:
    hint = _USER_MESSAGES.get(type(exc).__name__)
    prefix = f"{phase.value}: " if phase else ""
    if hint:
        return f"{prefix}{hint} ({exc})"
    return f"{prefix}{exc}"


class AnalysisOrchestrator:
    """Runs the ED/ES submissions for a session and aggregates the results."""

    def __init__(
        self,
        submitter: Optional[FrameSubmitter] = None,
        on_status: Optional[Callable[[SessionStatus], None]] = None,
    ):
        self.submitter = submitter or FrameSubmitter()
        self.on_status = on_status

    def _set_status(self, session: Session, status: SessionStatus) -> None:
        session.status = status
        session.history.append(status)
        logger.info("Status: %s", status.describe())
        if self.on_status is None:
            return
        try:
            self.on_status(status)
        except Exception:
            logger.exception("Status callback failed for %s", status.describe())

    def run(self, session: Session) -> Session:
        """Submit the selected frames and update ``session``. Never raises."""
        with _RUN_GUARD:
            if session.running:
                logger.warning("Run already in progress; ignoring new run request")
                return session
            session.running = True

        try:
            try:
                endpoint = self._validate(session)
            except ValidationError as exc:
                logger.warning("Validation failed: %s", exc)
                self._set_status(
                    session, SessionStatus.failed(_user_reason(None, exc), type(exc).__name__),
                )
                return session

            last_failure = self._submit_phases(session, endpoint)
            metric_failure = self._update_metric(session)
            if metric_failure is not None:
                last_failure = metric_failure
        finally:
            session.running = False

        if last_failure is None:
            self._set_status(session, SessionStatus(RunState.SUCCEEDED))
        else:
            self._set_status(session, last_failure)
        return session

    def _validate(self, session: Session) -> str:
        endpoint = normalize_endpoint(session.endpoint)
        if not any(p in session.selections for p in PHASE_ORDER):
            raise ValidationError("Select at least one frame (ED or ES)")
        return endpoint

    def _submit_phases(self, session: Session, endpoint: str) -> Optional[SessionStatus]:
        last_failure = None
        for phase in PHASE_ORDER:
            blob = session.selections.get(phase)
            if blob is None:
                continue

            self._set_status(session, SessionStatus.running(phase))
            try:
                result = self.submitter.submit(blob, endpoint)
            except Exception as exc:
                if not isinstance(exc, AnalysisError):
                    logger.exception("Unexpected error during %s submission", phase.value)
                logger.error(
                    "%s submission of %s failed [%s]: %s",
                    phase.value, blob.name, type(exc).__name__, exc,
                )
                session.phase_errors[phase] = str(exc)
                last_failure = SessionStatus.failed(
                    _user_reason(phase, exc), type(exc).__name__,
                )
                continue

            session.results[phase] = result
            session.phase_errors.pop(phase, None)
        return last_failure

    def _update_metric(self, session: Session) -> Optional[SessionStatus]:
        ed = session.results.get(Phase.ED)
        es = session.results.get(Phase.ES)
        if ed is None or es is None:
            session.metric_error = "insufficient data"
            return None

        try:
            session.derived_metric = compute_ejection_fraction(ed.volume_ml, es.volume_ml)
        except DivisionByZeroError as exc:
            logger.error("Ejection fraction unavailable: %s", exc)
            session.derived_metric = None
            session.metric_error = "metric unavailable"
            return SessionStatus.failed(_user_reason(None, exc), type(exc).__name__)

        session.metric_error = None
        logger.info(
            "Ejection fraction %.2f%% (ED %.2f ml, ES %.2f ml)",
            session.derived_metric, ed.volume_ml, es.volume_ml,
        )
        return None
