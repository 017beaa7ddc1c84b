"""Clinical report assembled from an analysis session."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from analysis_orchestrator import PHASE_ORDER, Session

NO_MESH_MESSAGE = "No 3D mesh generated (Volume too small or empty mask)."
INSUFFICIENT_DATA_MESSAGE = "Insufficient data: both ED and ES volumes are required."
METRIC_UNAVAILABLE_MESSAGE = "Ejection fraction unavailable: ED volume is zero."


@dataclass
class PhaseRow:
    phase: str
    source_name: Optional[str] = None
    lv_volume_ml: Optional[float] = None
    rv_volume_ml: Optional[float] = None
    has_mesh: bool = False
    error: Optional[str] = None


@dataclass
class ClinicalReport:
    status: str
    status_message: str
    phases: List[PhaseRow] = field(default_factory=list)
    ejection_fraction: Optional[float] = None
    ejection_fraction_message: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _ef_message(session: Session) -> str:
    if session.derived_metric is not None:
        return f"{session.derived_metric:.2f}%"
    if session.metric_error == "metric unavailable":
        return METRIC_UNAVAILABLE_MESSAGE
    return INSUFFICIENT_DATA_MESSAGE


def build_report(session: Session) -> ClinicalReport:
    rows = []
    for phase in PHASE_ORDER:
        result = session.results.get(phase)
        row = PhaseRow(phase=phase.value, error=session.phase_errors.get(phase))
        if result is not None:
            row.source_name = result.source_name
            row.lv_volume_ml = result.volume_ml
            row.rv_volume_ml = result.rv_volume_ml
            row.has_mesh = result.mesh_payload is not None
        rows.append(row)

    return ClinicalReport(
        status=session.status.state.value,
        status_message=session.status.describe(),
        phases=rows,
        ejection_fraction=session.derived_metric,
        ejection_fraction_message=_ef_message(session),
    )


def _fmt_ml(value: Optional[float]) -> str:
    return "n/a" if value is None else f"{value:.2f} ml"


def format_report(report: ClinicalReport) -> str:
    """Render the report as plain text for the terminal."""
    lines = [
        "Cardiac Analysis Report",
        "=======================",
        f"Status: {report.status_message}",
        "",
    ]
    for row in report.phases:
        lines.append(f"[{row.phase}] {row.source_name or 'not analyzed'}")
        lines.append(f"  LV volume: {_fmt_ml(row.lv_volume_ml)}")
        lines.append(f"  RV volume: {_fmt_ml(row.rv_volume_ml)}")
        if row.lv_volume_ml is not None:
            lines.append(f"  Mesh: {'available' if row.has_mesh else NO_MESH_MESSAGE}")
        if row.error:
            lines.append(f"  Last error: {row.error}")
    lines.append("")
    lines.append(f"Ejection fraction: {report.ejection_fraction_message}")
    return "\n".join(lines)
