import json

from analysis_orchestrator import AnalysisOrchestrator, Phase, Session
from clinical_report import (
    INSUFFICIENT_DATA_MESSAGE, METRIC_UNAVAILABLE_MESSAGE, NO_MESH_MESSAGE,
    build_report, format_report,
)
from conftest import FakeHTTP, ok
from frame_submitter import FrameSubmitter


def _run(*responses, ed=None, es=None):
    session = Session(endpoint="https://host")
    if ed is not None:
        session.select_frame(Phase.ED, ed)
    if es is not None:
        session.select_frame(Phase.ES, es)
    return AnalysisOrchestrator(FrameSubmitter(session=FakeHTTP(*responses))).run(session)


def test_full_report(ed_blob, es_blob, two_object_obj):
    session = _run(ok(120.0, mesh=two_object_obj, rv=110.0), ok(45.0), ed=ed_blob, es=es_blob)
    report = build_report(session)

    assert report.status == "succeeded"
    assert report.ejection_fraction == 62.50
    assert report.ejection_fraction_message == "62.50%"
    ed_row, es_row = report.phases
    assert (ed_row.phase, ed_row.lv_volume_ml, ed_row.rv_volume_ml) == ("ED", 120.0, 110.0)
    assert ed_row.has_mesh is True
    assert es_row.has_mesh is False

    text = format_report(report)
    assert "Ejection fraction: 62.50%" in text
    assert NO_MESH_MESSAGE in text


def test_single_phase_reports_insufficient_data(ed_blob):
    report = build_report(_run(ok(120.0), ed=ed_blob))
    assert report.ejection_fraction is None
    assert report.ejection_fraction_message == INSUFFICIENT_DATA_MESSAGE
    assert report.phases[1].lv_volume_ml is None
    assert "[ES] not analyzed" in format_report(report)


def test_zero_ed_volume_reports_metric_unavailable(ed_blob, es_blob):
    report = build_report(_run(ok(0.0), ok(30.0), ed=ed_blob, es=es_blob))
    assert report.ejection_fraction_message == METRIC_UNAVAILABLE_MESSAGE
    assert report.status == "failed"


def test_report_is_json_serializable(ed_blob, es_blob):
    report = build_report(_run(ok(120.0), ok(45.0), ed=ed_blob, es=es_blob))
    payload = json.loads(json.dumps(report.to_dict()))
    assert payload["ejection_fraction"] == 62.5
    assert [p["phase"] for p in payload["phases"]] == ["ED", "ES"]
