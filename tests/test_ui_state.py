"""Tests for the web UI state helpers (no browser needed)."""
import json
import os

import trimesh

from analysis_orchestrator import Phase, RunState, Session, SessionStatus
from frame_submitter import PhaseResult
from ui.state import AppState, load_settings, refresh_mesh_urls, save_settings
from ui.viewer import export_for_viewer


def test_settings_round_trip(tmp_path):
    path = str(tmp_path / ".ui_settings.json")
    assert load_settings(path, "https://default") == {"endpoint": "https://default"}
    save_settings(path, {"endpoint": "https://saved"})
    assert load_settings(path, "https://default")["endpoint"] == "https://saved"


def test_unreadable_settings_fall_back_to_defaults(tmp_path):
    path = tmp_path / ".ui_settings.json"
    path.write_text("{not json", encoding="utf-8")
    assert load_settings(str(path)) == {"endpoint": ""}


def test_refresh_mesh_urls(tmp_path, two_object_obj):
    session = Session()
    session.results[Phase.ED] = PhaseResult(120.0, two_object_obj, "ed.nii.gz")
    session.results[Phase.ES] = PhaseResult(45.0, None, "es.nii.gz")
    state = AppState(session=session)

    refresh_mesh_urls(
        state,
        lambda mesh, basename: export_for_viewer(mesh, str(tmp_path), basename),
        "/meshes",
    )

    assert state.mesh_urls[Phase.ES] is None
    assert state.mesh_urls[Phase.ED].startswith("/meshes/heart_ed.glb")
    assert os.path.isfile(tmp_path / "heart_ed.glb")


def test_malformed_mesh_maps_to_placeholder(tmp_path):
    session = Session()
    session.results[Phase.ED] = PhaseResult(120.0, "garbage", "ed.nii.gz")
    state = AppState(session=session)
    refresh_mesh_urls(state, lambda mesh, basename: "unused", "/meshes")
    assert state.mesh_urls[Phase.ED] is None


def test_export_for_viewer_centres_geometry(tmp_path, two_object_obj):
    from mesh_normalizer import normalize

    mesh = normalize(two_object_obj)
    before = mesh.geometry.vertices.copy()
    path = export_for_viewer(mesh, str(tmp_path), "heart")

    loaded = trimesh.load(path, force="mesh")
    center = (loaded.bounds[0] + loaded.bounds[1]) / 2.0
    assert abs(center).max() < 1e-6
    # source geometry untouched
    assert (mesh.geometry.vertices == before).all()


def test_mesh_url_changes_after_reset_and_rerun(tmp_path, two_object_obj):
    state = AppState(session=Session())

    def export(mesh, basename):
        return export_for_viewer(mesh, str(tmp_path), basename)

    state.session.results[Phase.ED] = PhaseResult(120.0, two_object_obj, "ed.nii.gz")
    state.session.history.append(SessionStatus(RunState.SUCCEEDED))
    refresh_mesh_urls(state, export, "/meshes")
    first = state.mesh_urls[Phase.ED]

    state.session.reset()
    state.session.results[Phase.ED] = PhaseResult(110.0, two_object_obj, "ed2.nii.gz")
    state.session.history.append(SessionStatus(RunState.SUCCEEDED))
    refresh_mesh_urls(state, export, "/meshes")
    second = state.mesh_urls[Phase.ED]

    assert first != second
    assert int(second.split("?v=")[1]) > int(first.split("?v=")[1])
