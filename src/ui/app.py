"""
Main NiceGUI application: endpoint, ED/ES pickers, report and 3D viewer.

Layout:
- Header bar with the app name
- Server connection card (endpoint URL, persisted to .ui_settings.json)
- Upload card: one picker per cardiac phase, each independently clearable
- Results: clinical metrics card + 3D reconstruction card with ED/ES toggle

Run with:
    python scripts/run_ui.py
"""

import logging
from pathlib import Path

from nicegui import app, ui

from analysis_orchestrator import PHASE_ORDER, AnalysisOrchestrator, Phase
from clinical_report import build_report
from frame_submitter import FrameBlob, FrameSubmitter, default_endpoint
from ui.state import AppState, load_settings, save_settings
from ui.viewer import build_mesh_placeholder, render_heart
from ui.workers import run_analysis

logger = logging.getLogger(__name__)

# Directories
BASE_DIR = Path(__file__).resolve().parent.parent.parent
MESH_DIR = BASE_DIR / "viewer_meshes"
SETTINGS_PATH = BASE_DIR / ".ui_settings.json"
MESH_URL_PREFIX = "/meshes"

CARD_CLASSES = "w-full p-4 rounded-xl shadow-sm"

PHASE_LABELS = {
    Phase.ED: "End-Diastole (ED)",
    Phase.ES: "End-Systole (ES)",
}


# ═══════════════════════════════════════════════════════════════════════════
# Entry point
# ═══════════════════════════════════════════════════════════════════════════

def main() -> None:
    MESH_DIR.mkdir(exist_ok=True)
    app.add_static_files(MESH_URL_PREFIX, str(MESH_DIR))

    @ui.page("/")
    def index():
        _build_page()

    ui.run(title="CardiRegen 3D", port=8080, reload=False)


# ═══════════════════════════════════════════════════════════════════════════
# Page builder
# ═══════════════════════════════════════════════════════════════════════════

def _build_page() -> None:
    state = AppState()
    settings = load_settings(str(SETTINGS_PATH), default_endpoint())
    state.session.endpoint = settings["endpoint"]
    orchestrator = AnalysisOrchestrator(FrameSubmitter())

    with ui.header().classes("bg-red-600 text-white items-center h-12 px-4"):
        ui.icon("favorite").classes("text-2xl")
        ui.label("CardiRegen 3D").classes("text-lg font-bold")
        ui.label("Automated Cardiac MRI Analysis").classes("text-sm opacity-80")

    with ui.column().classes("w-full max-w-5xl mx-auto gap-4 p-4"):
        # ── Server connection ───────────────────────────────────────────
        with ui.card().classes(CARD_CLASSES):
            ui.label("Server Connection").classes("text-base font-bold")
            ui.input(
                label="Analysis endpoint URL",
                placeholder="e.g. https://example.ngrok-free.dev",
                value=state.session.endpoint,
                on_change=lambda e: _handle_endpoint(e.value, state, settings),
            ).classes("w-full")

        # ── Frame pickers ───────────────────────────────────────────────
        with ui.card().classes(CARD_CLASSES):
            ui.label("Upload Cardiac MRI (.nii.gz)").classes("text-base font-bold")
            with ui.row().classes("w-full gap-4 no-wrap"):
                for phase in PHASE_ORDER:
                    with ui.column().classes("flex-1"):
                        _build_phase_picker(state, phase)

            with ui.row().classes("items-center gap-2 mt-2"):
                run_button = ui.button(
                    "Run AI Analysis",
                    icon="play_arrow",
                    on_click=lambda: _handle_run(
                        state, orchestrator, run_button, spinner, results_container,
                    ),
                ).props("color=primary")
                spinner = ui.spinner(size="sm", color="primary")
                spinner.visible = False
                ui.button(
                    "Reset",
                    icon="restart_alt",
                    on_click=lambda: _handle_reset(state, results_container),
                ).props("flat")

            status_label = ui.label("").classes("text-sm mt-1")
            ui.timer(0.5, lambda: _poll_status(state, status_label))

        # ── Results ─────────────────────────────────────────────────────
        results_container = ui.element("div").classes("w-full")
        with results_container:
            _build_results(state, results_container)


def _build_phase_picker(state: AppState, phase: Phase) -> None:
    ui.label(PHASE_LABELS[phase]).classes("text-sm font-medium")
    selected = ui.label("No file selected").classes("text-xs text-gray-500")
    ui.upload(
        label=f"Choose {phase.value} file",
        auto_upload=True,
        max_files=1,
        on_upload=lambda e: _handle_upload(e, state, phase, selected),
    ).props('accept=".nii,.gz" dense').classes("w-full")
    ui.button(
        "Clear",
        icon="close",
        on_click=lambda: _handle_clear(state, phase, selected),
    ).props("flat dense size=sm")


def _poll_status(state: AppState, label) -> None:
    status = state.session.status
    label.text = "" if not state.session.history else status.describe()


def _build_results(state: AppState, container) -> None:
    session = state.session
    if not session.results:
        return

    report = build_report(session)
    with ui.row().classes("w-full gap-4 no-wrap"):
        with ui.card().classes(CARD_CLASSES + " flex-1"):
            ui.label("Clinical Metrics").classes("text-base font-bold")
            for row in report.phases:
                if row.lv_volume_ml is None:
                    continue
                ui.label(f"{row.phase} · {row.source_name}").classes(
                    "text-xs font-bold text-gray-500 mt-2"
                )
                ui.label(f"LV volume: {row.lv_volume_ml:.2f} ml").classes(
                    "text-xl font-extrabold text-green-800"
                )
                if row.rv_volume_ml is not None:
                    ui.label(f"RV volume: {row.rv_volume_ml:.2f} ml").classes(
                        "text-xl font-extrabold text-blue-900"
                    )
            ui.separator().classes("my-2")
            ui.label("Ejection Fraction").classes("text-xs font-bold text-gray-500")
            ui.label(report.ejection_fraction_message).classes("text-2xl font-extrabold")

        with ui.card().classes(CARD_CLASSES + " flex-1"):
            ui.label("Interactive 3D Reconstruction").classes("text-base font-bold")
            ui.toggle(
                {p: p.value for p in PHASE_ORDER},
                value=state.display_phase,
                on_change=lambda e: _handle_display_phase(e.value, state, container),
            ).props("dense")
            mesh_url = state.mesh_urls.get(state.display_phase)
            if mesh_url:
                with ui.scene(height=400).classes("w-full") as scene:
                    render_heart(scene, mesh_url)
                ui.label("Click & Drag to Rotate | Scroll to Zoom").classes(
                    "text-xs text-gray-400 text-center w-full"
                )
            else:
                build_mesh_placeholder()


# ═══════════════════════════════════════════════════════════════════════════
# Event handlers
# ═══════════════════════════════════════════════════════════════════════════

def _handle_endpoint(value: str, state: AppState, settings: dict) -> None:
    state.session.endpoint = value or ""
    settings["endpoint"] = state.session.endpoint
    try:
        save_settings(str(SETTINGS_PATH), settings)
    except OSError as exc:
        logger.warning("Could not persist settings: %s", exc)


def _handle_upload(event, state: AppState, phase: Phase, selected_label) -> None:
    blob = FrameBlob(name=event.name, data=event.content.read())
    state.session.select_frame(phase, blob)
    selected_label.text = f"Selected: {blob.name}"
    selected_label.classes(replace="text-xs text-green-700 font-bold")


def _handle_clear(state: AppState, phase: Phase, selected_label) -> None:
    state.session.clear_selection(phase)
    selected_label.text = "No file selected"
    selected_label.classes(replace="text-xs text-gray-500")


def _handle_display_phase(phase: Phase, state: AppState, container) -> None:
    state.display_phase = phase
    _rebuild_results(state, container)


def _handle_reset(state: AppState, container) -> None:
    if state.busy or state.session.running:
        ui.notify("A run is in progress.", type="warning")
        return
    state.session.reset()
    state.mesh_urls = {}
    _rebuild_results(state, container)


async def _handle_run(state, orchestrator, button, spinner, container) -> None:
    if state.busy or state.session.running:
        ui.notify("A run is already in progress.", type="warning")
        return

    state.busy = True
    button.disable()
    spinner.visible = True

    def _done():
        state.busy = False
        button.enable()
        spinner.visible = False
        _rebuild_results(state, container)

    await run_analysis(
        state, orchestrator, str(MESH_DIR), MESH_URL_PREFIX, _done,
    )


def _rebuild_results(state: AppState, container) -> None:
    container.clear()
    with container:
        _build_results(state, container)
