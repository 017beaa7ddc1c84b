"""
Background task wrapper for the analysis run.

Uses NiceGUI's run.io_bound so the page stays responsive while the frames
are uploaded and analyzed.
"""

import logging
from typing import Callable

from nicegui import run, ui

from analysis_orchestrator import AnalysisOrchestrator, RunState
from ui.state import AppState, refresh_mesh_urls
from ui.viewer import export_for_viewer

logger = logging.getLogger(__name__)


async def run_analysis(
    state: AppState,
    orchestrator: AnalysisOrchestrator,
    mesh_dir: str,
    url_prefix: str,
    notify: Callable,
) -> None:
    """Run the ED/ES workflow off the event loop, then refresh the viewer."""
    try:
        await run.io_bound(orchestrator.run, state.session)
        await run.io_bound(
            refresh_mesh_urls,
            state,
            lambda mesh, basename: export_for_viewer(mesh, mesh_dir, basename),
            url_prefix,
        )
    except Exception as exc:
        logger.exception("Analysis run failed")
        ui.notify(f"Analysis failed: {exc}", type="negative")
    else:
        status = state.session.status
        if status.state is RunState.SUCCEEDED:
            ui.notify("Analysis complete", type="positive")
        else:
            ui.notify(status.describe(), type="negative", multi_line=True)
    finally:
        notify()
