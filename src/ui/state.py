"""
Per-page state for the web UI.

- AppState: the analysis Session plus what the viewer currently shows
- settings helpers: endpoint persisted to .ui_settings.json
"""

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from analysis_orchestrator import PHASE_ORDER, Phase, Session
from mesh_normalizer import normalize

logger = logging.getLogger(__name__)


@dataclass
class AppState:
    """Root page state."""

    session: Session = field(default_factory=Session)
    display_phase: Phase = Phase.ED
    mesh_urls: Dict[Phase, Optional[str]] = field(default_factory=dict)
    busy: bool = False
    # bumped on every refresh, never reset, so viewer URLs stay unique
    mesh_version: int = 0


def load_settings(path: str, default_endpoint: str = "") -> dict:
    defaults = {"endpoint": default_endpoint}
    if os.path.isfile(path):
        try:
            with open(path) as f:
                saved = json.load(f)
            defaults.update(saved)
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Ignoring unreadable settings file %s: %s", path, exc)
    return defaults


def save_settings(path: str, settings: dict) -> None:
    with open(path, "w") as f:
        json.dump(settings, f, indent=2)


def refresh_mesh_urls(state: AppState, export: Callable, url_prefix: str) -> None:
    """Re-normalize every phase mesh and record where the viewer can load it.

    ``export(mesh, basename) -> path`` writes the viewer file. Phases whose
    payload is absent or unusable map to ``None``.
    """
    state.mesh_version += 1
    state.mesh_urls = {}
    for phase in PHASE_ORDER:
        result = state.session.results.get(phase)
        mesh = normalize(result.mesh_payload) if result is not None else None
        if mesh is None:
            state.mesh_urls[phase] = None
            continue
        path = export(mesh, f"heart_{phase.value.lower()}")
        state.mesh_urls[phase] = (
            f"{url_prefix}/{os.path.basename(path)}?v={state.mesh_version}"
        )
