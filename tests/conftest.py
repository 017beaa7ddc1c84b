"""
Shared test fixtures for the ED/ES analysis workflow tests.
"""
import sys
from pathlib import Path

import pytest

# Add src/ to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from frame_submitter import FrameBlob


TWO_OBJECT_OBJ = """\
# two objects: a single triangle, then a unit square at z=5
o lv_surface
v 0.0 0.0 0.0
v 10.0 0.0 0.0
v 0.0 10.0 0.0
f 1 2 3
o rv_surface
v 0.0 0.0 5.0
v 1.0 0.0 5.0
v 1.0 1.0 5.0
v 0.0 1.0 5.0
f 4 5 6
f 4 6 7
"""


class FakeResponse:
    """Stand-in for requests.Response."""

    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else ""

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeHTTP:
    """Records POST calls and replays queued responses or exceptions."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def post(self, url, files=None, timeout=None):
        self.calls.append({"url": url, "files": files, "timeout": timeout})
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def ok(lv, mesh=None, rv=None):
    payload = {"lv_volume_ml": lv}
    if rv is not None:
        payload["rv_volume_ml"] = rv
    if mesh is not None:
        payload["mesh_obj"] = mesh
    return FakeResponse(200, payload)


@pytest.fixture
def two_object_obj():
    return TWO_OBJECT_OBJ


@pytest.fixture
def ed_blob():
    return FrameBlob(name="patient01_ed.nii.gz", data=b"\x1f\x8b ed-volume")


@pytest.fixture
def es_blob():
    return FrameBlob(name="patient01_es.nii.gz", data=b"\x1f\x8b es-volume")
