from __future__ import annotations

import json
import subprocess
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parent.parent
SCRIPT = REPO_ROOT / "scripts" / "analyze_frames.py"


def test_cli_without_frames_fails_validation(tmp_path: Path):
    report_path = tmp_path / "report.json"
    cmd = [
        sys.executable, str(SCRIPT),
        "--endpoint", "https://host",
        "--report-json", str(report_path),
    ]
    proc = subprocess.run(cmd, capture_output=True, text=True)
    assert proc.returncode == 1
    assert "Select at least one frame" in proc.stdout

    payload = json.loads(report_path.read_text(encoding="utf-8"))
    assert payload["status"] == "failed"
    assert payload["ejection_fraction"] is None


def test_cli_rejects_missing_endpoint(tmp_path: Path):
    frame = tmp_path / "ed.nii.gz"
    frame.write_bytes(b"volume")
    cmd = [sys.executable, str(SCRIPT), "--endpoint", "", "--ed", str(frame)]
    proc = subprocess.run(cmd, capture_output=True, text=True)
    assert proc.returncode == 1
    assert "endpoint URL is required" in proc.stdout


def test_cli_missing_frame_file(tmp_path: Path):
    cmd = [
        sys.executable, str(SCRIPT),
        "--endpoint", "https://host",
        "--ed", str(tmp_path / "missing.nii.gz"),
    ]
    proc = subprocess.run(cmd, capture_output=True, text=True)
    assert proc.returncode == 1
    assert "cannot read ED frame" in proc.stdout
