#!/usr/bin/env python3
"""
Analyze ED/ES cardiac MRI frames with a remote analysis service.

Usage:
    # Both phases -> volumes + ejection fraction
    python scripts/analyze_frames.py --endpoint https://host --ed ed.nii.gz --es es.nii.gz

    # Single phase, keep the mesh for inspection
    python scripts/analyze_frames.py --ed ed.nii.gz --export-meshes meshes/

The endpoint is read from CARDIAC_ANALYSIS_URL when --endpoint is omitted.
"""
import sys
import json
import argparse
import logging
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from analysis_orchestrator import AnalysisOrchestrator, Phase, RunState, Session
from clinical_report import build_report, format_report
from frame_submitter import FrameBlob, FrameSubmitter, SubmitterConfig, default_endpoint
from mesh_normalizer import normalize


def main():
    parser = argparse.ArgumentParser(
        description="Submit ED/ES cardiac frames for analysis and report ejection fraction"
    )
    parser.add_argument(
        "--endpoint", type=str, default=None,
        help="Analysis service base URL (default: $CARDIAC_ANALYSIS_URL)",
    )
    parser.add_argument("--ed", type=str, default=None, help="End-diastole frame (.nii.gz)")
    parser.add_argument("--es", type=str, default=None, help="End-systole frame (.nii.gz)")
    parser.add_argument(
        "--timeout", type=float, default=120.0,
        help="Per-request timeout in seconds (default: 120)",
    )
    parser.add_argument(
        "--report-json", type=str, default=None, help="Write the report as JSON to this path",
    )
    parser.add_argument(
        "--export-meshes", type=str, default=None,
        help="Directory to write each phase's normalized mesh as GLB",
    )
    parser.add_argument("-v", "--verbose", action="store_true")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    session = Session(endpoint=args.endpoint if args.endpoint is not None else default_endpoint())
    for phase, path in ((Phase.ED, args.ed), (Phase.ES, args.es)):
        if not path:
            continue
        try:
            session.select_frame(phase, FrameBlob.from_path(path))
        except OSError as e:
            print(f"Error: cannot read {phase.value} frame {path}: {e}")
            return 1

    orchestrator = AnalysisOrchestrator(
        FrameSubmitter(SubmitterConfig(timeout_seconds=args.timeout)),
    )
    orchestrator.run(session)

    report = build_report(session)
    print(format_report(report))

    if args.report_json:
        out = Path(args.report_json)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(json.dumps(report.to_dict(), indent=2), encoding="utf-8")
        print(f"\nReport JSON: {out}")

    if args.export_meshes:
        from ui.viewer import export_for_viewer

        for phase, result in session.results.items():
            mesh = normalize(result.mesh_payload)
            if mesh is None:
                continue
            path = export_for_viewer(mesh, args.export_meshes, f"heart_{phase.value.lower()}")
            print(f"{phase.value} mesh: {path}")

    return 0 if session.status.state is RunState.SUCCEEDED else 1


if __name__ == "__main__":
    sys.exit(main())
