"""
Submit one cardiac imaging frame to the remote analysis service.

The service exposes ``POST <endpoint>/analyze`` taking a multipart upload and
answering with JSON ``{lv_volume_ml, rv_volume_ml?, mesh_obj?}``.
Uses the service REST API directly via requests.
"""
import math
import os
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import requests

from analysis_errors import ConnectivityError, ResponseShapeError, ValidationError

logger = logging.getLogger(__name__)

ENDPOINT_ENV_VAR = "CARDIAC_ANALYSIS_URL"


@dataclass(frozen=True)
class FrameBlob:
    """A selected imaging volume file (e.g. ``.nii.gz``)."""
    name: str
    data: bytes

    @classmethod
    def from_path(cls, path: str) -> "FrameBlob":
        with open(path, "rb") as f:
            return cls(name=os.path.basename(path), data=f.read())

    def __len__(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class PhaseResult:
    """Validated response for one submitted frame."""
    volume_ml: float
    mesh_payload: Optional[str]
    source_name: str
    rv_volume_ml: Optional[float] = None


@dataclass
class SubmitterConfig:
    """Configuration for the frame submitter."""
    timeout_seconds: float = 120.0      # inference on a cold GPU is slow
    field_name: str = "file"
    route: str = "analyze"


def normalize_endpoint(endpoint: Optional[str]) -> str:
    """Strip whitespace and trailing slashes, then check it is an http(s) URL.

    Raises:
        ValidationError: If the endpoint is empty or not an http(s) base URL.
    """
    cleaned = (endpoint or "").strip().rstrip("/")
    if not cleaned:
        raise ValidationError("Analysis endpoint URL is required")
    parsed = urlparse(cleaned)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError(f"Not a valid http(s) base URL: {endpoint!r}")
    return cleaned


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


class FrameSubmitter:
    """Stateless client for the analysis endpoint.

    ``session`` may be any object with a requests-compatible ``post`` method;
    it defaults to the ``requests`` module itself.
    """

    def __init__(self, config: Optional[SubmitterConfig] = None, session=None):
        self.config = config or SubmitterConfig()
        self._http = session if session is not None else requests

    def analyze_url(self, endpoint: str) -> str:
        return f"{normalize_endpoint(endpoint)}/{self.config.route}"

    def submit(self, blob: FrameBlob, endpoint: str) -> PhaseResult:
        """Send ``blob`` to ``<endpoint>/analyze`` and validate the answer.

        Raises:
            ValidationError: Empty blob or invalid endpoint (no request sent).
            ConnectivityError: Transport, timeout, HTTP status or JSON failure.
            ResponseShapeError: JSON lacks a numeric ``lv_volume_ml``.
        """
        if blob is None or not blob.data:
            raise ValidationError("Selected frame is empty")
        url = self.analyze_url(endpoint)

        files = {
            self.config.field_name: (blob.name, blob.data, "application/octet-stream"),
        }
        logger.info("Submitting %s (%d bytes) to %s", blob.name, len(blob), url)
        try:
            resp = self._http.post(url, files=files, timeout=self.config.timeout_seconds)
        except requests.exceptions.Timeout as exc:
            raise ConnectivityError(
                f"Request to {url} timed out after {self.config.timeout_seconds}s"
            ) from exc
        except requests.exceptions.RequestException as exc:
            raise ConnectivityError(f"Request to {url} failed: {exc}") from exc

        self._check_response(resp, url)
        try:
            data = resp.json()
        except ValueError as exc:
            raise ConnectivityError(
                f"Response from {url} is not valid JSON", resp.status_code,
            ) from exc

        result = self._parse_payload(data, blob.name)
        logger.info(
            "Analysis of %s: LV %.2f ml, mesh %s",
            blob.name, result.volume_ml,
            "present" if result.mesh_payload else "absent",
        )
        return result

    def _check_response(self, resp, url):
        """Check HTTP response for errors."""
        if not 200 <= resp.status_code < 300:
            body = (resp.text or "")[:200]
            raise ConnectivityError(
                f"Analysis service error {resp.status_code} from {url}: {body}",
                resp.status_code,
            )

    def _parse_payload(self, data: Any, source_name: str) -> PhaseResult:
        if not isinstance(data, dict):
            raise ResponseShapeError(
                f"Expected a JSON object, got {type(data).__name__}"
            )
        logger.debug("Response keys: %s", sorted(data))

        lv = data.get("lv_volume_ml")
        if not _is_number(lv):
            raise ResponseShapeError(
                f"Response field 'lv_volume_ml' missing or not numeric: {lv!r}"
            )

        rv = data.get("rv_volume_ml")
        if rv is not None and not _is_number(rv):
            raise ResponseShapeError(
                f"Response field 'rv_volume_ml' is not numeric: {rv!r}"
            )

        mesh = data.get("mesh_obj")
        if mesh is not None and not isinstance(mesh, str):
            raise ResponseShapeError(
                f"Response field 'mesh_obj' is not a string: {type(mesh).__name__}"
            )

        return PhaseResult(
            volume_ml=float(lv),
            mesh_payload=mesh or None,
            source_name=source_name,
            rv_volume_ml=float(rv) if rv is not None else None,
        )


def default_endpoint() -> str:
    """Endpoint taken from the environment, or empty."""
    return os.environ.get(ENDPOINT_ENV_VAR, "")
