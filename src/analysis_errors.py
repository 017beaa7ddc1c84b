"""
Error taxonomy for the ED/ES analysis workflow.

Every failure the orchestrator can observe maps to one of these classes so
the status shown to the user stays terse while logs keep the exact kind.
"""


class AnalysisError(Exception):
    """Base exception for analysis workflow errors."""
    pass


class ValidationError(AnalysisError):
    """Missing endpoint, malformed endpoint, or no frame selected."""
    pass


class ConnectivityError(AnalysisError):
    """Transport failure, timeout, non-2xx status or undecodable JSON."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class ResponseShapeError(ConnectivityError):
    """Response decoded but lacks the required numeric fields."""
    pass


class DivisionByZeroError(AnalysisError, ZeroDivisionError):
    """ED volume is zero, so the ejection fraction is undefined."""
    pass


class MeshParseError(AnalysisError):
    """Mesh payload could not be turned into renderable geometry."""
    pass
