"""
Pipeline error taxonomy.

Every failure that should stop a run derives from PipelineError so the HTTP
boundary and the batch entry point can turn it into a status and a message.
Unstructured model output is not an error: the rewrite step degrades instead.
"""

from __future__ import annotations

from typing import Optional


class PipelineError(Exception):
    """Base class for failures that abort a pipeline run."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(PipelineError):
    """A required credential or setting is missing or invalid."""


class TransportError(PipelineError):
    """An outbound fetch or API call failed or returned a non-success status."""

    def __init__(self, message: str, url: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class ExtractionEmpty(PipelineError):
    """No usable body text could be extracted from a page."""


class InsufficientReferences(PipelineError):
    """The search step did not yield enough external reference articles."""

    def __init__(self, message: str, found: int = 0, required: int = 2):
        super().__init__(message)
        self.found = found
        self.required = required
