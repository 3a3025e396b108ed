"""
Exception hierarchy shared by all layers.

Conditions that merely mean "this event is not for us" (unparseable datums,
unrelated pools, unknown event shapes) are never raised; decoders return None
for those. Everything below is a real failure that propagates to the host.
"""
from __future__ import annotations

from typing import Optional


class WorkerError(Exception):
    """Base exception for the strategy worker."""

    pass


class ConfigurationError(WorkerError):
    """Invalid or missing configuration. Fatal at startup."""

    pass


class SigningKeyMissingError(WorkerError):
    """The configured signing key is not present in the key ring."""

    def __init__(self, key_name: str):
        super().__init__(f"Signing key '{key_name}' not found in key ring")
        self.key_name = key_name


class StateStoreError(WorkerError):
    """Reading or writing persisted state failed."""

    pass


class SubmissionError(WorkerError):
    """A trade instruction could not be signed or handed to the relay."""

    pass


class RelayError(SubmissionError):
    """The relay rejected the submission or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RequestError(WorkerError):
    """A worker request (e.g. get-peak-price) carried invalid parameters."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code
