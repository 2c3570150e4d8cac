"""Exception types raised by the mindshare core."""

from __future__ import annotations


class MindshareError(Exception):
    """Base class for every error raised by the mindshare core."""


class InputContractViolation(MindshareError, ValueError):
    """Raised when a caller hands the core data it promised never to send
    (negative attention values, empty ids, duplicate entities)."""


class InvariantViolation(MindshareError, RuntimeError):
    """Raised when a post-condition of the core cannot be restored."""
