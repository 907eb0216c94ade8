"""HTTP transport primitives."""

from .retrying import RetryingTransport
from .transport import MUTATING_METHODS, RawResponse, Request, Transport

__all__ = ["MUTATING_METHODS", "RawResponse", "Request", "RetryingTransport", "Transport"]
