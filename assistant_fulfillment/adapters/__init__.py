"""Infrastructure adapter exports."""

from .http import BufferedResponse, RequestAdapter

__all__ = ["BufferedResponse", "RequestAdapter"]
