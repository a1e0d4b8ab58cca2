"""
Guide build errors

Exceptions raised while fetching provider data and assembling the XMLTV document.
Any of them aborts the whole document build for the current request.
"""


class GuideError(Exception):
    """Base class for failures that abort a guide build"""
    pass


class UpstreamUnavailable(GuideError):
    """Raised when the listing provider cannot be reached or answers with a non-2xx status"""

    def __init__(self, url: str, reason: str, status_code: int | None = None):
        self.url = url
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Upstream unavailable ({reason}): {url}")


class MalformedResponse(GuideError):
    """Raised when a provider payload does not have the expected JSON shape"""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Malformed response from {url}: {reason}")


class InternalAssemblyError(GuideError):
    """Raised when fetched collections cannot be correlated (e.g. grid/lineup length mismatch)"""
    pass


__all__ = [
    "GuideError",
    "UpstreamUnavailable",
    "MalformedResponse",
    "InternalAssemblyError",
]
