"""Data models used throughout the interception pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple


@dataclass(frozen=True)
class InterceptedExchange:
    """A request paused by the browser after its response headers arrived."""

    request_id: str
    url: str
    method: str
    request_headers: Dict[str, str] = field(default_factory=dict)
    post_data: Optional[str] = None
    resource_type: str = ""
    status_code: Optional[int] = None
    response_headers: List[Tuple[str, str]] = field(default_factory=list)

    @classmethod
    def from_event(cls, event: Mapping[str, Any]) -> "InterceptedExchange":
        """Build an exchange from a ``Fetch.requestPaused`` payload."""
        request = event.get("request") or {}
        return cls(
            request_id=event["requestId"],
            url=request.get("url", ""),
            method=request.get("method", ""),
            request_headers=dict(request.get("headers") or {}),
            post_data=request.get("postData") or None,
            resource_type=event.get("resourceType", ""),
            status_code=event.get("responseStatusCode"),
            response_headers=[
                (header.get("name", ""), header.get("value", ""))
                for header in event.get("responseHeaders") or []
            ],
        )
