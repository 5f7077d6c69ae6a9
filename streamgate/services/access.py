from __future__ import annotations

"""
Access decisions for video delivery.

`AccessGate.check(principal, video)` returns an `AccessDecision` (allowed +
optional reason) so a real entitlement check can replace the always-allow
gate without touching the gateway.
"""

from typing import Optional, Protocol

from streamgate.schemas.video import AccessDecision, Principal, VideoRecord


class AccessGate(Protocol):
    async def check(self, principal: Optional[Principal], video: VideoRecord) -> AccessDecision: ...


class AllowAllAccessGate:
    """Grants every request. Enrollment checks are not wired in yet."""

    async def check(self, principal: Optional[Principal], video: VideoRecord) -> AccessDecision:
        return AccessDecision(allowed=True)


class DenyAllAccessGate:
    """Refuses every request; useful for maintenance windows and tests."""

    def __init__(self, reason: str = "Access denied") -> None:
        self.reason = reason

    async def check(self, principal: Optional[Principal], video: VideoRecord) -> AccessDecision:
        return AccessDecision(allowed=False, reason=self.reason)


__all__ = ["AccessGate", "AllowAllAccessGate", "DenyAllAccessGate"]
