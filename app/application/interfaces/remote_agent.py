from __future__ import annotations

from typing import Protocol


class IRemoteDurationAgent(Protocol):
    """Remote content-understanding fallback used by the last tier.

    Implementations may call external LLMs. The application should not depend
    on any concrete AI SDKs. One call, one outcome: no retries.
    """

    async def estimate_duration(
        self,
        data: bytes,
        *,
        media_type: str,
        instruction: str,
    ) -> float:
        """Return the duration in seconds, or raise RemoteUnavailableError /
        RemoteUnparseableError."""
        ...
