from __future__ import annotations

import logging
from typing import Optional

from pydantic_ai import Agent, BinaryContent  # type: ignore
from pydantic_ai.models.openai import OpenAIModel  # type: ignore
from pydantic_ai.providers.openai import OpenAIProvider  # type: ignore

from app.application.interfaces import IRemoteDurationAgent
from app.core.config import settings
from app.core.exceptions import RemoteUnavailableError, RemoteUnparseableError
from utils.format_utils import parse_duration_text

logger = logging.getLogger(__name__)


class PydanticAIDurationAgent(IRemoteDurationAgent):
    """Remote duration estimate via pydantic-ai.

    This adapter encapsulates any dependency on LLM SDKs from the application
    layer. If initialization fails (missing API key, disabled fallback), every
    call raises RemoteUnavailableError so the chain ends cleanly.
    """

    def __init__(
        self, model_name: Optional[str] = None, *, enabled: Optional[bool] = None
    ) -> None:
        self._agent = None
        self._init_exception: Optional[Exception] = None
        self._model_name = model_name or settings.ai_pydantic_model
        self.enabled = settings.remote_fallback_enabled if enabled is None else enabled
        self._initialize()

    def _initialize(self) -> None:
        if not self.enabled or not settings.openai_api_key:
            logger.debug(
                "PydanticAIDurationAgent: remote fallback disabled or missing API key"
            )
            return
        try:
            model = self._build_model()
            self._agent = Agent(
                model=model,
                output_type=str,
                system_prompt=(
                    "You are a media analysis assistant. You are given one video file. "
                    "Answer with its playback duration in seconds as a plain number."
                ),
            )
            logger.info("🤖 PydanticAIDurationAgent initialized (%s)", model)
        except Exception as e:  # noqa: BLE001
            self._init_exception = e
            self._agent = None
            logger.warning("PydanticAIDurationAgent init failed: %s", e)

    def _build_model(self):
        provider, _, name = self._model_name.rpartition(":")
        if provider in ("", "openai"):
            return OpenAIModel(name, provider=OpenAIProvider(api_key=settings.openai_api_key))
        # other providers read their own credentials from the environment
        return self._model_name

    async def estimate_duration(
        self,
        data: bytes,
        *,
        media_type: str,
        instruction: str,
    ) -> float:
        if self._agent is None:
            reason = self._init_exception or "remote fallback not configured"
            raise RemoteUnavailableError(f"Remote agent unavailable: {reason}")

        try:
            result = await self._agent.run(  # type: ignore[attr-defined]
                [instruction, BinaryContent(data=data, media_type=media_type)]
            )
        except Exception as e:  # noqa: BLE001
            logger.warning("PydanticAIDurationAgent.estimate_duration failed: %s", e)
            raise RemoteUnavailableError(f"Remote analysis failed: {e}") from e

        text = str(result.output or "").strip()
        try:
            return parse_duration_text(text)
        except ValueError as e:
            raise RemoteUnparseableError(
                f"Remote analysis returned no numeric duration: {text[:80]!r}",
                response_text=text,
            ) from e
