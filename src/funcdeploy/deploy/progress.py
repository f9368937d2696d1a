"""Deployment progress reporting."""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Awaitable, Callable, Optional, Protocol

import structlog
from pydantic import BaseModel

from funcdeploy.core.models import Function

logger = structlog.get_logger()


class DeploymentStep(IntEnum):
    # Progress starts at 0.
    CREATING_ARCHIVE = 0
    UPLOADING_CODE = 1
    BUILD_STARTED = 2
    BUILDING = 3
    PUSHING_IMAGE = 4
    DEPLOYING = 5

    TOTAL = 6


EMOJI_FOR_STEP = {
    DeploymentStep.CREATING_ARCHIVE: "📂",
    DeploymentStep.UPLOADING_CODE: "📤",
    DeploymentStep.BUILD_STARTED: "🏗️",
    DeploymentStep.BUILDING: "🛠️",
    DeploymentStep.PUSHING_IMAGE: "📦",
    DeploymentStep.DEPLOYING: "🚀",
}


class ProgressNotification(BaseModel):
    message: str
    token: Optional[Any] = None
    progress: float
    total: float


class ProgressSink(Protocol):
    """Receives progress notifications for the caller's session."""

    async def notify_progress(self, notification: ProgressNotification) -> None: ...


BuildCallback = Callable[[Function], Awaitable[None]]


def format_build_message(step: DeploymentStep, message: str) -> str:
    """Turn a raw build message like ``"building: installing deps"`` into ``"🛠️ Installing deps"``."""
    label, sep, body = message.partition(":")
    text = body.strip() if sep and body.strip() else label.strip()

    emoji = EMOJI_FOR_STEP.get(step)
    if emoji is None:
        return text
    if not text:
        return emoji
    return f"{emoji} {text[:1].upper()}{text[1:]}"


class FunctionDeploymentProgress:
    """Forward-only cursor over DeploymentStep that reports each step to a sink."""

    def __init__(self, function_name: str, sink: Optional[ProgressSink] = None, token: Any = None):
        self.function_name = function_name
        self.sink = sink
        self.token = token
        self.current_step = DeploymentStep.CREATING_ARCHIVE

    async def notify_code_archive_creation(self) -> None:
        await self._notify(f"{EMOJI_FOR_STEP[DeploymentStep.CREATING_ARCHIVE]} Creating code archive")
        self._increment_step()

    async def notify_code_uploading(self) -> None:
        await self._notify(f"{EMOJI_FOR_STEP[DeploymentStep.UPLOADING_CODE]} Uploading code...")
        self._increment_step()

    async def notify_build_started(self) -> None:
        await self._notify(f"{EMOJI_FOR_STEP[DeploymentStep.BUILD_STARTED]} Starting build...")
        self._increment_step()

    def build_callback(self) -> BuildCallback:
        """Return a poll callback that streams build messages.

        Build messages are reported from the first phase after BUILD_STARTED.
        Only new, non-empty messages are emitted, one step each.
        """
        if self.current_step < DeploymentStep.BUILDING:
            self.current_step = DeploymentStep.BUILDING
        last_message = ""

        async def on_poll(function: Function) -> None:
            nonlocal last_message
            build_message = function.build_message or ""
            if not build_message or build_message == last_message:
                return
            last_message = build_message
            await self._notify(format_build_message(self.current_step, build_message))
            self._increment_step()

        return on_poll

    def _increment_step(self) -> None:
        if self.current_step < DeploymentStep.TOTAL:
            self.current_step = DeploymentStep(self.current_step + 1)

    async def _notify(self, message: str) -> None:
        log = logger.bind(function_name=self.function_name, step=int(self.current_step), message=message)
        log.info("Function deployment progressed")

        if self.sink is None:
            return

        notification = ProgressNotification(
            message=message,
            token=self.token,
            progress=float(self.current_step),
            total=float(DeploymentStep.TOTAL),
        )
        try:
            await self.sink.notify_progress(notification)
        except Exception as e:
            log.error("Failed to notify progress", error=str(e))
