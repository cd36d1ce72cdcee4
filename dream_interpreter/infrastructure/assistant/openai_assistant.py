"""OpenAI Assistants adapter implementing the AssistantPort."""
from __future__ import annotations

import logging
import time
from typing import Optional

from openai import AsyncOpenAI, OpenAIError

from dream_interpreter.config import Settings
from dream_interpreter.context.interpretation.prompts import InterpretationPrompts
from dream_interpreter.domain.interpretation.errors import NoResponse, ServiceUnavailable
from dream_interpreter.domain.ports.assistant import (
    AssistantPort,
    RunHandle,
    RunStatus,
    ThreadHandle,
)
from dream_interpreter.domain.user.profile import UserProfile

logger = logging.getLogger(__name__)


class OpenAIAssistantClient(AssistantPort):
    """Thin transport over the threads / messages / runs endpoints.

    No business logic lives here beyond picking the run instructions for a
    round; every SDK error is reported as ``ServiceUnavailable``.
    """

    _MESSAGE_PAGE_SIZE = 20

    def __init__(
        self,
        api_key: str,
        assistant_id: str,
        base_url: Optional[str] = None,
        timeout_s: float = 30.0,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        self._assistant_id = assistant_id
        # max_retries=0: retrying is the orchestrator's decision
        self._client = client or AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_s,
            max_retries=0,
        )

    # ───────────────────────── public API (port impl) ───────────────────────── #

    async def open_thread(self) -> ThreadHandle:
        logger.info("Creating assistant thread")
        try:
            thread = await self._client.beta.threads.create()
        except OpenAIError as e:
            logger.error(f"Failed to create thread: {str(e)}")
            raise ServiceUnavailable(f"Failed to create thread: {str(e)}") from e
        logger.info(f"Thread created: {thread.id}")
        return ThreadHandle(thread_id=thread.id)

    async def post_message(self, thread: ThreadHandle, text: str, profile: Optional[UserProfile]) -> str:
        content = InterpretationPrompts.build_message(text, profile)
        logger.debug(f"Adding message to thread {thread.thread_id} ({len(content)} chars, profile={'yes' if profile else 'no'})")
        try:
            message = await self._client.beta.threads.messages.create(
                thread_id=thread.thread_id,
                role="user",
                content=content,
            )
        except OpenAIError as e:
            logger.error(f"Failed to add message to thread {thread.thread_id}: {str(e)}")
            raise ServiceUnavailable(f"Failed to add message: {str(e)}") from e
        return message.id

    async def start_run(self, thread: ThreadHandle, round_number: int) -> RunHandle:
        instructions = InterpretationPrompts.instructions_for_round(round_number)
        logger.info(f"Starting run for round {round_number} on thread {thread.thread_id}")
        try:
            run = await self._client.beta.threads.runs.create(
                thread_id=thread.thread_id,
                assistant_id=self._assistant_id,
                instructions=instructions,
            )
        except OpenAIError as e:
            logger.error(f"Failed to start run on thread {thread.thread_id}: {str(e)}")
            raise ServiceUnavailable(f"Failed to run assistant: {str(e)}") from e
        return RunHandle(run_id=run.id, thread_id=thread.thread_id)

    async def poll_run(self, thread: ThreadHandle, run: RunHandle) -> RunStatus:
        start = time.time()
        try:
            result = await self._client.beta.threads.runs.retrieve(run.run_id, thread_id=thread.thread_id)
        except OpenAIError as e:
            logger.error(f"Failed to check run {run.run_id}: {str(e)}")
            raise ServiceUnavailable(f"Failed to check run status: {str(e)}") from e
        status = RunStatus.parse(result.status)
        logger.debug(f"Run {run.run_id} status: {status.value} ({(time.time() - start) * 1000:.0f}ms)")
        return status

    async def latest_assistant_message(self, thread: ThreadHandle, run: RunHandle) -> str:
        try:
            page = await self._client.beta.threads.messages.list(
                thread_id=thread.thread_id,
                run_id=run.run_id,
                order="desc",
                limit=self._MESSAGE_PAGE_SIZE,
            )
        except OpenAIError as e:
            logger.error(f"Failed to list messages on thread {thread.thread_id}: {str(e)}")
            raise ServiceUnavailable(f"Failed to get messages: {str(e)}") from e

        # newest first; only turns written by this run count as its reply
        for message in page.data:
            if message.role != "assistant" or getattr(message, "run_id", None) != run.run_id:
                continue
            parts = [
                block.text.value
                for block in message.content
                if getattr(block, "type", None) == "text" and block.text.value
            ]
            if parts:
                return "\n\n".join(parts)
            break

        raise NoResponse(f"Run {run.run_id} left no assistant message on thread {thread.thread_id}")


def build_assistant_client(cfg: Settings) -> Optional[OpenAIAssistantClient]:
    """Return a live client, or ``None`` when credentials are not configured."""
    if not cfg.openai_api_key or not cfg.openai_assistant_id:
        logger.warning("OpenAI credentials or assistant id missing; interpretations run in fallback mode")
        return None
    return OpenAIAssistantClient(
        api_key=cfg.openai_api_key,
        assistant_id=cfg.openai_assistant_id,
        base_url=cfg.openai_base_url,
        timeout_s=cfg.assistant_request_timeout_s,
    )
