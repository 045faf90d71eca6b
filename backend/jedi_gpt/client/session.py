"""
Conversation state for the chat front-end.

One session holds the visible conversation, the draft input and a single
tagged state:

    Idle ──submit──> Submitting ──reply──> Idle
                        │
                        └──failure──> Failed ──retry/submit──> Submitting

Only one request is ever in flight; submit() is refused while Submitting.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import List, Literal, Optional, Protocol, Union

from pydantic import BaseModel, Field

from jedi_gpt.client.proxy import ProxyError

log = logging.getLogger("client")


class Asker(Protocol):
    async def ask(self, prompt: str) -> str: ...


class ChatMessage(BaseModel):
    """A single line in the visible conversation"""
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    role: Literal["user", "assistant"]
    text: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ErrorRecord(BaseModel):
    message: str
    details: Optional[str] = None


# ── States ──

class Idle(BaseModel):
    kind: Literal["idle"] = "idle"


class Submitting(BaseModel):
    kind: Literal["submitting"] = "submitting"
    prompt: str


class Failed(BaseModel):
    kind: Literal["error"] = "error"
    prompt: str
    error: ErrorRecord


SessionState = Union[Idle, Submitting, Failed]


class SessionBusyError(RuntimeError):
    """A prompt was submitted while another one is still in flight."""


class ChatSession:
    """In-memory conversation driven by an Asker (normally a ProxyClient)."""

    def __init__(self, asker: Asker):
        self.asker = asker
        self.messages: List[ChatMessage] = []
        self.state: SessionState = Idle()
        self.draft = ""

    @property
    def is_submitting(self) -> bool:
        return isinstance(self.state, Submitting)

    @property
    def error(self) -> Optional[ErrorRecord]:
        if isinstance(self.state, Failed):
            return self.state.error
        return None

    @property
    def can_send(self) -> bool:
        return not self.is_submitting and bool(self.draft.strip())

    @property
    def can_clear(self) -> bool:
        return bool(self.messages)

    def begin(self) -> Optional[str]:
        """
        Move the draft into the conversation and enter Submitting.

        Returns the prompt to send, or None when the draft is blank.
        """
        if self.is_submitting:
            raise SessionBusyError("A prompt is already being answered")
        prompt = self.draft
        if not prompt.strip():
            return None
        self.messages.append(ChatMessage(role="user", text=prompt))
        self.draft = ""
        self.state = Submitting(prompt=prompt)
        return prompt

    def resolve(self, reply: str) -> ChatMessage:
        if not isinstance(self.state, Submitting):
            raise RuntimeError(f"Cannot resolve a reply in state {self.state.kind!r}")
        message = ChatMessage(role="assistant", text=reply)
        self.messages.append(message)
        self.state = Idle()
        return message

    def fail(self, error: ErrorRecord) -> None:
        if not isinstance(self.state, Submitting):
            raise RuntimeError(f"Cannot record a failure in state {self.state.kind!r}")
        self.state = Failed(prompt=self.state.prompt, error=error)

    async def submit(self, text: Optional[str] = None) -> Optional[ChatMessage]:
        """
        Send the draft (or `text`, which replaces the draft) and wait for the reply.

        Returns the assistant message on success, None when nothing was sent
        or the call failed (the failure is then available as `self.error`).
        """
        if text is not None:
            if self.is_submitting:
                raise SessionBusyError("A prompt is already being answered")
            self.draft = text
        prompt = self.begin()
        if prompt is None:
            return None

        try:
            reply = await self.asker.ask(prompt)
        except ProxyError as e:
            log.info(f"Prompt failed: {e.message} ({e.details})")
            self.fail(ErrorRecord(message=e.message, details=e.details))
            return None
        except BaseException as e:
            # Leave Submitting so the session can still send, then propagate
            self.fail(ErrorRecord(message="The request was interrupted.", details=repr(e)))
            raise
        return self.resolve(reply)

    async def retry(self) -> Optional[ChatMessage]:
        """Re-populate the draft with the failed prompt and submit it again."""
        if not isinstance(self.state, Failed):
            return None
        self.draft = self.state.prompt
        return await self.submit()

    def clear(self) -> None:
        """Drop the conversation and any error. No-op when already empty."""
        if not self.can_clear:
            return
        self.messages = []
        if not self.is_submitting:
            self.state = Idle()
