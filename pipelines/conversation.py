"""
pipelines/conversation.py

Turn log for one chat session.

A session starts with a single assistant welcome message chosen by the
context tag.  Each user send appends two turns: the user's text and a
pending assistant placeholder.  The placeholder is later resolved in place
(same id, same index) with the generated reply, or with a fixed apology if
the generator fails.  While a placeholder is pending no new send is
accepted, so there is at most one generator call in flight per session.
"""

from __future__ import annotations

import itertools
import logging
from datetime import datetime, timezone
from typing import Optional

from models.response_generator import ResponseGenerator
from pipelines.errors import ConversationStateError
from pipelines.schemas import ChatContext, Conversation, Message, Role

logger = logging.getLogger(__name__)

WELCOME_MESSAGES: dict[ChatContext, str] = {
    ChatContext.upload: (
        "Hello! I'm your MediLens AI assistant. I can help you analyze prescriptions, medical "
        "documents, or any health-related content. You can upload files, share URLs, or simply "
        "describe what you'd like to know about your prescription."
    ),
    ChatContext.medicine_search: (
        "Hi there! I'm here to help you find detailed information about medicines. Just tell me "
        "the name of any medication, and I'll provide you with usage instructions, dosage, side "
        "effects, interactions, and more from trusted medical databases."
    ),
    ChatContext.question: (
        "Welcome! I'm your AI health assistant. Feel free to ask me any questions about "
        "medications, health conditions, symptoms, or general medical information. I'm here to "
        "provide you with accurate, helpful answers."
    ),
}

CONTEXT_TITLES: dict[ChatContext, str] = {
    ChatContext.upload: "Prescription Analysis",
    ChatContext.medicine_search: "Medicine Information",
    ChatContext.question: "Health Questions",
}

APOLOGY_MESSAGE = (
    "I apologize, but I encountered an error processing your request. "
    "Please try again or contact support if the issue persists."
)


class ConversationManager:
    def __init__(self, generator: ResponseGenerator, context: ChatContext | str | None = None):
        self.generator = generator
        self._ids = itertools.count(1)
        self._conversation: Optional[Conversation] = None
        self._pending_index: Optional[int] = None
        if context is not None:
            self.start(context)

    # -------------------------
    # Read-only views
    # -------------------------
    @property
    def conversation(self) -> Conversation:
        if self._conversation is None:
            raise ConversationStateError("conversation has not been started")
        return self._conversation

    @property
    def context(self) -> ChatContext:
        return self.conversation.context

    @property
    def title(self) -> str:
        return CONTEXT_TITLES[self.context]

    @property
    def turns(self) -> list[Message]:
        return list(self.conversation.turns)

    @property
    def is_awaiting(self) -> bool:
        return self._pending_index is not None

    @property
    def pending(self) -> Optional[Message]:
        if self._pending_index is None:
            return None
        return self.conversation.turns[self._pending_index]

    def _new_message(self, role: Role, content: str = "", pending: bool = False) -> Message:
        return Message(
            id=next(self._ids),
            role=role,
            content=content,
            timestamp=datetime.now(tz=timezone.utc),
            pending=pending,
        )

    # -------------------------
    # Lifecycle
    # -------------------------
    def start(self, context: ChatContext | str) -> Conversation:
        """Begin a fresh session whose only turn is the context's welcome message."""
        if self.is_awaiting:
            raise ConversationStateError("cannot restart while a reply is pending")
        ctx = ChatContext(context)
        welcome = self._new_message(Role.assistant, WELCOME_MESSAGES[ctx])
        self._conversation = Conversation(context=ctx, turns=[welcome])
        logger.debug("Conversation started (context=%s)", ctx.value)
        return self._conversation

    def begin_send(self, user_text: str) -> Optional[Message]:
        """
        Append the user turn and a pending assistant placeholder.

        Returns the placeholder, or ``None`` when the text is blank or a
        reply is already pending (the send is ignored).
        """
        text = (user_text or "").strip()
        if not text or self.is_awaiting:
            return None

        turns = self.conversation.turns
        turns.append(self._new_message(Role.user, text))
        placeholder = self._new_message(Role.assistant, pending=True)
        turns.append(placeholder)
        self._pending_index = len(turns) - 1
        return placeholder

    def resolve(self, generated_text: str) -> Message:
        """Fill the pending placeholder in place and return to idle."""
        if self._pending_index is None:
            raise ConversationStateError("no pending reply to resolve")
        if not generated_text:
            raise ValueError("resolved reply must not be empty")

        turns = self.conversation.turns
        resolved = turns[self._pending_index].model_copy(
            update={"content": generated_text, "pending": False}
        )
        turns[self._pending_index] = resolved
        self._pending_index = None
        return resolved

    async def send(self, user_text: str) -> Optional[Message]:
        """
        Full turn: append, ask the generator, resolve.

        Returns the resolved assistant message, or ``None`` if the send was
        ignored.  Generator failures never escape; they resolve the turn
        with APOLOGY_MESSAGE.
        """
        placeholder = self.begin_send(user_text)
        if placeholder is None:
            return None

        prompt = self.conversation.turns[self._pending_index - 1].content
        try:
            reply = await self.generator.generate(self.context, prompt)
        except Exception as exc:
            logger.warning("Reply generation failed for message %d: %s", placeholder.id, exc)
            reply = APOLOGY_MESSAGE
        if not reply:
            logger.warning("Empty reply for message %d", placeholder.id)
            reply = APOLOGY_MESSAGE

        return self.resolve(reply)
