"""
models/response_generator.py

Reply generators for the chat assistant.

The conversation manager only knows the ResponseGenerator contract:

    await generator.generate(context, prompt) -> str

Latency is opaque to callers.  TemplateResponseGenerator is the demo-mode
implementation: it waits a random 1.5–2.5 s and returns canned text that
interpolates the prompt.  The wording is this module's business, not a
contract other modules should rely on.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Awaitable, Callable, Optional, Protocol

from config.settings import get_settings
from pipelines.schemas import ChatContext

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class ResponseGenerator(Protocol):
    async def generate(self, context: ChatContext, prompt: str) -> str: ...


_UPLOAD_TEMPLATE = """Based on your prescription query about "{prompt}", I can help you understand the medications prescribed, their dosages, potential side effects, and usage instructions. For a complete analysis, please upload your prescription document or share the specific medications you'd like to know about.

**Key Points:**
• Always follow your doctor's prescribed dosage
• Be aware of potential drug interactions
• Monitor for any unusual side effects
• Take medications as directed (with/without food, timing, etc.)

Would you like me to analyze specific medications or do you have questions about any particular aspect of your prescription?"""

_MEDICINE_TEMPLATE = """Here's what I found about "{prompt}":

**Medicine Information:**
• **Generic Name:** [Based on your search]
• **Usage:** Treatment of various conditions as prescribed
• **Dosage:** Follow your doctor's prescription
• **Side Effects:** May include common and rare side effects
• **Interactions:** Can interact with certain medications
• **Precautions:** Important safety information

**Important:** This information is for educational purposes. Always consult your healthcare provider for personalized medical advice.

Would you like more specific details about dosage, side effects, or interactions?"""

_QUESTION_TEMPLATE = """Thank you for your question about "{prompt}". Based on current medical knowledge:

**Response:**
This is a comprehensive answer addressing your health question. I provide information based on trusted medical sources and current healthcare guidelines.

**Key Recommendations:**
• Consult with your healthcare provider for personalized advice
• Follow prescribed treatments and medications
• Monitor your symptoms and report changes
• Maintain regular check-ups

**Disclaimer:** This information is for educational purposes only and should not replace professional medical advice.

Do you have any follow-up questions or need clarification on any specific aspect?"""

REPLY_TEMPLATES: dict[ChatContext, str] = {
    ChatContext.upload: _UPLOAD_TEMPLATE,
    ChatContext.medicine_search: _MEDICINE_TEMPLATE,
    ChatContext.question: _QUESTION_TEMPLATE,
}


class TemplateResponseGenerator:
    """Canned replies after a simulated model delay."""

    def __init__(
        self,
        latency: tuple[float, float] = (1.5, 2.5),
        sleep: Sleep = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ) -> None:
        low, high = latency
        if low < 0 or high < low:
            raise ValueError(f"Invalid latency range {latency!r}")
        self.latency = (low, high)
        self._sleep = sleep
        self._rng = rng or random.Random()

    async def generate(self, context: ChatContext, prompt: str) -> str:
        ctx = ChatContext(context)
        delay = self._rng.uniform(*self.latency)
        logger.debug("Template reply for context=%s in %.2fs", ctx.value, delay)
        await self._sleep(delay)
        template = REPLY_TEMPLATES[ctx]
        return template.format(prompt=prompt)


def get_response_generator(demo_mode: bool = True) -> ResponseGenerator:
    """
    Demo Mode -> canned template replies (no model, hosting-friendly).
    Otherwise -> the local MedGemma generator, loaded on first use.
    """
    settings = get_settings()
    if demo_mode:
        return TemplateResponseGenerator(latency=(settings.reply_latency_min, settings.reply_latency_max))

    from models.medgemma_generator import get_generator

    return get_generator(settings.model_name, settings.max_new_tokens)
