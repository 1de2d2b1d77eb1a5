from __future__ import annotations

import asyncio
import random

import pytest

from models.response_generator import REPLY_TEMPLATES, TemplateResponseGenerator
from pipelines.schemas import ChatContext


@pytest.mark.parametrize("context", list(ChatContext))
def test_template_interpolates_prompt(context, fake_sleep):
    generator = TemplateResponseGenerator(sleep=fake_sleep)

    reply = asyncio.run(generator.generate(context, "Ibuprofen {dose}"))

    assert '"Ibuprofen {dose}"' in reply
    assert reply == REPLY_TEMPLATES[context].format(prompt="Ibuprofen {dose}")


def test_templates_differ_per_context(fake_sleep):
    generator = TemplateResponseGenerator(sleep=fake_sleep)
    replies = {asyncio.run(generator.generate(c, "x")) for c in ChatContext}
    assert len(replies) == len(ChatContext)


def test_latency_drawn_from_range(fake_sleep):
    generator = TemplateResponseGenerator(latency=(1.5, 2.5), sleep=fake_sleep, rng=random.Random(7))

    for _ in range(20):
        asyncio.run(generator.generate(ChatContext.question, "q"))

    assert len(fake_sleep.calls) == 20
    assert all(1.5 <= d <= 2.5 for d in fake_sleep.calls)


@pytest.mark.parametrize("latency", [(-1.0, 1.0), (2.0, 1.0)])
def test_invalid_latency_rejected(latency):
    with pytest.raises(ValueError):
        TemplateResponseGenerator(latency=latency)
