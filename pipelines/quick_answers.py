"""
pipelines/quick_answers.py

Instant, simulated answers for the dashboard's feature modals.

Unlike the chat assistant there is no latency and no pending state: the
answer is built immediately and prepended to a newest-first list.
"""

from __future__ import annotations

from pipelines.schemas import Answer

MAX_ANSWERS = 20


def answer_question(question: str) -> Answer:
    q = (question or "").strip()
    if not q:
        raise ValueError("question must not be empty")
    response = (
        f'Based on your query about "{q}", our AI analysis suggests comprehensive evaluation '
        "and monitoring. This is a simulated response for demonstration purposes."
    )
    return Answer(question=q, response=response)


class AnswerLog:
    """Newest-first list of dashboard answers, capped at ``limit`` entries."""

    def __init__(self, limit: int = MAX_ANSWERS):
        self.limit = limit
        self._answers: list[Answer] = []

    def ask(self, question: str) -> Answer:
        answer = answer_question(question)
        self._answers.insert(0, answer)
        del self._answers[self.limit:]
        return answer

    def __iter__(self):
        return iter(list(self._answers))

    def __len__(self) -> int:
        return len(self._answers)
