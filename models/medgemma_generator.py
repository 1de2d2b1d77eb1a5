"""
models/medgemma_generator.py

Chat reply generator backed by a local MedGemma instruction-tuned model.

Used when Demo Mode is switched off.  The model is loaded lazily on the
first request and shared by every session in the process.

Key points:
- Gemma3/MedGemma expects chat formatting (apply_chat_template).
- model.generate() is blocking, so it runs in a worker thread; the event
  loop stays free while a reply is produced.
- Any failure is raised as GenerationFailure; the conversation manager
  turns that into its apology reply.

Auth:
- If the repo is gated, you must be logged in OR provide a token via:
  HUGGINGFACE_HUB_TOKEN or HF_TOKEN
"""

from __future__ import annotations

import asyncio
import logging
import os
import threading
from typing import Any, Optional

from pipelines.errors import GenerationFailure
from pipelines.schemas import ChatContext

logger = logging.getLogger(__name__)

DEFAULT_MODEL_NAME = "google/medgemma-4b-it"

SYSTEM_INSTRUCTIONS = """You are MediLens, a cautious medical information assistant.
You do NOT provide a diagnosis. Use plain language and short bullet points.
Always remind the user to consult a healthcare professional.
"""

CONTEXT_FRAMING: dict[ChatContext, str] = {
    ChatContext.upload: "The user is asking about a prescription or medical document they want analysed.",
    ChatContext.medicine_search: "The user wants information about a specific medicine: usage, dosage, side effects, interactions and precautions.",
    ChatContext.question: "The user has a general health question.",
}


def _get_hf_token_optional() -> Optional[str]:
    """
    Return HF token if present. If the user already logged in via HF_HOME cache,
    Transformers may still work without passing token explicitly.
    """
    return os.environ.get("HUGGINGFACE_HUB_TOKEN") or os.environ.get("HF_TOKEN")


class MedGemmaResponseGenerator:
    """Wraps a MedGemma checkpoint for text-only chat replies."""

    def __init__(self, model_name: str = DEFAULT_MODEL_NAME, max_new_tokens: int = 384) -> None:
        self.model_name = model_name
        self.max_new_tokens = max_new_tokens
        self.processor: Any = None
        self.model: Any = None
        self._load_lock = threading.Lock()

    # -------------------------
    # Loading
    # -------------------------
    def _load(self) -> None:
        with self._load_lock:
            if self.model is not None:
                return

            import torch
            from transformers import AutoModelForCausalLM, AutoProcessor

            device = "cuda" if torch.cuda.is_available() else "cpu"
            token = _get_hf_token_optional()
            logger.info("Loading %s on device=%s ...", self.model_name, device)

            self.processor = AutoProcessor.from_pretrained(self.model_name, token=token)
            if device == "cuda":
                model = AutoModelForCausalLM.from_pretrained(
                    self.model_name,
                    token=token,
                    torch_dtype=torch.bfloat16,
                    device_map="auto",
                )
            else:
                model = AutoModelForCausalLM.from_pretrained(
                    self.model_name,
                    token=token,
                    torch_dtype=torch.float32,
                ).to("cpu")

            model.eval()
            self.model = model
            logger.info("%s loaded successfully.", self.model_name)

    def _model_device(self) -> Any:
        """
        device_map models don't always expose `.device` cleanly.
        """
        import torch

        dev = getattr(self.model, "device", None)
        if isinstance(dev, torch.device):
            return dev
        return next(self.model.parameters()).device

    # -------------------------
    # Inference
    # -------------------------
    def build_messages(self, context: ChatContext, prompt: str) -> list[dict[str, Any]]:
        framing = CONTEXT_FRAMING.get(ChatContext(context), CONTEXT_FRAMING[ChatContext.question])
        return [
            {"role": "system", "content": [{"type": "text", "text": SYSTEM_INSTRUCTIONS}]},
            {
                "role": "user",
                "content": [{"type": "text", "text": f"{framing}\n\n{prompt.strip()}"}],
            },
        ]

    def _generate_blocking(self, context: ChatContext, prompt: str) -> str:
        import torch

        self._load()
        inputs = self.processor.apply_chat_template(
            self.build_messages(context, prompt),
            add_generation_prompt=True,
            tokenize=True,
            return_dict=True,
            return_tensors="pt",
        ).to(self._model_device())

        with torch.no_grad():
            output_ids = self.model.generate(
                **inputs,
                max_new_tokens=self.max_new_tokens,
                do_sample=False,
            )

        input_len = int(inputs["input_ids"].shape[-1])
        text = self.processor.decode(output_ids[0][input_len:], skip_special_tokens=True).strip()
        if not text:
            raise GenerationFailure("Model returned an empty reply")
        return text

    async def generate(self, context: ChatContext, prompt: str) -> str:
        try:
            return await asyncio.to_thread(self._generate_blocking, context, prompt)
        except GenerationFailure:
            raise
        except Exception as exc:
            logger.warning("MedGemma generation failed (%s)", exc)
            raise GenerationFailure(str(exc)) from exc


# ---------------------------------------------------------------------------
# Module-level singleton (lazy-loaded by the app layer)
# ---------------------------------------------------------------------------
_generator: Optional[MedGemmaResponseGenerator] = None


def get_generator(model_name: str = DEFAULT_MODEL_NAME, max_new_tokens: int = 384) -> MedGemmaResponseGenerator:
    global _generator
    if _generator is None or _generator.model_name != model_name:
        _generator = MedGemmaResponseGenerator(model_name, max_new_tokens)
    return _generator
