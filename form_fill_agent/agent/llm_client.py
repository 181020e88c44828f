from __future__ import annotations

import asyncio
import json
import re
from typing import Any, Optional

from openai import OpenAI

from ..config import settings
from .errors import ExtractionError


class OpenAIChatPipeline:
    def __init__(self, model: str, api_key: str, base_url: str | None, max_new_tokens: int):
        self.client = OpenAI(api_key=api_key, base_url=base_url)
        self.model = model
        self.max_new_tokens = max_new_tokens

    def __call__(self, prompt, max_new_tokens: int | None = None, **_):
        max_tokens = max_new_tokens or self.max_new_tokens
        resp = self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=0,
            max_completion_tokens=max_tokens,
        )
        return [{"generated_text": resp.choices[0].message.content or ""}]


def _object_spans(text: str) -> list[str]:
    spans: list[str] = []
    depth = 0
    start_idx: int | None = None
    in_string = False
    escaped = False
    for idx, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"' and depth > 0:
            in_string = True
        elif ch == "{":
            if depth == 0:
                start_idx = idx
            depth += 1
        elif ch == "}":
            if depth > 0:
                depth -= 1
                if depth == 0 and start_idx is not None:
                    spans.append(text[start_idx : idx + 1])
    return spans


def _extract_json_object(text: str) -> Optional[dict]:
    """Extract the first well-formed JSON object from the provided text.

    Code fences are tolerated, as is commentary before or after the object.
    Braces inside JSON strings do not count towards object boundaries.
    """

    if not text:
        return None
    cleaned = text.strip()
    fenced = re.findall(r"```(?:json)?\s*(.*?)```", cleaned, re.DOTALL | re.IGNORECASE)

    # Fenced blocks first, in order, then the whole reply.
    for block in fenced + [cleaned]:
        for candidate in _object_spans(block):
            try:
                data = json.loads(candidate)
            except json.JSONDecodeError:
                continue
            if isinstance(data, dict):
                return data
    return None


class StructuredLLMClient:
    """Lightweight async wrapper around a text-generation pipeline."""

    def __init__(self, pipeline: Any) -> None:
        self.pipeline = pipeline

    def _generate(self, prompt: str) -> str:
        return self.pipeline(prompt)[0]["generated_text"]

    async def generate_text(self, prompt: str) -> str:
        return await asyncio.to_thread(self._generate, prompt)

    async def generate_json(self, prompt: str) -> dict:
        raw = await self.generate_text(prompt)
        data = _extract_json_object(raw)
        if data is None:
            raise ExtractionError("LLM output did not contain a JSON object")
        return data


def create_text_generation_pipeline(model_name: str | None = None, *, max_new_tokens: int | None = None):
    if settings.llm_provider == "openai":
        if not settings.openai_api_key:
            raise ValueError("OPENAI_API_KEY is required when llm_provider=openai")
        return OpenAIChatPipeline(
            model=model_name or settings.openai_model,
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            max_new_tokens=max_new_tokens or settings.max_new_tokens,
        )
    raise ValueError(f"Unsupported llm_provider: {settings.llm_provider}")

def create_structured_llm_client(model_name: str | None = None, *, max_new_tokens: int | None = None) -> StructuredLLMClient:
    return StructuredLLMClient(
        create_text_generation_pipeline(model_name=model_name, max_new_tokens=max_new_tokens)
    )
