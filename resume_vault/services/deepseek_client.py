"""
DeepSeek metadata client.

DeepSeek speaks the OpenAI chat API, so the openai SDK is pointed at its
base URL. The only task is turning resume text into the five metadata
fields; ResumeExtractor falls back to heuristics when this raises.
"""
import json
import re
from typing import Optional

import structlog
from openai import OpenAI

from resume_vault.core.config import get_settings

logger = structlog.get_logger(__name__)

# Resumes rarely need more; keeps token cost flat
MAX_INPUT_CHARS = 12000

METADATA_PROMPT = """Read the resume and answer with a single JSON object:
{"name": str|null, "major": str|null, "graduationYear": str|null,
 "companies": [str], "keywords": [str]}
companies = employers and internship hosts. keywords = technical skills.
No prose, no markdown."""

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$")


class DeepSeekResponseError(ValueError):
    """The model answered, but not with a usable JSON object."""


def parse_json_reply(reply: Optional[str]) -> dict:
    """Decode a model reply, tolerating a ```json fence around it."""
    if not reply:
        raise DeepSeekResponseError("Empty reply")
    try:
        data = json.loads(_FENCE_RE.sub("", reply.strip()))
    except json.JSONDecodeError as e:
        raise DeepSeekResponseError(f"Reply is not JSON: {e}") from e
    if not isinstance(data, dict):
        raise DeepSeekResponseError("Reply is not a JSON object")
    return data


class DeepSeekClient:
    def __init__(self, api_key: str, base_url: str, model: str = "deepseek-chat"):
        self.client = OpenAI(api_key=api_key, base_url=base_url)
        self.model = model

    def _complete(self, system: str, user: str, max_tokens: int, json_mode: bool = False) -> str:
        kwargs = {"response_format": {"type": "json_object"}} if json_mode else {}
        completion = self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "system", "content": system}, {"role": "user", "content": user}],
            max_tokens=max_tokens,
            temperature=0.1,
            **kwargs,
        )
        return completion.choices[0].message.content or ""

    def parse_resume(self, resume_text: str) -> dict:
        """Raw metadata dict; callers validate field types."""
        reply = self._complete(METADATA_PROMPT, resume_text[:MAX_INPUT_CHARS], max_tokens=600, json_mode=True)
        return parse_json_reply(reply)

    def ping(self) -> bool:
        try:
            return "OK" in self._complete("Answer tersely.", "Say OK", max_tokens=5).upper()
        except Exception as e:
            logger.warning("deepseek_unreachable", error=str(e))
            return False


_client: Optional[DeepSeekClient] = None


def get_deepseek_client() -> Optional[DeepSeekClient]:
    """Shared client, or None when no API key is configured."""
    global _client
    settings = get_settings()
    if not settings.deepseek_api_key:
        return None
    if _client is None:
        _client = DeepSeekClient(settings.deepseek_api_key, settings.deepseek_base_url, settings.deepseek_model)
    return _client
