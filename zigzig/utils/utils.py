import asyncio
import json
import re
from typing import Any, Dict, List, Optional

import requests

from zigzig.models.settings import LLMSettings
from zigzig.utils.exceptions import ExternalServiceError, ModelError, RateLimitError, retry_with_logging
from zigzig.utils.logging_config import get_logger

logger = get_logger(__name__)

_FENCE_RE = re.compile(r"```(?:json|JSON)?")
_background_tasks = set()


class GroqChatClient:
    """Thin client for Groq's OpenAI-compatible chat completions endpoint."""

    service_name = "groq"

    def __init__(self, settings: LLMSettings, session: Optional[requests.Session] = None):
        self.settings = settings
        self.session = session or requests.Session()
        # rate limits are retried on the same model before the caller moves on
        self._post = retry_with_logging(
            max_attempts=settings.retry_attempts,
            backoff_factor=settings.retry_backoff,
            exceptions=(RateLimitError,),
            logger=logger,
        )(self._post_once)

    def complete(self, messages: List[Dict[str, str]], model: str,
                 temperature: float = 0.2, max_tokens: int = 1000) -> str:
        payload = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        data = self._post(payload)
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ModelError("Malformed completion payload", model_name=model, cause=e) from e
        if not content:
            raise ModelError("Empty completion", model_name=model)
        return content

    def _post_once(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.settings.base_url.rstrip('/')}/chat/completions"
        headers = {"Content-Type": "application/json"}
        if self.settings.api_key:
            headers["Authorization"] = f"Bearer {self.settings.api_key}"

        try:
            resp = self.session.post(url, json=payload, headers=headers, timeout=self.settings.timeout)
        except requests.RequestException as e:
            raise ExternalServiceError(
                f"LLM request failed: {e}", service_name=self.service_name, cause=e
            ) from e

        if resp.status_code == 429:
            retry_after = resp.headers.get("retry-after")
            raise RateLimitError(
                f"Rate limited by {self.service_name} for model {payload['model']}",
                retry_after=float(retry_after) if retry_after and retry_after.replace(".", "", 1).isdigit() else None,
            )
        if not 200 <= resp.status_code < 300:
            raise ExternalServiceError(
                f"LLM returned HTTP {resp.status_code}",
                service_name=self.service_name,
                status_code=resp.status_code,
            )
        try:
            return resp.json()
        except ValueError as e:
            raise ModelError("LLM response was not JSON", model_name=payload["model"], cause=e) from e


def clean_json_response(text: str) -> str:
    """Strip markdown code fences and stray quote/backtick wrapping."""
    cleaned = _FENCE_RE.sub("", text or "").strip()
    return cleaned.strip("`'\"").strip()


def parse_json_object(text: str, model_name: str = None) -> Dict[str, Any]:
    """Parse an LLM reply into a JSON object, falling back to the outermost {...} block."""
    cleaned = clean_json_response(text)
    try:
        data = json.loads(cleaned)
    except ValueError:
        # heuristics to find JSON inside surrounding prose
        start = cleaned.find("{")
        end = cleaned.rfind("}")
        if start < 0 or end <= start:
            raise ModelError("No JSON object in model response", model_name=model_name)
        try:
            data = json.loads(cleaned[start:end + 1])
        except ValueError as e:
            raise ModelError("Unparseable JSON in model response", model_name=model_name, cause=e) from e
    if not isinstance(data, dict):
        raise ModelError("Model response JSON is not an object", model_name=model_name)
    return data


async def _guarded(coro, name: str, log):
    try:
        await coro
    except asyncio.CancelledError:
        raise
    except Exception as e:
        log.warning(f"Background task '{name}' failed: {e}")


def run_detached(coro, name: str = "background", log=None) -> asyncio.Task:
    """Run a best-effort coroutine without blocking the caller; failures are only logged."""
    task = asyncio.ensure_future(_guarded(coro, name, log or logger))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task
