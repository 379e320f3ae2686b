"""Groq chat-completions client used to voice each persona's forecast."""

import logging
from typing import Callable, Optional

import requests

from config import (
    GROQ_API_KEY, GROQ_API_URL, GROQ_MODEL, GROQ_TIMEOUT, GROQ_MIN_DELAY_SECONDS,
    GROQ_MAX_RETRIES, GROQ_TOP_P, PERSONA_TEMPERATURE,
)
from utils.constants import PERSONA_SYSTEM_PROMPTS
from utils.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


class GenerationError(RuntimeError):
    """Text generation failed: no key, HTTP failure, empty reply or failed validation."""


def build_user_prompt(section_type: str, context: str, constraints: str = "") -> str:
    prompt = (
        f'Generate the "{section_type}" section for this week\'s fantasy football newsletter.\n\n'
        f"CONTEXT:\n{context}\n\n"
    )
    if constraints:
        prompt += f"CONSTRAINTS:\n{constraints}\n\n"
    prompt += "Write your section now. Be concise but engaging. Do not include section headers - just the content."
    return prompt


class GroqTextGenerator:
    """
    Rate-limited, retrying wrapper around the Groq chat-completions endpoint.

    Callable as generator(persona, section_type, context, constraints,
    max_tokens, validate) so the forecast engine can swap in any callable
    with the same signature.
    """

    def __init__(self, api_key: str = GROQ_API_KEY, model: str = GROQ_MODEL,
                 min_delay: float = GROQ_MIN_DELAY_SECONDS, max_retries: int = GROQ_MAX_RETRIES,
                 session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.model = model
        self.max_retries = max_retries
        self.rate_limiter = RateLimiter(min_delay=min_delay)
        self.session = session or requests.Session()

    def complete(self, messages: list[dict], temperature: float, max_tokens: int) -> str:
        if not self.api_key:
            raise GenerationError("GROQ_API_KEY is not set")

        body = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "top_p": GROQ_TOP_P,
        }
        headers = {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}

        last_error = None
        for attempt in range(self.max_retries):
            self.rate_limiter.wait()
            try:
                resp = self.session.post(GROQ_API_URL, json=body, headers=headers, timeout=GROQ_TIMEOUT)
                resp.raise_for_status()
                data = resp.json()
                content = ((data.get("choices") or [{}])[0].get("message") or {}).get("content") or ""
                usage = data.get("usage") or {}
                logger.debug(f"Groq call used {usage.get('total_tokens', 0)} tokens")
                return content.strip()
            except (requests.RequestException, ValueError) as e:
                last_error = e
                if attempt < self.max_retries - 1:
                    logger.warning(f"Groq attempt {attempt + 1}/{self.max_retries} failed: {e}")
                    self.rate_limiter.backoff(attempt)
                else:
                    logger.error(f"All {self.max_retries} Groq attempts failed: {e}")
        raise GenerationError(f"Groq call failed after {self.max_retries} attempts: {last_error}")

    def __call__(self, persona: str, section_type: str, context: str, constraints: str = "",
                 max_tokens: int = 400, validate: Optional[Callable[[str], bool]] = None) -> str:
        messages = [
            {"role": "system", "content": PERSONA_SYSTEM_PROMPTS[persona]},
            {"role": "user", "content": build_user_prompt(section_type, context, constraints)},
        ]
        text = self.complete(messages, PERSONA_TEMPERATURE.get(persona, 0.7), max_tokens)
        if not text:
            raise GenerationError(f"Empty {section_type} reply for {persona}")
        if validate is not None and not validate(text):
            raise GenerationError(f"{persona} {section_type} reply failed validation")
        return text
