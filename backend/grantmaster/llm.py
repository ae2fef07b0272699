from __future__ import annotations

from dataclasses import dataclass, field
import json
import logging
import re
import time
from typing import Any

import httpx

from grantmaster.config import Settings
from grantmaster.observability import describe_error

logger = logging.getLogger("grantmaster.llm")

SCORE_MIN = 0
SCORE_MAX = 100
_MAX_SECTION_CHARS = 12000


class LLMAdvisorError(RuntimeError):
    """Raised when the LLM call fails or returns output that cannot be parsed."""


@dataclass(frozen=True)
class AdvisoryScore:
    score: int
    rationale: str
    strengths: list[str] = field(default_factory=list)
    weaknesses: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "score": self.score,
            "rationale": self.rationale,
            "strengths": list(self.strengths),
            "weaknesses": list(self.weaknesses),
            "advisory": True,
        }


class OpenAIAdvisor:
    """Best-effort reviewer feedback from the OpenAI chat completions API.

    Scores are advisory: they are never deterministic and never feed validation
    or export decisions.
    """

    def __init__(self, settings: Settings, client: httpx.Client | None = None) -> None:
        self._settings = settings
        self._client = client or httpx.Client(
            base_url=settings.openai_base_url,
            timeout=settings.llm_timeout_seconds,
        )

    def close(self) -> None:
        self._client.close()

    def score_section(self, *, section_type: str, title: str, content: str) -> AdvisoryScore:
        system_prompt = (
            "You are an experienced NIH study section reviewer. "
            "Return strict JSON only. Do not include markdown or prose."
        )
        user_prompt = (
            "Return a JSON object with keys score (integer 0-100), rationale (string), "
            "strengths (array of strings), weaknesses (array of strings).\n\n"
            f"Section type: {section_type}\n"
            f"Section title: {title}\n\n"
            f"Section text:\n{_truncate(content, _MAX_SECTION_CHARS)}"
        )
        payload = self._invoke_json_model(system_prompt, user_prompt)
        return AdvisoryScore(
            score=_clamp_score(payload.get("score")),
            rationale=str(payload.get("rationale") or "").strip(),
            strengths=_string_list(payload.get("strengths")),
            weaknesses=_string_list(payload.get("weaknesses")),
        )

    def _invoke_json_model(self, system_prompt: str, user_prompt: str) -> dict[str, Any]:
        if not self._settings.openai_api_key:
            raise LLMAdvisorError("OPENAI_API_KEY is not configured.")

        model = self._settings.openai_model
        started = time.perf_counter()
        try:
            response = self._client.post(
                "/chat/completions",
                headers={"Authorization": f"Bearer {self._settings.openai_api_key}"},
                json={
                    "model": model,
                    "temperature": self._settings.llm_temperature,
                    "max_tokens": self._settings.llm_max_tokens,
                    "response_format": {"type": "json_object"},
                    "messages": [
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": user_prompt},
                    ],
                },
            )
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            duration_ms = round((time.perf_counter() - started) * 1000, 2)
            logger.warning(
                "llm_invoke_failed",
                extra={
                    "event": "llm_invoke_failed",
                    "model": model,
                    "duration_ms": duration_ms,
                    "error": describe_error(exc),
                },
            )
            raise LLMAdvisorError(f"LLM invocation failed for model '{model}': {exc}") from exc

        text = _extract_text(body)
        payload = _parse_json_object(text)
        if not isinstance(payload, dict):
            raise LLMAdvisorError("LLM response must be a JSON object.")
        logger.info(
            "llm_invoke_completed",
            extra={
                "event": "llm_invoke_completed",
                "model": model,
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                "user_prompt_chars": len(user_prompt),
                "response_chars": len(text),
            },
        )
        return payload


def _extract_text(body: Any) -> str:
    choices = body.get("choices") if isinstance(body, dict) else None
    if not isinstance(choices, list) or not choices:
        raise LLMAdvisorError("LLM response did not include any choices.")
    message = choices[0].get("message") if isinstance(choices[0], dict) else None
    text = message.get("content") if isinstance(message, dict) else None
    if not isinstance(text, str) or not text.strip():
        raise LLMAdvisorError("LLM response did not include textual output.")
    return text.strip()


def _parse_json_object(raw: str) -> Any:
    candidate = raw.strip()
    try:
        return json.loads(candidate)
    except json.JSONDecodeError:
        pass

    fenced = re.search(r"```(?:json)?\s*(.*?)\s*```", candidate, flags=re.IGNORECASE | re.DOTALL)
    if fenced:
        try:
            return json.loads(fenced.group(1))
        except json.JSONDecodeError:
            pass

    start = candidate.find("{")
    end = candidate.rfind("}")
    if start != -1 and end > start:
        try:
            return json.loads(candidate[start : end + 1])
        except json.JSONDecodeError as exc:
            raise LLMAdvisorError("LLM response contained malformed JSON content.") from exc

    raise LLMAdvisorError("LLM response was not valid JSON.")


def _clamp_score(value: object) -> int:
    try:
        score = int(round(float(value)))
    except (TypeError, ValueError, OverflowError):
        raise LLMAdvisorError(f"LLM response score '{value}' is not numeric.") from None
    return max(SCORE_MIN, min(SCORE_MAX, score))


def _string_list(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if str(item).strip()]


def _truncate(text: str, max_chars: int) -> str:
    if len(text) <= max_chars:
        return text
    return text[: max_chars - 3] + "..."
