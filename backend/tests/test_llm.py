from __future__ import annotations

import json
import logging

import httpx
import pytest
from fastapi.testclient import TestClient

from grantmaster.config import Settings
from grantmaster.llm import LLMAdvisorError, OpenAIAdvisor, _parse_json_object


def _settings(**overrides: object) -> Settings:
    values: dict[str, object] = {"openai_api_key": "sk-test-0123456789abcdef", "openai_model": "gpt-4o-mini"}
    values.update(overrides)
    return Settings(**values)


def _completion(content: str) -> dict[str, object]:
    return {"choices": [{"index": 0, "message": {"role": "assistant", "content": content}}]}


def _advisor(handler, **overrides: object) -> OpenAIAdvisor:
    client = httpx.Client(base_url="https://llm.test/v1", transport=httpx.MockTransport(handler))
    return OpenAIAdvisor(_settings(**overrides), client=client)


def test_score_section_posts_json_mode_request_and_parses_result() -> None:
    captured: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["authorization"] = request.headers["Authorization"]
        captured["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json=_completion(
                json.dumps(
                    {
                        "score": 78.6,
                        "rationale": "Clear aims, thin preliminary data.",
                        "strengths": ["Focused hypothesis", ""],
                        "weaknesses": ["No power analysis"],
                    }
                )
            ),
        )

    score = _advisor(handler).score_section(
        section_type="specific_aims",
        title="Specific Aims",
        content="Aim 1 validates the assay.",
    )

    assert captured["url"] == "https://llm.test/v1/chat/completions"
    assert captured["authorization"] == "Bearer sk-test-0123456789abcdef"
    body = captured["body"]
    assert body["model"] == "gpt-4o-mini"
    assert body["response_format"] == {"type": "json_object"}
    assert "Aim 1 validates the assay." in body["messages"][1]["content"]

    assert score.score == 79
    assert score.strengths == ["Focused hypothesis"]
    assert score.to_dict()["advisory"] is True


def test_score_is_clamped_to_range() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_completion('```json\n{"score": 140, "rationale": "ok"}\n```'))

    assert _advisor(handler).score_section(section_type="aims", title="Aims", content="text").score == 100


def test_missing_api_key_fails_without_calling_out() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    with pytest.raises(LLMAdvisorError, match="OPENAI_API_KEY"):
        _advisor(handler, openai_api_key="").score_section(section_type="aims", title="Aims", content="text")


def test_http_errors_and_malformed_output_raise_advisor_error() -> None:
    def server_error(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"error": {"message": "overloaded"}})

    with pytest.raises(LLMAdvisorError, match="LLM invocation failed"):
        _advisor(server_error).score_section(section_type="aims", title="Aims", content="text")

    def not_numeric(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_completion('{"score": "high", "rationale": "?"}'))

    with pytest.raises(LLMAdvisorError, match="not numeric"):
        _advisor(not_numeric).score_section(section_type="aims", title="Aims", content="text")

    def no_choices(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"choices": []})

    with pytest.raises(LLMAdvisorError, match="choices"):
        _advisor(no_choices).score_section(section_type="aims", title="Aims", content="text")


def test_parse_json_object_extracts_embedded_object() -> None:
    assert _parse_json_object('Here you go: {"score": 5} thanks') == {"score": 5}
    with pytest.raises(LLMAdvisorError):
        _parse_json_object("no json here")


def test_score_endpoint_returns_advisory_result(client: TestClient) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_completion('{"score": 64, "rationale": "Solid approach."}'))

    client.app.state.advisor = _advisor(handler)
    application = client.post("/api/applications", json={"title": "Scored", "mechanism": "R43"}).json()
    section_id = application["sections"][0]["id"]

    response = client.post(f"/api/sections/{section_id}/score")
    assert response.status_code == 400

    client.put(f"/api/sections/{section_id}", json={"content": "Aim 1 validates the assay."})
    response = client.post(f"/api/sections/{section_id}/score")
    assert response.status_code == 200
    assert response.json() == {
        "sectionId": section_id,
        "score": 64,
        "rationale": "Solid approach.",
        "strengths": [],
        "weaknesses": [],
        "advisory": True,
    }


def test_score_endpoint_maps_llm_failures_to_bad_gateway(client: TestClient) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500)

    client.app.state.advisor = _advisor(handler)
    application = client.post("/api/applications", json={"title": "Scored", "mechanism": "R43"}).json()
    section_id = application["sections"][0]["id"]
    client.put(f"/api/sections/{section_id}", json={"content": "Aim 1 validates the assay."})

    response = client.post(f"/api/sections/{section_id}/score")
    assert response.status_code == 502
    assert response.json() == {"detail": "Section scoring is unavailable"}


def test_llm_failure_logs_do_not_leak_credentials(client: TestClient, caplog: pytest.LogCaptureFixture) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("proxy refused Bearer sk-test-0123456789abcdef", request=request)

    client.app.state.advisor = _advisor(handler)
    application = client.post("/api/applications", json={"title": "Scored", "mechanism": "R43"}).json()
    section_id = application["sections"][0]["id"]
    client.put(f"/api/sections/{section_id}", json={"content": "Aim 1 validates the assay."})

    with caplog.at_level(logging.WARNING):
        response = client.post(f"/api/sections/{section_id}/score")

    assert response.status_code == 502
    failures = [
        record
        for record in caplog.records
        if getattr(record, "event", None) in {"llm_invoke_failed", "section_score_failed"}
    ]
    assert {record.event for record in failures} == {"llm_invoke_failed", "section_score_failed"}
    for record in failures:
        assert "sk-test-0123456789abcdef" not in record.error
        assert "Bearer [REDACTED]" in record.error
