"""Tests for OpenAIClassifier against a stubbed chat-completions endpoint.

The endpoint is an `httpx.MockTransport` handler that records every request
body and answers from a list of prepared responses.
"""

import json

import httpx
import pytest

from schemaai.classification import ClassificationRequest
from schemaai.errors import (
    MalformedResponseError,
    MissingCredentialsError,
    ProviderHTTPError,
    ResponseShapeError,
    TransportError,
)
from schemaai.pipeline.openai_classifier import OpenAIClassifier, response_schema, system_prompt

from tests.conftest import lounge_payload


def _completion(content) -> httpx.Response:
    text = content if isinstance(content, str) else json.dumps(content)
    return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": text}}]})


class StubEndpoint:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.bodies: list[dict] = []
        self.headers: list[httpx.Headers] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.bodies.append(json.loads(request.content))
        self.headers.append(request.headers)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def classifier(self, api_key="sk-test") -> OpenAIClassifier:
        return OpenAIClassifier(
            api_key=api_key,
            model="gpt-test",
            base_url="https://llm.example.test/v1/",
            transport=httpx.MockTransport(self),
        )


@pytest.fixture
def classification_request():
    return ClassificationRequest(content_id=1, title="Acme Lounge Review", text="We liked it.")


class TestClassify:
    async def test_strict_success(self, classification_request):
        endpoint = StubEndpoint(_completion({"result": lounge_payload()}))

        classification = await endpoint.classifier().classify(classification_request)

        assert classification.primary_type == "Review"
        assert classification.details.lounge.name == "Acme Lounge"
        assert len(endpoint.bodies) == 1
        body = endpoint.bodies[0]
        assert body["model"] == "gpt-test"
        assert body["temperature"] == 0.0
        assert body["response_format"]["type"] == "json_schema"
        assert body["response_format"]["json_schema"]["strict"] is True
        assert endpoint.headers[0]["authorization"] == "Bearer sk-test"

    async def test_falls_back_to_json_object(self, classification_request):
        endpoint = StubEndpoint(
            httpx.Response(400, json={"error": {"message": "schema not supported"}}),
            _completion(lounge_payload()),
        )

        classification = await endpoint.classifier().classify(classification_request)

        assert classification.primary_type == "Review"
        assert [b["response_format"]["type"] for b in endpoint.bodies] == ["json_schema", "json_object"]

    async def test_second_failure_is_reported(self, classification_request):
        endpoint = StubEndpoint(
            httpx.Response(400, json={"error": {"message": "first"}}),
            httpx.Response(503, json={"error": {"message": "second"}}),
        )

        with pytest.raises(ProviderHTTPError) as exc_info:
            await endpoint.classifier().classify(classification_request)

        assert exc_info.value.status_code == 503
        assert str(exc_info.value) == "HTTP 503: second"

    async def test_http_error_without_message(self, classification_request):
        endpoint = StubEndpoint(httpx.Response(500, json={}), httpx.Response(500, json={}))

        with pytest.raises(ProviderHTTPError, match="Unknown OpenAI error."):
            await endpoint.classifier().classify(classification_request)

    async def test_transport_error(self, classification_request):
        endpoint = StubEndpoint(httpx.ConnectError("refused"), httpx.ConnectError("refused"))

        with pytest.raises(TransportError, match="Request to classifier failed"):
            await endpoint.classifier().classify(classification_request)

    @pytest.mark.parametrize(
        "make_response,message",
        [
            (lambda: httpx.Response(200, text="<html>"), "OpenAI response was not valid JSON."),
            (lambda: httpx.Response(200, json={"choices": []}), "OpenAI returned empty content."),
            (lambda: _completion("not json"), "AI output was not valid JSON."),
            (lambda: _completion("[1]"), "AI output was not valid JSON."),
        ],
    )
    async def test_malformed_responses(self, classification_request, make_response, message):
        endpoint = StubEndpoint(make_response(), make_response())

        with pytest.raises(MalformedResponseError) as exc_info:
            await endpoint.classifier().classify(classification_request)

        assert str(exc_info.value) == message

    async def test_missing_keys(self, classification_request):
        endpoint = StubEndpoint(_completion({"type": "Review"}), _completion({"type": "Review"}))

        with pytest.raises(ResponseShapeError):
            await endpoint.classifier().classify(classification_request)

    async def test_missing_api_key(self, classification_request):
        endpoint = StubEndpoint()

        with pytest.raises(MissingCredentialsError, match="OpenAI API Key is missing."):
            await endpoint.classifier(api_key="").classify(classification_request)

        assert endpoint.bodies == []

    async def test_post_fixes_applied(self):
        payload = {
            "type": "Review",
            "justification": "j",
            "summary": "Tom &amp; Jerry",
            "details": {"reviewed_type": "Flight"},
        }
        endpoint = StubEndpoint(_completion(payload))
        request = ClassificationRequest(content_id=1, title="Trip report: Lisbon")

        classification = await endpoint.classifier().classify(request)

        assert classification.primary_type == "Trip"
        assert classification.summary == "Tom & Jerry"


class TestPrompting:
    def test_forced_types_in_prompt(self):
        prompt = system_prompt("Review", "Hotel")
        assert "You MUST return type='Review' exactly." in prompt
        assert "reviewed_type='Hotel'" in prompt

    def test_auto_has_no_forced_section(self):
        assert "FORCED" not in system_prompt()

    def test_list_hints_in_user_message(self):
        endpoint = StubEndpoint()
        request = ClassificationRequest(content_id=1, title="T", list_hints=[{"name": "Alpha", "url": ""}])

        payload = endpoint.classifier().build_payload(request, strict=False)

        assert "LIST_HINTS" in payload["messages"][1]["content"]
        assert payload["response_format"] == {"type": "json_object"}

    def test_response_schema_is_strict(self):
        schema = response_schema()
        variants = schema["properties"]["result"]["anyOf"]

        assert schema["additionalProperties"] is False
        assert len(variants) == 12
        for variant in variants:
            assert variant["required"] == list(variant["properties"])
