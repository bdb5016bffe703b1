"""Tests for the inference gateway and response unwrapping."""

import asyncio
import json

import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel

from llm.llm_util import GatewayError, InferenceGateway, parse_json_response, strip_code_fences
from util.secrets import GEMINI_API_KEY_ENV, get_gemini_api_key


class FailingChatModel(FakeListChatModel):
    def _call(self, *args, **kwargs):
        raise ConnectionError("network down")


@pytest.fixture
def template(tmp_path):
    path = tmp_path / "echo.jinja2"
    path.write_text("Tag this: {{ title }}")
    return path


class TestUnwrapping:
    def test_strip_code_fences(self):
        assert strip_code_fences('```json\n["Academic"]\n```') == '["Academic"]'
        assert strip_code_fences('```\n[1, 2]\n```') == "[1, 2]"
        assert strip_code_fences('  ["Social"] ') == '["Social"]'

    def test_parse_json_response(self):
        assert parse_json_response('```json\n{"a": 1}\n```') == {"a": 1}

    def test_parse_json_response_rejects_prose(self):
        with pytest.raises(json.JSONDecodeError):
            parse_json_response("Here are your tags: Academic")


class TestInferenceGateway:
    def test_complete(self, template):
        gateway = InferenceGateway(llm=FakeListChatModel(responses=['["Academic"]']))
        assert gateway.complete(template, {"title": "Exam week"}) == '["Academic"]'

    def test_acomplete(self, template):
        gateway = InferenceGateway(llm=FakeListChatModel(responses=["[2, 1]"]))
        assert asyncio.run(gateway.acomplete(template, {"title": "x"})) == "[2, 1]"

    def test_template_is_read_once(self, template):
        gateway = InferenceGateway(llm=FakeListChatModel(responses=["first", "second"]))

        assert gateway.complete(template, {"title": "a"}) == "first"
        template.unlink()

        assert gateway.complete(template, {"title": "b"}) == "second"

    def test_async_calls_reuse_the_built_chain(self, template):
        gateway = InferenceGateway(llm=FakeListChatModel(responses=["[1]", "[2]"]))

        async def rank_twice():
            first = await gateway.acomplete(template, {"title": "a"})
            template.unlink()
            second = await gateway.acomplete(template, {"title": "b"})
            return first, second

        assert asyncio.run(rank_twice()) == ("[1]", "[2]")

    def test_failure_raises_gateway_error(self, template):
        gateway = InferenceGateway(llm=FailingChatModel(responses=[]))
        with pytest.raises(GatewayError):
            gateway.complete(template, {"title": "x"})

    def test_async_failure_raises_gateway_error(self, template):
        gateway = InferenceGateway(llm=FailingChatModel(responses=[]))
        with pytest.raises(GatewayError):
            asyncio.run(gateway.acomplete(template, {"title": "x"}))

    def test_missing_key_raises_gateway_error(self, template, monkeypatch, tmp_path):
        monkeypatch.delenv(GEMINI_API_KEY_ENV, raising=False)
        monkeypatch.setattr("llm.llm_util.get_gemini_api_key",
                            lambda: get_gemini_api_key(tmp_path / "TOKEN"))
        with pytest.raises(GatewayError):
            InferenceGateway().complete(template, {"title": "x"})


class TestSecrets:
    def test_env_var_wins(self, monkeypatch, tmp_path):
        monkeypatch.setenv(GEMINI_API_KEY_ENV, " env-key ")
        assert get_gemini_api_key(tmp_path / "TOKEN") == "env-key"

    def test_token_file(self, monkeypatch, tmp_path):
        monkeypatch.delenv(GEMINI_API_KEY_ENV, raising=False)
        token = tmp_path / "TOKEN"
        token.write_text("file-key\n")
        assert get_gemini_api_key(token) == "file-key"

    def test_missing_key(self, monkeypatch, tmp_path):
        monkeypatch.delenv(GEMINI_API_KEY_ENV, raising=False)
        with pytest.raises(RuntimeError):
            get_gemini_api_key(tmp_path / "TOKEN")
