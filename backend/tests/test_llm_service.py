import unittest
from unittest.mock import MagicMock, patch

from langchain_ollama import ChatOllama
from langchain_openai import ChatOpenAI

from app.services.llm_service import get_llm, invoke_llm_json, parse_json_from_text


class TestGetLLM(unittest.TestCase):

    def test_disabled_provider(self):
        self.assertIsNone(get_llm(provider="none"))

    def test_unknown_provider(self):
        self.assertIsNone(get_llm(provider="mystery"))

    @patch("app.services.llm_service.LLM_API_KEY", None)
    def test_paid_provider_without_key(self):
        self.assertIsNone(get_llm(provider="openrouter"))

    @patch("app.services.llm_service.LLM_API_KEY", "test-key")
    def test_openrouter(self):
        llm = get_llm(temperature=0.4, max_tokens=8192, json_mode=True, provider="openrouter")
        self.assertIsInstance(llm, ChatOpenAI)
        self.assertEqual(llm.max_tokens, 8192)

    def test_ollama(self):
        self.assertIsInstance(get_llm(provider="ollama"), ChatOllama)


class TestInvokeLLMJson(unittest.TestCase):

    def test_parses_reply(self):
        llm = MagicMock()
        llm.invoke.return_value = MagicMock(content='{"a": 1}', response_metadata={"eval_count": 3})

        self.assertEqual(invoke_llm_json(llm, "system", "user"), {"a": 1})
        messages = llm.invoke.call_args[0][0]
        self.assertEqual([m.content for m in messages], ["system", "user"])

    def test_non_string_content(self):
        llm = MagicMock()
        llm.invoke.return_value = MagicMock(content=[{"type": "text"}], response_metadata={})
        self.assertIsNone(invoke_llm_json(llm, "system", "user"))


class TestParseJson(unittest.TestCase):

    def test_fenced_block(self):
        self.assertEqual(parse_json_from_text('Sure:\n```json\n{"x": "y"}\n```'), {"x": "y"})

    def test_surrounding_prose(self):
        self.assertEqual(parse_json_from_text('Here you go {"x": 2} hope it helps'), {"x": 2})

    def test_trailing_comma_and_single_quoted_keys(self):
        self.assertEqual(parse_json_from_text("{'x': 1, \"y\": [1, 2,],}"), {"x": 1, "y": [1, 2]})

    def test_garbage(self):
        self.assertIsNone(parse_json_from_text("no json here"))
        self.assertIsNone(parse_json_from_text(""))


if __name__ == '__main__':
    unittest.main()
