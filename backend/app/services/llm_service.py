import json
import logging
import re
from typing import Any, Dict, Optional

# LangChain Imports
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_ollama import ChatOllama
from langchain_openai import ChatOpenAI

# Langfuse SDK - @observe decorator for LLM tracing
from langfuse import observe

# Configuration
from config import LLM_API_KEY, LLM_MODEL as OVERRIDE_MODEL, LLM_PROVIDER, LLM_TIMEOUT_SECONDS, OLLAMA_URL

logger = logging.getLogger(__name__)

# Determine Model Name based on Provider
# If LLM_MODEL is set in env, it overrides everything.
DEFAULT_MODELS = {
    "ollama": "llama3.1:8b",
    "openrouter": "google/gemini-2.0-flash-001",  # Cost effective default
    "openai": "gpt-4o-mini",
}

MODEL_NAME = OVERRIDE_MODEL if OVERRIDE_MODEL else DEFAULT_MODELS.get(LLM_PROVIDER, "")

# Base URLs for paid providers
PROVIDER_URLS = {
    "openrouter": "https://openrouter.ai/api/v1",
    "openai": None  # Uses default OpenAI URL
}


def get_llm(
    temperature: float = 0.7,
    max_tokens: int = 2000,
    json_mode: bool = False,
    provider: Optional[str] = None,
) -> Optional[BaseChatModel]:
    """
    Factory function to get a configured LangChain Chat Model instance.
    Supports: Ollama (Local), OpenRouter, OpenAI.

    Returns None when narratives should stay template-only:
    provider "none", an unknown provider, or a paid provider without an API key.
    """
    provider = (provider or LLM_PROVIDER).lower()

    # 1. Disabled
    if provider in ("", "none"):
        logger.info("[LLM Service] Provider disabled, narratives will use templates")
        return None

    # 2. Ollama (Local)
    if provider == "ollama":
        return ChatOllama(
            base_url=OLLAMA_URL,
            model=MODEL_NAME or DEFAULT_MODELS["ollama"],
            temperature=temperature,
            num_predict=max_tokens,
            format="json" if json_mode else "",
            client_kwargs={"timeout": LLM_TIMEOUT_SECONDS},
        )

    # 3. OpenAI Compatible (OpenRouter, OpenAI)
    if provider in PROVIDER_URLS:
        if not LLM_API_KEY:
            logger.error(f"[LLM Service] Missing API key for provider '{provider}', narratives will use templates")
            return None

        model_kwargs = {}
        if json_mode:
            model_kwargs["response_format"] = {"type": "json_object"}

        return ChatOpenAI(
            model=MODEL_NAME or DEFAULT_MODELS[provider],
            api_key=LLM_API_KEY,
            base_url=PROVIDER_URLS.get(provider),
            temperature=temperature,
            max_tokens=max_tokens,
            model_kwargs=model_kwargs,
            timeout=LLM_TIMEOUT_SECONDS,
        )

    # 4. Unknown
    logger.warning(f"[LLM Service] Unknown provider '{provider}', narratives will use templates")
    return None


def _log_token_usage(response) -> None:
    metadata = getattr(response, "response_metadata", None) or {}
    if not metadata:
        return

    # Ollama returns tokens directly in metadata, not in nested 'usage'
    input_tokens = metadata.get("prompt_eval_count") or 0
    output_tokens = metadata.get("eval_count") or 0

    # Fallback to nested usage dict (OpenAI-compatible providers)
    if input_tokens == 0 and output_tokens == 0:
        usage = metadata.get("token_usage") or metadata.get("usage") or {}
        input_tokens = usage.get("prompt_tokens") or usage.get("input_tokens") or 0
        output_tokens = usage.get("completion_tokens") or usage.get("output_tokens") or 0

    logger.info(f"[LLM Stats] Input: {input_tokens}, Output: {output_tokens}, Total: {input_tokens + output_tokens}")


@observe(name="invoke_llm_json", as_type="generation")
def invoke_llm_json(llm: BaseChatModel, system_prompt: str, user_prompt: str) -> Optional[Any]:
    """
    Sends one system/user exchange and parses the reply as JSON.
    Returns None for an empty or unparseable reply. Transport errors propagate
    to the caller, which owns the fallback policy.
    """
    messages = [
        SystemMessage(content=system_prompt),
        HumanMessage(content=user_prompt)
    ]

    response = llm.invoke(messages)
    content = getattr(response, "content", None)

    if not content or not isinstance(content, str):
        logger.warning("[LLM Service] Empty content received.")
        return None

    _log_token_usage(response)
    return parse_json_from_text(content)


def parse_json_from_text(text: str) -> Optional[Any]:
    """
    Lenient JSON extraction from a model reply.

    1. Strip markdown code fences
    2. Cut to the outermost {...}
    3. On failure, drop trailing commas and normalize single-quoted keys
    """
    if not text:
        return None

    cleaned_text = text.strip()

    if "```json" in cleaned_text:
        parts = cleaned_text.split("```json")
        if len(parts) > 1:
            cleaned_text = parts[1].split("```")[0].strip()
    elif "```" in cleaned_text:
        cleaned_text = cleaned_text.replace("```", "").strip()

    start_idx = cleaned_text.find('{')
    end_idx = cleaned_text.rfind('}')

    if start_idx != -1 and end_idx != -1:
        cleaned_text = cleaned_text[start_idx:end_idx + 1]

    try:
        return json.loads(cleaned_text)
    except json.JSONDecodeError as e:
        logger.debug(f"[LLM Service] Initial JSON parse failed: {e}, attempting repair")

    repaired_text = cleaned_text
    repaired_text = re.sub(r',\s*}', '}', repaired_text)
    repaired_text = re.sub(r',\s*]', ']', repaired_text)
    repaired_text = re.sub(r"(?<=[{,\[])\s*'([^']+)'\s*:", r'"\1":', repaired_text)

    try:
        return json.loads(repaired_text)
    except json.JSONDecodeError:
        logger.warning("[LLM Service] Could not parse JSON from model reply")
        return None
