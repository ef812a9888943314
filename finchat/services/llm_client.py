from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import anthropic
import openai
from langchain_openai import ChatOpenAI

from finchat.config import settings
from finchat.errors import UpstreamProviderError
from finchat.services.chart_tool import as_openai_tool
from finchat.utils.logger import logger


@dataclass(frozen=True)
class ToolUse:
    name: str
    input: Any


@dataclass(frozen=True)
class ModelReply:
    """Provider-neutral view of a reply: its first text block and first tool call."""

    text: Optional[str] = None
    tool_use: Optional[ToolUse] = None


def _text_of(content: Any) -> str:
    if isinstance(content, str):
        return content.strip()
    if isinstance(content, list):
        parts = [
            part.get("text", "")
            for part in content
            if isinstance(part, dict) and part.get("type") == "text"
        ]
        return "\n".join(p for p in parts if p).strip()
    return ""


def _to_openai_message(message: Dict[str, Any]) -> Dict[str, Any]:
    content = message["content"]
    if not isinstance(content, list):
        return message
    parts: List[Dict[str, Any]] = []
    for part in content:
        if part.get("type") == "image":
            source = part["source"]
            url = f"data:{source['media_type']};base64,{source['data']}"
            parts.append({"type": "image_url", "image_url": {"url": url}})
        else:
            parts.append(part)
    return {"role": message["role"], "content": parts}


class LLMClient:
    """Chat-with-tools wrapper. Claude models use Anthropic; others use OpenAI via LangChain."""

    def __init__(self) -> None:
        if settings.anthropic_api_key:
            self._anthropic: Optional[anthropic.Anthropic] = anthropic.Anthropic(
                api_key=settings.anthropic_api_key
            )
        else:
            self._anthropic = None
            logger.warning("ANTHROPIC_API_KEY not set. Claude models will be unavailable.")
        if not settings.openai_api_key:
            logger.info("OPENAI_API_KEY not set. OpenAI models will be unavailable.")
        self._lc_models: Dict[str, ChatOpenAI] = {}

    @staticmethod
    def provider_for(model: str) -> str:
        return "anthropic" if model.startswith("claude") else "openai"

    def is_available(self, model: str) -> bool:
        if self.provider_for(model) == "anthropic":
            return self._anthropic is not None
        return bool(settings.openai_api_key)

    def create_message(
        self,
        model: str,
        messages: List[Dict[str, Any]],
        *,
        system: str,
        tools: List[Dict[str, Any]],
    ) -> ModelReply:
        if not self.is_available(model):
            key_name = (
                "ANTHROPIC_API_KEY" if self.provider_for(model) == "anthropic" else "OPENAI_API_KEY"
            )
            raise UpstreamProviderError(
                "LLM is not available",
                f"Set {key_name} in environment to use {model}.",
                status_code=503,
            )
        if self.provider_for(model) == "anthropic":
            return self._create_anthropic(model, messages, system, tools)
        return self._create_openai(model, messages, system, tools)

    def _create_anthropic(
        self,
        model: str,
        messages: List[Dict[str, Any]],
        system: str,
        tools: List[Dict[str, Any]],
    ) -> ModelReply:
        assert self._anthropic is not None
        try:
            response = self._anthropic.messages.create(
                model=model,
                max_tokens=settings.max_tokens,
                temperature=settings.temperature,
                system=system,
                tools=tools,
                tool_choice={"type": "auto"},
                messages=messages,
            )
        except anthropic.APIStatusError as exc:
            logger.error("Anthropic call failed with status %s: %s", exc.status_code, exc)
            raise UpstreamProviderError(details=str(exc), status_code=exc.status_code) from exc
        except anthropic.APIError as exc:
            logger.error("Anthropic call failed: %s", exc)
            raise UpstreamProviderError(details=str(exc)) from exc

        text = next((b.text for b in response.content if b.type == "text"), None)
        tool_use = next(
            (ToolUse(name=b.name, input=b.input) for b in response.content if b.type == "tool_use"),
            None,
        )
        return ModelReply(text=text or None, tool_use=tool_use)

    def _lc_model(self, model: str) -> ChatOpenAI:
        if model not in self._lc_models:
            self._lc_models[model] = ChatOpenAI(
                model=model,
                temperature=settings.temperature,
                max_tokens=settings.max_tokens,
                api_key=settings.openai_api_key,
            )
        return self._lc_models[model]

    def _create_openai(
        self,
        model: str,
        messages: List[Dict[str, Any]],
        system: str,
        tools: List[Dict[str, Any]],
    ) -> ModelReply:
        llm = self._lc_model(model).bind_tools(
            [as_openai_tool(tool) for tool in tools], tool_choice="auto"
        )
        lc_messages = [{"role": "system", "content": system}]
        lc_messages.extend(_to_openai_message(m) for m in messages)
        try:
            response = llm.invoke(lc_messages)
        except openai.APIStatusError as exc:
            logger.error("OpenAI call failed with status %s: %s", exc.status_code, exc)
            raise UpstreamProviderError(details=str(exc), status_code=exc.status_code) from exc
        except openai.APIError as exc:
            logger.error("OpenAI call failed: %s", exc)
            raise UpstreamProviderError(details=str(exc)) from exc

        tool_calls = getattr(response, "tool_calls", None) or []
        tool_use = None
        if tool_calls:
            tool_use = ToolUse(name=tool_calls[0]["name"], input=tool_calls[0]["args"])
        return ModelReply(text=_text_of(response.content) or None, tool_use=tool_use)


llm_client = LLMClient()
