"""
LLM provider adapters. Each adapter turns a system + user prompt into a parsed
JSON object and reports its configuration status.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional

from anthropic import Anthropic
from google import genai
from google.genai import types as genai_types
from openai import OpenAI

from app.config import settings

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = ["openai", "gemini", "claude"]

CLAUDE_JSON_INSTRUCTION = (
    "CRITICAL: Respond with ONLY a valid JSON object. Do not use <thinking> tags or any other text. "
    "Start your response immediately with { and end with }. No explanations, no markdown, "
    "no thinking - just pure JSON."
)

WRAPPER_TAG = re.compile(r"</?(?:thinking|answer|json)\s*>", re.IGNORECASE)
GEMINI_MAX_OUTPUT_TOKENS = 8192

OPENAI_MODEL_PREFIXES = ("gpt-", "o1", "o3", "o4", "chatgpt-")

CLAUDE_MODELS = [
    {"id": "claude-3-5-sonnet-20241022", "name": "Claude 3.5 Sonnet (Recommended)",
     "description": "Best balance of intelligence, speed, and cost", "created": None},
    {"id": "claude-3-5-haiku-20241022", "name": "Claude 3.5 Haiku (Fast)",
     "description": "Fastest model for quick tasks and high-volume use cases", "created": None},
    {"id": "claude-3-opus-20240229", "name": "Claude 3 Opus (Advanced)",
     "description": "Most intelligent model for complex reasoning tasks", "created": None},
    {"id": "claude-sonnet-4-20250514", "name": "Claude Sonnet 4",
     "description": "High-performance model with enhanced capabilities", "created": None},
    {"id": "claude-opus-4-20250514", "name": "Claude Opus 4 (Most Intelligent)",
     "description": "Most intelligent Claude model for the most complex tasks", "created": None},
    {"id": "claude-3-7-sonnet-20250219", "name": "Claude 3.7 Sonnet (Hybrid Reasoning)",
     "description": "Hybrid model combining fast response with advanced reasoning", "created": None},
]

GEMINI_MODELS = [
    {"id": "gemini-1.5-flash", "name": "Gemini 1.5 Flash (Recommended)",
     "description": "Fast and versatile model for most use cases", "created": None},
    {"id": "gemini-1.5-pro", "name": "Gemini 1.5 Pro (Advanced)",
     "description": "Advanced reasoning and complex task handling", "created": None},
    {"id": "gemini-2.0-flash", "name": "Gemini 2.0 Flash (Latest Stable)",
     "description": "Stable Gemini 2.0 model with improved performance", "created": None},
    {"id": "gemini-1.5-flash-8b", "name": "Gemini 1.5 Flash 8B (Fast & Efficient)",
     "description": "Optimized for speed and efficiency", "created": None},
]

FALLBACK_MODELS: Dict[str, List[Dict[str, str]]] = {
    "openai": [
        {"id": "gpt-4o", "name": "GPT-4o (Recommended - Stable & Multimodal)",
         "description": "Most capable and reliable GPT-4 model"},
        {"id": "gpt-4o-mini", "name": "GPT-4o Mini (Cost-Effective & Reliable)",
         "description": "Faster, cost-effective, and reliable"},
        {"id": "o1", "name": "o1 (Advanced Reasoning - Stable)",
         "description": "Advanced reasoning model - stable access"},
        {"id": "o1-mini", "name": "o1 Mini (Fast Reasoning - Stable)",
         "description": "Fast reasoning model - stable access"},
        {"id": "gpt-4.1", "name": "GPT-4.1 (1M Context)", "description": "1M context window"},
    ],
    "gemini": [
        {"id": "gemini-1.5-flash", "name": "Gemini 1.5 Flash (Recommended)", "description": "Fast and versatile"},
        {"id": "gemini-1.5-pro", "name": "Gemini 1.5 Pro (Advanced)", "description": "Advanced reasoning"},
        {"id": "gemini-2.0-flash", "name": "Gemini 2.0 Flash (Latest)", "description": "Latest stable model"},
    ],
    "claude": [
        {"id": "claude-3-5-sonnet-20241022", "name": "Claude 3.5 Sonnet (Recommended)", "description": "Best balance"},
        {"id": "claude-3-5-haiku-20241022", "name": "Claude 3.5 Haiku (Fast)", "description": "Fastest model"},
        {"id": "claude-3-opus-20240229", "name": "Claude 3 Opus (Advanced)", "description": "Most intelligent"},
    ],
}


class AIProviderError(Exception):
    pass


def _find_json_object(text: str) -> Optional[str]:
    start = text.find("{")
    if start == -1:
        return None
    depth = 0
    in_string = escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start:index + 1]
    return None


def extract_json_object(content: str) -> Dict[str, Any]:
    """
    Pull the first JSON object out of a free-form model reply.

    Drops everything up to a closing </thinking> tag, strips wrapper tags such as
    <answer> and code fences, then brace-matches. Falls back to brace-matching the raw reply.
    """
    cleaned = content.strip()
    if "</thinking>" in cleaned:
        cleaned = cleaned[cleaned.rfind("</thinking>") + len("</thinking>"):].strip()
    cleaned = WRAPPER_TAG.sub("", cleaned)
    cleaned = cleaned.replace("```json", "").replace("```", "").strip()

    if "{" in cleaned:
        candidate = _find_json_object(cleaned)
        if candidate is None:
            raise AIProviderError("Could not find matching closing brace for JSON object")
    else:
        candidate = _find_json_object(content)
        if candidate is None:
            raise AIProviderError("No JSON object found in response")

    try:
        return json.loads(candidate)
    except json.JSONDecodeError as e:
        raise AIProviderError(f"Invalid JSON in response: {e.msg}")


class OpenAIProvider:
    name = "openai"
    label = "OpenAI"

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, client: Optional[OpenAI] = None):
        self.api_key = api_key or settings.openai_api_key
        self.model = model or settings.openai_default_model
        self._client = client

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            if not self.api_key:
                raise AIProviderError("OpenAI API key not configured. Please set OPENAI_API_KEY environment variable.")
            self._client = OpenAI(api_key=self.api_key, timeout=settings.llm_timeout_seconds)
        return self._client

    def generate_json(self, system_prompt: str, user_prompt: str, temperature: Optional[float] = None,
                      max_tokens: Optional[int] = None) -> Dict[str, Any]:
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=settings.llm_temperature if temperature is None else temperature,
                max_tokens=settings.llm_max_tokens if max_tokens is None else max_tokens,
                response_format={"type": "json_object"},
            )
            content = response.choices[0].message.content if response.choices else None
            if not content:
                raise AIProviderError("No content received from OpenAI API")
            return json.loads(content)
        except Exception as e:
            logger.error(f"OpenAI provider error: {e}")
            raise AIProviderError(f"Failed to generate JSON from OpenAI: {e}")

    def get_status(self) -> Dict[str, Any]:
        configured = bool(self.api_key)
        return {
            "configured": configured,
            "provider": f"OpenAI {self.model}",
            "api_key_status": "Set" if configured else "Missing",
        }

    def fetch_available_models(self) -> List[Dict[str, Any]]:
        models = [
            {"id": model.id, "name": model.id, "description": "", "created": model.created}
            for model in self.client.models.list()
            if model.id.startswith(OPENAI_MODEL_PREFIXES)
        ]
        return sorted(models, key=lambda m: m["created"] or 0, reverse=True)


class ClaudeProvider:
    name = "claude"
    label = "Anthropic"

    def __init__(self, api_key: str, model: Optional[str] = None, client: Optional[Anthropic] = None):
        if not api_key and client is None:
            raise AIProviderError("Anthropic API key must be provided.")
        self.api_key = api_key
        self.model = model or settings.claude_default_model
        self.client = client or Anthropic(api_key=api_key, timeout=settings.llm_timeout_seconds)

    def generate_json(self, system_prompt: str, user_prompt: str, temperature: Optional[float] = None,
                      max_tokens: Optional[int] = None) -> Dict[str, Any]:
        try:
            response = self.client.messages.create(
                model=self.model,
                system=system_prompt,
                messages=[{"role": "user", "content": f"{user_prompt}\n\n{CLAUDE_JSON_INSTRUCTION}"}],
                temperature=settings.llm_temperature if temperature is None else temperature,
                max_tokens=settings.llm_max_tokens if max_tokens is None else max_tokens,
            )
            content = response.content[0].text if response.content else None
            if not content:
                raise AIProviderError("No content received from Anthropic API")
            return extract_json_object(content)
        except Exception as e:
            logger.error(f"Claude provider error: {e}")
            raise AIProviderError(f"Failed to generate JSON from Anthropic: {e}")

    def get_status(self) -> Dict[str, Any]:
        return {"configured": True, "provider": f"Anthropic {self.model}", "api_key_status": "Set"}

    @staticmethod
    def fetch_available_models() -> List[Dict[str, Any]]:
        return [dict(model) for model in CLAUDE_MODELS]


class GeminiProvider:
    name = "gemini"
    label = "Google"

    def __init__(self, api_key: str, model: Optional[str] = None, client: Optional[genai.Client] = None):
        if not api_key and client is None:
            raise AIProviderError("Google Gemini API key must be provided.")
        self.api_key = api_key
        self.model = model or settings.gemini_default_model
        self.client = client or genai.Client(api_key=api_key)

    def generate_json(self, system_prompt: str, user_prompt: str, temperature: Optional[float] = None,
                      max_tokens: Optional[int] = None) -> Dict[str, Any]:
        # Gemini gets system and user prompt as one turn
        try:
            response = self.client.models.generate_content(
                model=self.model,
                contents=f"{system_prompt}\n\n{user_prompt}",
                config=genai_types.GenerateContentConfig(
                    response_mime_type="application/json",
                    temperature=settings.llm_temperature if temperature is None else temperature,
                    max_output_tokens=GEMINI_MAX_OUTPUT_TOKENS if max_tokens is None else max_tokens,
                ),
            )
            if not response.text:
                raise AIProviderError("No content received from Google Gemini API")
            return json.loads(response.text)
        except Exception as e:
            logger.error(f"Gemini provider error: {e}")
            raise AIProviderError(f"Failed to generate JSON from Google Gemini: {e}")

    def get_status(self) -> Dict[str, Any]:
        return {"configured": True, "provider": f"Google {self.model}", "api_key_status": "Set"}

    @staticmethod
    def fetch_available_models() -> List[Dict[str, Any]]:
        return [dict(model) for model in GEMINI_MODELS]


PROVIDER_CLASSES = {
    "openai": OpenAIProvider,
    "claude": ClaudeProvider,
    "gemini": GeminiProvider,
}


def create_provider(service_name: str, api_key: str, model: Optional[str] = None):
    provider_class = PROVIDER_CLASSES.get(service_name)
    if provider_class is None:
        raise AIProviderError(f"Unsupported AI provider: {service_name}")
    return provider_class(api_key=api_key, model=model)
