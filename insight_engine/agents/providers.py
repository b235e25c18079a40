# insight_engine/agents/providers.py
"""Language-model backends queried for AI insights.

Each provider is a plain function ``call(prompt, settings) -> ProviderResult``
that raises ``ProviderUnavailable`` when it cannot produce text: missing
credential, network failure, non-success status or an empty reply. The
orchestrator walks an ordered list of ``Provider`` descriptors and moves on
at the first failure; nothing here retries.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import quote

import requests

from insight_engine.config import PROVIDER_NAMES, ProviderConfig
from insight_engine.errors import InvalidRequestError, ProviderUnavailable

logger = logging.getLogger(__name__)

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
OPENAI_URL = "https://api.openai.com/v1/chat/completions"
HF_URL = "https://api-inference.huggingface.co/models/{model}"

@dataclass
class ProviderResult:
    provider: str
    model: str
    text: str

@dataclass
class Provider:
    name: str
    call: Callable[[str, ProviderConfig], ProviderResult]

def _post_json(provider: str, url: str, payload: Dict[str, Any], timeout: float,
               headers: Optional[Dict[str, str]] = None,
               params: Optional[Dict[str, str]] = None) -> Any:
    """POST a JSON body and decode the JSON reply, or raise ProviderUnavailable"""
    try:
        response = requests.post(url, json=payload, headers=headers, params=params, timeout=timeout)
    except requests.RequestException as e:
        raise ProviderUnavailable(provider, f"request failed: {e.__class__.__name__}") from e

    if not response.ok:
        raise ProviderUnavailable(provider, f"HTTP {response.status_code}")

    try:
        return response.json()
    except ValueError as e:
        raise ProviderUnavailable(provider, "response body is not JSON") from e

def _dig(data: Any, *path: Any) -> Any:
    """Follow dict keys / list indexes, returning None on any miss"""
    for key in path:
        if isinstance(key, int):
            if not isinstance(data, list) or len(data) <= key:
                return None
        elif not isinstance(data, dict):
            return None
        data = data[key] if isinstance(key, int) else data.get(key)
    return data

def _require_text(provider: str, text: Any) -> str:
    if not isinstance(text, str) or not text.strip():
        raise ProviderUnavailable(provider, "empty response text")
    return text

def call_ollama(prompt: str, settings: ProviderConfig) -> ProviderResult:
    """Local Ollama server; each configured model is tried in turn"""
    url = f"{settings.OLLAMA_HOST.rstrip('/')}/api/generate"

    for model in settings.OLLAMA_MODELS:
        try:
            data = _post_json(
                'ollama', url,
                {'model': model, 'prompt': prompt, 'stream': False},
                timeout=settings.REQUEST_TIMEOUT
            )
            text = _require_text('ollama', _dig(data, 'response'))
        except ProviderUnavailable as e:
            logger.info(f"Ollama model {model} unavailable: {e.reason}")
            continue
        return ProviderResult(provider='ollama', model=model, text=text)

    raise ProviderUnavailable('ollama', f"no model responded ({', '.join(settings.OLLAMA_MODELS) or 'none configured'})")

def call_gemini(prompt: str, settings: ProviderConfig) -> ProviderResult:
    if not settings.GEMINI_API_KEY:
        raise ProviderUnavailable('gemini', "GEMINI_API_KEY not configured", skipped=True)

    data = _post_json(
        'gemini', GEMINI_URL.format(model=settings.GEMINI_MODEL),
        {
            'contents': [{'parts': [{'text': prompt}]}],
            'generationConfig': {'temperature': settings.TEMPERATURE}
        },
        timeout=settings.REQUEST_TIMEOUT,
        params={'key': settings.GEMINI_API_KEY}
    )
    text = _require_text('gemini', _dig(data, 'candidates', 0, 'content', 'parts', 0, 'text'))
    return ProviderResult(provider='gemini', model=settings.GEMINI_MODEL, text=text)

def call_openai(prompt: str, settings: ProviderConfig) -> ProviderResult:
    if not settings.OPENAI_API_KEY:
        raise ProviderUnavailable('openai', "OPENAI_API_KEY not configured", skipped=True)

    data = _post_json(
        'openai', OPENAI_URL,
        {
            'model': settings.OPENAI_MODEL,
            'temperature': settings.TEMPERATURE,
            'messages': [{'role': 'user', 'content': prompt}]
        },
        timeout=settings.REQUEST_TIMEOUT,
        headers={'Authorization': f"Bearer {settings.OPENAI_API_KEY}"}
    )
    text = _require_text('openai', _dig(data, 'choices', 0, 'message', 'content'))
    return ProviderResult(provider='openai', model=settings.OPENAI_MODEL, text=text)

def call_huggingface(prompt: str, settings: ProviderConfig) -> ProviderResult:
    if not settings.HF_API_TOKEN:
        raise ProviderUnavailable('huggingface', "HF_API_TOKEN not configured", skipped=True)

    data = _post_json(
        'huggingface', HF_URL.format(model=quote(settings.HF_MODEL, safe='/')),
        {
            'inputs': prompt,
            'parameters': {
                'max_new_tokens': 1024,
                'temperature': settings.TEMPERATURE,
                'return_full_text': False
            }
        },
        timeout=settings.REQUEST_TIMEOUT,
        headers={'Authorization': f"Bearer {settings.HF_API_TOKEN}"}
    )
    # The inference API answers with either a list of generations or a single object
    text = _dig(data, 0, 'generated_text') if isinstance(data, list) else _dig(data, 'generated_text')
    text = _require_text('huggingface', text)
    return ProviderResult(provider='huggingface', model=settings.HF_MODEL, text=text)

PROVIDER_CALLS = {
    'ollama': call_ollama,
    'gemini': call_gemini,
    'openai': call_openai,
    'huggingface': call_huggingface,
}

def build_providers(preferred: Optional[str] = None) -> List[Provider]:
    """Providers in fallback order, or only ``preferred`` when given"""
    if preferred:
        preferred = preferred.strip().lower()
        if preferred not in PROVIDER_CALLS:
            raise InvalidRequestError(
                f"Unknown provider '{preferred}'. Expected one of: {', '.join(PROVIDER_NAMES)}"
            )
        return [Provider(name=preferred, call=PROVIDER_CALLS[preferred])]

    return [Provider(name=name, call=PROVIDER_CALLS[name]) for name in PROVIDER_NAMES]
