# insight_engine/agents/insight_agent.py
import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

import requests
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from insight_engine.agents.providers import build_providers
from insight_engine.config import Config, get_config
from insight_engine.errors import InvalidRequestError, ProviderUnavailable
from insight_engine.utils.logging_config import PipelineLogger, log_async_execution_time
from insight_engine.utils.values import to_jsonable

logger = logging.getLogger(__name__)

OUTPUT_SCHEMA = """{
  "charts": [
    {"title": string, "type": "histogram"|"bar"|"line"|"scatter"|"pie", "x": string|null, "y": string|null, "agg"?: "mean"|"sum"|"count"|null, "description": string}
  ],
  "insights": [ {"title": string, "detail": string} ],
  "forecasts": [ {"target": string, "method": string, "horizon": number, "points": [{"label": string, "value": number}] } ]
}"""

class InsightOutput(BaseModel):
    """Shape every provider is asked to return"""
    model_config = ConfigDict(extra='allow')

    charts: List[Any] = Field(default_factory=list)
    insights: List[Any] = Field(default_factory=list)
    forecasts: List[Any] = Field(default_factory=list)

def _dumps(value: Any) -> str:
    return json.dumps(value, default=str, ensure_ascii=False)

def build_prompt(context: Dict[str, Any], sample_limit: int = 50) -> str:
    """Single prompt embedding schema, stats, correlations and sample rows"""
    sample = (context.get('sample_rows') or [])[:sample_limit]

    return f"""You are a data analysis assistant. Analyze the provided tabular data summary and return ONLY valid JSON following the schema below. Do not include any extra commentary.

Schema to return:
{OUTPUT_SCHEMA}

Data schema with inferred types: {_dumps(context.get('schema') or [])}
Numeric stats (per column): {_dumps(context.get('numeric_stats') or {})}
Correlations (Pearson for numeric pairs): {_dumps(context.get('correlations') or [])}
Sample rows (first up to {sample_limit}): {_dumps(sample)}

Important:
- Prefer simple, actionable charts.
- Keep 6-12 charts max.
- Provide at most 5 forecast points per series.
- Ensure the JSON is minified and strictly valid."""

def extract_json(text: Any) -> Optional[Dict[str, Any]]:
    """Leniently pull a JSON object out of free-form model output.

    Tries the span from the first '{' to the last '}', then the whole
    trimmed text. Anything that is not a JSON object yields None.
    """
    if not isinstance(text, str):
        return None

    trimmed = text.strip()
    candidates = []
    start = trimmed.find('{')
    end = trimmed.rfind('}')
    if start != -1 and end > start:
        candidates.append(trimmed[start:end + 1])
    candidates.append(trimmed)

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed
    return None

def parse_insight(text: Any) -> Optional[Dict[str, Any]]:
    """Extract and validate the insight object; None when unusable"""
    parsed = extract_json(text)
    if parsed is None:
        return None
    try:
        return InsightOutput.model_validate(parsed).model_dump()
    except ValidationError as e:
        logger.debug(f"Insight JSON failed validation: {e.error_count()} errors")
        return None

def build_context(state: dict) -> Dict[str, Any]:
    """Reuse the pipeline artifacts as prompt context"""
    stats = state.get('stats') or {}
    return {
        'schema': state.get('schema') or [],
        'numeric_stats': stats.get('numeric', {}),
        'correlations': state.get('correlations') or [],
        'sample_rows': [
            {key: to_jsonable(value) for key, value in row.items()}
            for row in state.get('sampled_rows') or []
        ]
    }

class AIInsightAgent:
    """Agent that asks language-model providers for insights, first success wins"""

    def __init__(self, config: Optional[Config] = None):
        self.config = config or get_config()

    @log_async_execution_time
    async def analyze(self, context: Dict[str, Any],
                      preferred_provider: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Try providers strictly in order.

        Returns ``{provider, model, output, raw}`` for the first provider whose
        reply contains a valid insight object, or None when all are exhausted.
        Each call runs in a worker thread, so cancelling the awaiting task
        stops the loop and skips the remaining providers.
        """
        prompt = build_prompt(context, self.config.sampling.PROMPT_SAMPLE_ROWS)
        providers = build_providers(preferred_provider or self.config.providers.PREFERRED_PROVIDER)

        for provider in providers:
            try:
                result = await asyncio.to_thread(provider.call, prompt, self.config.providers)
            except ProviderUnavailable as e:
                if e.skipped:
                    logger.info(f"Skipping provider {provider.name}: {e.reason}")
                else:
                    logger.warning(f"Provider {provider.name} unavailable: {e.reason}")
                continue
            except (requests.RequestException, ValueError, TypeError, KeyError, AttributeError) as e:
                # e.g. malformed provider settings loaded from a config file
                logger.warning(f"Provider {provider.name} failed: {e.__class__.__name__}: {e}")
                continue

            output = parse_insight(result.text)
            if output is None:
                logger.warning(f"Provider {provider.name} ({result.model}) returned no parseable JSON")
                continue

            logger.info(f"AI insight produced by {result.provider} ({result.model})")
            return {
                'provider': result.provider,
                'model': result.model,
                'output': output,
                'raw': result.text
            }

        logger.warning(f"All providers exhausted: {', '.join(p.name for p in providers)}")
        return None

    async def process(self, state: dict) -> dict:
        with PipelineLogger("ai_insight"):
            context = build_context(state)
            try:
                result = await self.analyze(context, state.get('provider'))
            except InvalidRequestError as e:
                logger.error(f"AI insight failed: {e.message}")
                state['errors'].append(f"AI insight error: {e.message}")
                state['error_type'] = e.code
                result = None

        state.update({
            'ai_context': context,
            'ai_result': result,
            'current_step': 'ai_insight',
            'next_action': 'completed'
        })
        state['execution_log'].append(
            f"AI insight from {result['provider']}" if result else "AI insight unavailable"
        )
        return state
