# insight_engine/agents/schema_agent.py
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from insight_engine.config import Config, get_config
from insight_engine.utils.logging_config import PipelineLogger
from insight_engine.utils.values import is_missing, parse_date, parse_number

logger = logging.getLogger(__name__)

NUMBER = 'number'
DATE = 'date'
STRING = 'string'
UNKNOWN = 'unknown'

def candidate_columns(rows: Sequence[Dict[str, Any]], columns: Optional[List[str]] = None) -> List[str]:
    """Declared columns when given, otherwise the keys of the first row"""
    if columns:
        return [str(c) for c in columns]
    if rows:
        return [str(c) for c in rows[0].keys()]
    return []

def classify_values(values: Iterable[Any],
                    numeric_threshold: float = 0.6,
                    date_threshold: float = 0.6) -> str:
    """Majority vote over non-empty values: number, then date, then string"""
    total = 0
    num_hits = 0
    date_hits = 0

    for value in values:
        if is_missing(value):
            continue
        total += 1
        if parse_number(value) is not None:
            num_hits += 1
        elif parse_date(value) is not None:
            date_hits += 1

    if total == 0:
        return STRING

    if num_hits / total >= numeric_threshold:
        return NUMBER
    if date_hits / total >= date_threshold:
        return DATE
    return STRING

def infer_schema(rows: Sequence[Dict[str, Any]],
                 columns: Optional[List[str]] = None,
                 numeric_threshold: float = 0.6,
                 date_threshold: float = 0.6) -> List[Dict[str, str]]:
    """Infer one type per column from the sampled rows.

    With no rows there is no evidence at all, so every declared column is
    reported as ``unknown``.
    """
    names = candidate_columns(rows, columns)

    if not rows:
        return [{'name': name, 'inferred_type': UNKNOWN} for name in names]

    schema = []
    for name in names:
        inferred = classify_values(
            (row.get(name) for row in rows),
            numeric_threshold=numeric_threshold,
            date_threshold=date_threshold
        )
        schema.append({'name': name, 'inferred_type': inferred})
    return schema

def columns_of_type(schema: List[Dict[str, str]], inferred_type: str) -> List[str]:
    """Column names with the given inferred type, in schema order"""
    return [col['name'] for col in schema if col['inferred_type'] == inferred_type]

class SchemaInferenceAgent:
    """Agent responsible for column type inference"""

    def __init__(self, config: Optional[Config] = None):
        self.config = config or get_config()

    async def process(self, state: dict) -> dict:
        with PipelineLogger("schema_inference") as step:
            rows = state.get('sampled_rows') or []
            schema = infer_schema(
                rows,
                columns=state.get('columns'),
                numeric_threshold=self.config.inference.NUMERIC_RATIO_THRESHOLD,
                date_threshold=self.config.inference.DATE_RATIO_THRESHOLD
            )

            for inferred_type in (NUMBER, DATE, STRING):
                step.log_metric(f"{inferred_type}_columns", len(columns_of_type(schema, inferred_type)))

        state.update({
            'schema': schema,
            'current_step': 'schema_inference',
            'next_action': 'statistics' if rows else 'empty'
        })
        state['execution_log'].append(f"Schema inferred for {len(schema)} columns")
        return state
