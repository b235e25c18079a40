# insight_engine/agents/correlation_agent.py
import logging
import math
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from insight_engine.agents.schema_agent import NUMBER, columns_of_type
from insight_engine.config import Config, get_config
from insight_engine.utils.logging_config import PipelineLogger
from insight_engine.utils.values import parse_number

logger = logging.getLogger(__name__)

MIN_PAIRS = 3

def pearson(xs: Sequence[Optional[float]], ys: Sequence[Optional[float]],
            min_pairs: int = MIN_PAIRS) -> Optional[float]:
    """Pearson correlation over positions where both values are present.

    Returns None with fewer than ``min_pairs`` pairs or when either series
    has no spread.
    """
    pairs = [(x, y) for x, y in zip(xs, ys) if x is not None and y is not None]
    if len(pairs) < min_pairs:
        return None

    x = np.fromiter((p[0] for p in pairs), dtype=float, count=len(pairs))
    y = np.fromiter((p[1] for p in pairs), dtype=float, count=len(pairs))
    dx = x - x.mean()
    dy = y - y.mean()

    denominator = float(np.dot(dx, dx)) * float(np.dot(dy, dy))
    if denominator == 0 or not math.isfinite(denominator):
        return None

    r = float(np.dot(dx, dy)) / math.sqrt(denominator)
    return max(-1.0, min(1.0, r))

def compute_correlations(rows: Sequence[Dict[str, Any]],
                         numeric_columns: List[str],
                         min_pairs: int = MIN_PAIRS) -> List[Dict[str, Any]]:
    """Pairwise Pearson correlations, strongest first"""
    parsed = {col: [parse_number(row.get(col)) for row in rows] for col in numeric_columns}

    results = []
    for i, col_x in enumerate(numeric_columns):
        for col_y in numeric_columns[i + 1:]:
            r = pearson(parsed[col_x], parsed[col_y], min_pairs=min_pairs)
            if r is None:
                continue
            results.append({'col_x': col_x, 'col_y': col_y, 'pearson': r})

    results.sort(key=lambda pair: abs(pair['pearson']), reverse=True)
    return results

class CorrelationAgent:
    """Agent responsible for pairwise numeric correlations"""

    def __init__(self, config: Optional[Config] = None):
        self.config = config or get_config()

    async def process(self, state: dict) -> dict:
        with PipelineLogger("correlations") as step:
            numeric_columns = columns_of_type(state.get('schema') or [], NUMBER)
            correlations = compute_correlations(state.get('sampled_rows') or [], numeric_columns)
            step.log_metric("pairs", len(correlations))

        state.update({
            'correlations': correlations,
            'current_step': 'correlations',
            'next_action': 'ai_insight' if state.get('mode') == 'ai' else 'charts'
        })
        state['execution_log'].append(f"Correlations computed: {len(correlations)} pairs")
        return state
