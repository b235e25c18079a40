# insight_engine/agents/stats_agent.py
import logging
import math
from typing import Any, Dict, Iterable, List, Optional, Sequence

import numpy as np

from insight_engine.agents.schema_agent import NUMBER, STRING, columns_of_type
from insight_engine.config import Config, get_config
from insight_engine.utils.logging_config import PipelineLogger
from insight_engine.utils.values import is_missing, parse_number, to_label

logger = logging.getLogger(__name__)

MISSING_LABEL = "(missing)"

def quantile(sorted_values: Sequence[float], p: float) -> Optional[float]:
    """Linear interpolation between the order statistics around (n - 1) * p"""
    if not sorted_values:
        return None
    idx = (len(sorted_values) - 1) * p
    lower = math.floor(idx)
    upper = math.ceil(idx)
    if lower == upper:
        return float(sorted_values[lower])
    weight = idx - lower
    return float(sorted_values[lower] + (sorted_values[upper] - sorted_values[lower]) * weight)

def numeric_values(values: Iterable[Any]) -> List[float]:
    """Finite numbers only; anything unparseable is dropped"""
    parsed = (parse_number(v) for v in values)
    return [v for v in parsed if v is not None]

def numeric_stats(values: Iterable[Any]) -> Dict[str, Optional[float]]:
    """Count, mean, population std, min, max and quartiles"""
    numbers = numeric_values(values)

    if not numbers:
        return {
            'count': 0, 'mean': None, 'std': None, 'min': None, 'max': None,
            'p25': None, 'p50': None, 'p75': None
        }

    arr = np.asarray(numbers, dtype=float)
    ordered = np.sort(arr).tolist()

    return {
        'count': len(numbers),
        'mean': float(arr.mean()),
        'std': float(arr.std()),  # ddof=0
        'min': ordered[0],
        'max': ordered[-1],
        'p25': quantile(ordered, 0.25),
        'p50': quantile(ordered, 0.50),
        'p75': quantile(ordered, 0.75)
    }

class BoundedCounter:
    """Insertion-ordered frequency map that stops growing at ``capacity`` keys"""

    def __init__(self, capacity: int = 50):
        if capacity <= 0:
            raise ValueError(f"Capacity must be positive: {capacity}")
        self.capacity = capacity
        self._counts: Dict[str, int] = {}

    @property
    def full(self) -> bool:
        return len(self._counts) >= self.capacity

    def add(self, key: str) -> bool:
        """Count ``key``; returns False when it is new and the map is full"""
        if key in self._counts:
            self._counts[key] += 1
            return True
        if self.full:
            return False
        self._counts[key] = 1
        return True

    def __len__(self) -> int:
        return len(self._counts)

    def most_common(self, n: int) -> List[tuple]:
        # sorted() is stable, so ties keep first-encountered order
        return sorted(self._counts.items(), key=lambda item: -item[1])[:n]

def categorical_stats(values: Iterable[Any],
                      max_keys: int = 50,
                      top_n: int = 10,
                      missing_label: str = MISSING_LABEL) -> Dict[str, Any]:
    """Frequency table of stringified values.

    Counting stops once ``max_keys`` distinct keys have been seen, so
    ``unique`` reports the keys discovered up to that point. ``count`` is the
    number of non-missing values and does not depend on the cap.
    """
    counter = BoundedCounter(max_keys)
    count = 0

    for value in values:
        missing = is_missing(value)
        if not missing:
            count += 1
        if counter.full:
            continue
        counter.add(missing_label if missing else to_label(value))

    return {
        'count': count,
        'unique': len(counter),
        'top': [{'value': key, 'count': freq} for key, freq in counter.most_common(top_n)]
    }

def summarize(rows: Sequence[Dict[str, Any]],
              schema: List[Dict[str, str]],
              max_keys: int = 50,
              top_n: int = 10,
              missing_label: str = MISSING_LABEL) -> Dict[str, Dict[str, Any]]:
    """Numeric stats for number columns and frequency tables for string columns"""
    numeric = {
        col: numeric_stats(row.get(col) for row in rows)
        for col in columns_of_type(schema, NUMBER)
    }
    categorical = {
        col: categorical_stats(
            (row.get(col) for row in rows),
            max_keys=max_keys, top_n=top_n, missing_label=missing_label
        )
        for col in columns_of_type(schema, STRING)
    }
    return {'numeric': numeric, 'categorical': categorical}

class StatisticsAgent:
    """Agent responsible for descriptive and categorical statistics"""

    def __init__(self, config: Optional[Config] = None):
        self.config = config or get_config()

    async def process(self, state: dict) -> dict:
        with PipelineLogger("statistics") as step:
            stats = summarize(
                state.get('sampled_rows') or [],
                state.get('schema') or [],
                max_keys=self.config.statistics.MAX_DISTINCT_KEYS,
                top_n=self.config.statistics.TOP_N,
                missing_label=self.config.statistics.MISSING_LABEL
            )
            step.log_metric("numeric_columns", len(stats['numeric']))
            step.log_metric("categorical_columns", len(stats['categorical']))

        state.update({
            'stats': stats,
            'current_step': 'statistics',
            'next_action': 'correlations'
        })
        state['execution_log'].append(
            f"Statistics computed: {len(stats['numeric'])} numeric, {len(stats['categorical'])} categorical"
        )
        return state
