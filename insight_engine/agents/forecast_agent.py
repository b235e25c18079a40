# insight_engine/agents/forecast_agent.py
import logging
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from insight_engine.agents.schema_agent import DATE, NUMBER, columns_of_type
from insight_engine.agents.stats_agent import numeric_values
from insight_engine.config import Config, get_config
from insight_engine.utils.logging_config import PipelineLogger
from insight_engine.utils.values import format_instant, parse_date

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = pd.Timedelta(days=1)

def fit_linear(values: Sequence[float], min_points: int = 3) -> Optional[Dict[str, Any]]:
    """Ordinary least squares of ``values`` against their 0-based index"""
    n = len(values)
    if n < min_points or n < 2:
        return None

    y = np.asarray(values, dtype=float)
    x = np.arange(n, dtype=float)
    x_mean = x.mean()
    y_mean = y.mean()

    sxx = float(np.dot(x - x_mean, x - x_mean))
    sxy = float(np.dot(x - x_mean, y - y_mean))
    slope = sxy / sxx
    intercept = float(y_mean - slope * x_mean)

    return {'type': 'linear', 'slope': slope, 'intercept': intercept}

def typical_interval(times: Sequence[pd.Timestamp]) -> pd.Timedelta:
    """Median of the positive gaps between consecutive timestamps"""
    gaps = [(later - earlier).total_seconds() for earlier, later in zip(times, times[1:])]
    positive = [g for g in gaps if g > 0]
    if not positive:
        return DEFAULT_INTERVAL
    return pd.Timedelta(seconds=float(np.median(positive)))

def forecast_column(rows: Sequence[Dict[str, Any]],
                    column: str,
                    date_column: Optional[str] = None,
                    horizon: int = 5,
                    min_points: int = 3) -> Dict[str, Any]:
    """Project ``horizon`` steps past the last observation of one column.

    With a date column the series is restricted to rows whose date parses
    and ordered by that date; otherwise the sample order is used.
    """
    times = None
    ordered = rows
    if date_column:
        dated = [(parse_date(row.get(date_column)), row) for row in rows]
        dated = [(ts, row) for ts, row in dated if ts is not None]
        dated.sort(key=lambda item: item[0])
        times = [ts for ts, _ in dated]
        ordered = [row for _, row in dated]

    values = numeric_values(row.get(column) for row in ordered)
    model = fit_linear(values, min_points=min_points)

    result = {'target': column, 'horizon': horizon, 'model': model, 'points': []}
    if model is None:
        return result

    n = len(values)
    interval = typical_interval(times) if times else None

    for step in range(1, horizon + 1):
        x = n - 1 + step
        if interval is not None:
            label = format_instant(times[-1] + interval * step)
        else:
            label = f"t+{step}"
        result['points'].append({
            'label': label,
            'value': model['intercept'] + model['slope'] * x
        })

    return result

def forecast(rows: Sequence[Dict[str, Any]],
             schema: List[Dict[str, str]],
             horizon: int = 5,
             max_targets: int = 3,
             min_points: int = 3) -> List[Dict[str, Any]]:
    """Linear forecasts for the first ``max_targets`` numeric columns"""
    dates = columns_of_type(schema, DATE)
    date_column = dates[0] if dates else None

    return [
        forecast_column(rows, col, date_column=date_column, horizon=horizon, min_points=min_points)
        for col in columns_of_type(schema, NUMBER)[:max_targets]
    ]

class ForecastAgent:
    """Agent responsible for short-horizon linear forecasts"""

    def __init__(self, config: Optional[Config] = None):
        self.config = config or get_config()

    async def process(self, state: dict) -> dict:
        with PipelineLogger("forecast") as step:
            forecasts = forecast(
                state.get('sampled_rows') or [],
                state.get('schema') or [],
                horizon=self.config.forecast.HORIZON,
                max_targets=self.config.forecast.MAX_TARGETS,
                min_points=self.config.forecast.MIN_POINTS
            )
            fitted = sum(1 for f in forecasts if f['model'] is not None)
            step.log_metric("fitted_series", f"{fitted}/{len(forecasts)}")

        state.update({
            'forecasts': forecasts,
            'current_step': 'forecast',
            'next_action': 'completed'
        })
        state['execution_log'].append(f"Forecasts produced for {fitted} of {len(forecasts)} series")
        return state
