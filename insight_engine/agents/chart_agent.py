# insight_engine/agents/chart_agent.py
import logging
from typing import Any, Dict, List, Optional

from insight_engine.agents.schema_agent import DATE, NUMBER, STRING, columns_of_type
from insight_engine.config import Config, get_config
from insight_engine.utils.logging_config import PipelineLogger

logger = logging.getLogger(__name__)

def _chart(title: str, chart_type: str, x: str, y: Optional[str],
           description: str, agg: Optional[str] = None) -> Dict[str, Any]:
    return {
        'title': title,
        'type': chart_type,
        'x': x,
        'y': y,
        'description': description,
        'agg': agg
    }

def recommend_charts(schema: List[Dict[str, str]],
                     correlations: List[Dict[str, Any]],
                     min_correlation: float = 0.5,
                     max_scatter: int = 10,
                     bar_agg: str = 'mean') -> List[Dict[str, Any]]:
    """Rule-based chart suggestions, applied in a fixed order.

    Correlations are expected in strongest-first order, as produced by
    ``compute_correlations``.
    """
    numeric = columns_of_type(schema, NUMBER)
    dates = columns_of_type(schema, DATE)
    categorical = columns_of_type(schema, STRING)

    charts = []

    # 1. distribution of each numeric column
    for col in numeric:
        charts.append(_chart(
            f"Distribution of {col}", 'histogram', col, None,
            f"Histogram showing how values of {col} are distributed."
        ))

    # 2. strongly correlated pairs
    strong = [c for c in correlations if abs(c['pearson']) >= min_correlation][:max_scatter]
    for pair in strong:
        direction = 'positive' if pair['pearson'] > 0 else 'negative'
        charts.append(_chart(
            f"{pair['col_y']} vs {pair['col_x']}", 'scatter', pair['col_x'], pair['col_y'],
            f"Scatter plot of a {direction} correlation (r = {pair['pearson']:.2f})."
        ))

    # 3. trends over the first date column
    if dates:
        time_axis = dates[0]
        for col in numeric:
            charts.append(_chart(
                f"{col} over time", 'line', time_axis, col,
                f"Line chart of {col} against {time_axis}."
            ))

    # 4. one category comparison
    if categorical and numeric:
        cat, num = categorical[0], numeric[0]
        charts.append(_chart(
            f"Average {num} by {cat}", 'bar', cat, num,
            f"Bar chart comparing the {bar_agg} of {num} across {cat} categories.",
            agg=bar_agg
        ))

    return charts

class ChartRecommendationAgent:
    """Agent responsible for visualization suggestions"""

    def __init__(self, config: Optional[Config] = None):
        self.config = config or get_config()

    async def process(self, state: dict) -> dict:
        with PipelineLogger("chart_recommendations") as step:
            charts = recommend_charts(
                state.get('schema') or [],
                state.get('correlations') or [],
                min_correlation=self.config.charts.SCATTER_MIN_CORRELATION,
                max_scatter=self.config.charts.MAX_SCATTER_CHARTS,
                bar_agg=self.config.charts.BAR_AGGREGATION
            )
            step.log_metric("charts", len(charts))

        state.update({
            'chart_recommendations': charts,
            'current_step': 'chart_recommendations',
            'next_action': 'forecast'
        })
        state['execution_log'].append(f"Recommended {len(charts)} charts")
        return state
