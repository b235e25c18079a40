# insight_engine/pipeline.py
from langgraph.graph import StateGraph, END
from typing import TypedDict, Optional, List, Dict, Any
import logging

from insight_engine.agents.chart_agent import ChartRecommendationAgent
from insight_engine.agents.correlation_agent import CorrelationAgent
from insight_engine.agents.data_agent import DataIngestionAgent
from insight_engine.agents.forecast_agent import ForecastAgent
from insight_engine.agents.insight_agent import AIInsightAgent, build_context
from insight_engine.agents.providers import build_providers
from insight_engine.agents.schema_agent import SchemaInferenceAgent
from insight_engine.agents.stats_agent import StatisticsAgent
from insight_engine.config import Config, get_config
from insight_engine.errors import InsightEngineError
from insight_engine.utils.logging_config import PipelineLogger

logger = logging.getLogger(__name__)

class AnalysisState(TypedDict, total=False):
    """State shared across all agents"""
    # Input
    data_path: Optional[str]
    extension: Optional[str]
    columns: Optional[List[str]]
    rows: Optional[List[Dict[str, Any]]]
    mode: str  # 'analysis' or 'ai'
    provider: Optional[str]

    # Artifacts
    file_info: Optional[dict]
    sampled_rows: Optional[List[Dict[str, Any]]]
    schema: Optional[List[dict]]
    stats: Optional[dict]
    correlations: Optional[List[dict]]
    chart_recommendations: Optional[List[dict]]
    forecasts: Optional[List[dict]]
    ai_context: Optional[dict]
    ai_result: Optional[dict]

    # Workflow
    current_step: str
    next_action: str
    errors: List[str]
    error_type: Optional[str]
    execution_log: List[str]

class InsightPipeline:
    def __init__(self, config: Optional[Config] = None):
        """Initialize the analysis pipeline"""
        self.config = config or get_config()

        # Build the graph; no checkpointer, every run starts from scratch
        self.graph = self._build_graph()
        self.compiled_graph = self.graph.compile()

        logger.info("Insight pipeline initialized")

    def _build_graph(self) -> StateGraph:
        """Build the LangGraph workflow"""
        data_agent = DataIngestionAgent(self.config)
        schema_agent = SchemaInferenceAgent(self.config)
        stats_agent = StatisticsAgent(self.config)
        correlation_agent = CorrelationAgent(self.config)
        chart_agent = ChartRecommendationAgent(self.config)
        forecast_agent = ForecastAgent(self.config)
        insight_agent = AIInsightAgent(self.config)

        workflow = StateGraph(AnalysisState)

        workflow.add_node("data_ingestion", data_agent.process)
        workflow.add_node("sampling", data_agent.sample)
        workflow.add_node("schema_inference", schema_agent.process)
        workflow.add_node("statistics", stats_agent.process)
        workflow.add_node("correlations", correlation_agent.process)
        workflow.add_node("chart_recommendations", chart_agent.process)
        workflow.add_node("forecast", forecast_agent.process)
        workflow.add_node("ai_insight", insight_agent.process)

        workflow.set_entry_point("data_ingestion")

        workflow.add_conditional_edges(
            "data_ingestion",
            self._route_after_ingestion,
            {
                "proceed": "sampling",
                "error": END
            }
        )
        workflow.add_edge("sampling", "schema_inference")

        # Empty sample: nothing left to compute
        workflow.add_conditional_edges(
            "schema_inference",
            self._route_after_schema,
            {
                "proceed": "statistics",
                "empty": END
            }
        )
        workflow.add_edge("statistics", "correlations")

        workflow.add_conditional_edges(
            "correlations",
            self._route_after_correlations,
            {
                "charts": "chart_recommendations",
                "ai": "ai_insight"
            }
        )
        workflow.add_edge("chart_recommendations", "forecast")
        workflow.add_edge("forecast", END)
        workflow.add_edge("ai_insight", END)

        return workflow

    def _route_after_ingestion(self, state: AnalysisState) -> str:
        return "error" if state.get("next_action") == "error" else "proceed"

    def _route_after_schema(self, state: AnalysisState) -> str:
        return "proceed" if state.get("sampled_rows") else "empty"

    def _route_after_correlations(self, state: AnalysisState) -> str:
        return "ai" if state.get("mode") == "ai" else "charts"

    def _initial_state(self, mode: str, data_path: Optional[str], rows: Optional[List[Dict[str, Any]]],
                       columns: Optional[List[str]], extension: Optional[str],
                       provider: Optional[str] = None) -> AnalysisState:
        return AnalysisState(
            data_path=data_path,
            extension=extension,
            columns=list(columns) if columns else None,
            rows=list(rows) if rows is not None else None,
            mode=mode,
            provider=provider,
            current_step="initialization",
            next_action="data_ingestion",
            errors=[],
            error_type=None,
            execution_log=[]
        )

    async def _run(self, initial_state: AnalysisState) -> AnalysisState:
        with PipelineLogger(f"{initial_state['mode']} pipeline"):
            return await self.compiled_graph.ainvoke(initial_state)

    async def run_analysis(self,
                           data_path: Optional[str] = None,
                           rows: Optional[List[Dict[str, Any]]] = None,
                           columns: Optional[List[str]] = None,
                           extension: Optional[str] = None) -> dict:
        """Execute the full statistical analysis"""
        initial_state = self._initial_state("analysis", data_path, rows, columns, extension)

        try:
            final_state = await self._run(initial_state)
        except InsightEngineError as e:
            return {"status": "failed", **e.to_dict()}

        if final_state.get("errors"):
            return self._failure(final_state)

        stats = final_state.get("stats") or {"numeric": {}, "categorical": {}}
        return {
            "status": "completed",
            "file": final_state.get("file_info"),
            "rows_analyzed": len(final_state.get("sampled_rows") or []),
            "schema": final_state.get("schema") or [],
            "stats": stats,
            "correlations": final_state.get("correlations") or [],
            "chart_recommendations": final_state.get("chart_recommendations") or [],
            "forecasts": final_state.get("forecasts") or []
        }

    async def run_ai_analysis(self,
                              data_path: Optional[str] = None,
                              rows: Optional[List[Dict[str, Any]]] = None,
                              columns: Optional[List[str]] = None,
                              extension: Optional[str] = None,
                              provider: Optional[str] = None) -> dict:
        """Execute the AI insight flow over a smaller sample"""
        try:
            build_providers(provider)
        except InsightEngineError as e:
            return {"status": "failed", **e.to_dict()}

        initial_state = self._initial_state("ai", data_path, rows, columns, extension, provider)

        try:
            final_state = await self._run(initial_state)
        except InsightEngineError as e:
            return {"status": "failed", **e.to_dict()}

        if final_state.get("errors"):
            return self._failure(final_state)

        result = final_state.get("ai_result")
        if result is None:
            if final_state.get("sampled_rows"):
                message = "No AI provider returned a usable response"
            else:
                message = "Dataset has no rows to analyze"
            return {
                "status": "unavailable",
                "message": message,
                "context": final_state.get("ai_context") or build_context(final_state)
            }

        return {
            "status": "completed",
            "provider": result["provider"],
            "model": result["model"],
            "rows_analyzed": len(final_state.get("sampled_rows") or []),
            "ai": result["output"]
        }

    def _failure(self, state: AnalysisState) -> dict:
        logger.error(f"Pipeline failed: {'; '.join(state['errors'])}")
        return {
            "status": "failed",
            "error_type": state.get("error_type") or "error",
            "error": state["errors"][-1]
        }

# Example usage
if __name__ == "__main__":
    import asyncio
    import json

    async def main():
        pipeline = InsightPipeline()
        result = await pipeline.run_analysis(
            rows=[{"day": f"2024-01-0{i}", "sales": i * 10, "region": "north"} for i in range(1, 8)]
        )
        print(json.dumps(result, indent=2))

    asyncio.run(main())
