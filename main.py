import asyncio
import argparse
import json
import sys
from pathlib import Path
from insight_engine.pipeline import InsightPipeline
from insight_engine.utils.logging_config import setup_logging
from insight_engine.config import get_config, create_config_template, PROVIDER_NAMES

def main():
    """Main entry point for the insight engine CLI"""
    parser = argparse.ArgumentParser(description="Tabular Insight Engine")
    parser.add_argument("--data-path", help="Path to the dataset (.csv, .xlsx, .json)")
    parser.add_argument("--columns", help="Comma-separated list of declared column names")
    parser.add_argument("--extension", help="File extension to use instead of the path suffix")
    parser.add_argument("--ai", action="store_true", help="Run the AI insight flow instead of the statistical analysis")
    parser.add_argument("--provider", choices=PROVIDER_NAMES, help="Only query this AI provider")
    parser.add_argument("--output", help="Write the JSON result to this file instead of stdout")
    parser.add_argument("--config", help="Path to configuration file")
    parser.add_argument("--log-level", help="Logging level (defaults to the configured level)")
    parser.add_argument("--log-file", action="store_true", help="Also write logs under the configured logs directory")
    parser.add_argument("--init-config", metavar="PATH", help="Write a configuration template to PATH and exit")

    args = parser.parse_args()

    config = get_config(args.config)

    setup_logging(
        log_level=args.log_level or config.logging_level,
        log_dir=str(config.paths.LOGS_DIR),
        log_to_file=args.log_file or config.log_to_file
    )

    if args.init_config:
        create_config_template(args.init_config)
        return

    if not args.data_path:
        parser.error("--data-path is required")

    issues = config.validate_config()
    if issues:
        for issue in issues:
            print(f"Configuration error: {issue}", file=sys.stderr)
        sys.exit(2)

    columns = [c.strip() for c in args.columns.split(",") if c.strip()] if args.columns else None

    async def run():
        pipeline = InsightPipeline(config)
        if args.ai:
            return await pipeline.run_ai_analysis(
                data_path=args.data_path,
                columns=columns,
                extension=args.extension,
                provider=args.provider
            )
        return await pipeline.run_analysis(
            data_path=args.data_path,
            columns=columns,
            extension=args.extension
        )

    result = asyncio.run(run())
    payload = json.dumps(result, indent=2, default=str)

    if args.output:
        Path(args.output).write_text(payload, encoding="utf-8")
    else:
        print(payload)

    if result.get("status") == "failed":
        print(f"Analysis failed [{result.get('error_type')}]: {result.get('error')}", file=sys.stderr)
        sys.exit(1)
    if result.get("status") == "unavailable":
        print(f"AI analysis unavailable: {result.get('message')}", file=sys.stderr)
        sys.exit(3)

if __name__ == "__main__":
    main()
