# insight_engine/agents/data_agent.py
import itertools
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

import pandas as pd

from insight_engine.config import Config, get_config
from insight_engine.errors import (
    DatasetNotFoundError,
    DatasetTooLargeError,
    InsightEngineError,
    InvalidRequestError,
    UnsupportedFormatError,
)
from insight_engine.utils.logging_config import PipelineLogger, log_execution_time

logger = logging.getLogger(__name__)

Row = Dict[str, Any]

def sample_rows(rows: Iterable[Row], limit: int) -> List[Row]:
    """Return the first ``limit`` rows in their original order"""
    if limit < 0:
        raise ValueError(f"Sample limit must be non-negative: {limit}")
    return list(itertools.islice(rows, limit))

def frame_to_rows(data: pd.DataFrame) -> List[Row]:
    """Convert a DataFrame to row mappings, with missing cells as None"""
    data = data.copy()
    data.columns = [str(c) for c in data.columns]
    data = data.astype(object).where(data.notna(), None)
    return data.to_dict(orient='records')

def _frame_table(data: pd.DataFrame) -> Tuple[List[Row], List[str]]:
    # header names survive even when the frame has no data rows
    return frame_to_rows(data), [str(c) for c in data.columns]

@log_execution_time
def load_rows(data_path: str,
              extension: Optional[str] = None,
              max_file_size_mb: int = 500,
              supported_formats: Optional[List[str]] = None) -> Tuple[List[Row], List[str]]:
    """Load a CSV/XLSX/JSON file.

    Returns the row mappings of column -> raw value together with the column
    names found in the file header, so a header-only file still reports its
    columns.
    """
    path = Path(data_path)
    supported_formats = supported_formats or ['.csv', '.xlsx', '.json']

    if not path.is_file():
        raise DatasetNotFoundError(f"Data file not found: {data_path}")

    file_size_mb = path.stat().st_size / (1024 * 1024)
    if file_size_mb > max_file_size_mb:
        raise DatasetTooLargeError(f"File too large: {file_size_mb:.1f}MB > {max_file_size_mb}MB")

    extension = (extension or path.suffix).lower()
    if extension and not extension.startswith('.'):
        extension = f".{extension}"

    if extension not in supported_formats:
        raise UnsupportedFormatError(f"Unsupported file format: {extension or '(none)'}")

    try:
        if extension == '.csv':
            return _read_csv_table(path)
        if extension == '.xlsx':
            return _frame_table(pd.read_excel(path))
        return _frame_table(pd.read_json(path, orient='records', dtype=False, convert_dates=False))
    except (OSError, ValueError) as e:
        raise DatasetNotFoundError(f"Could not read {path.name}: {e}") from e

def _read_csv_table(path: Path) -> Tuple[List[Row], List[str]]:
    """Try common encodings and separators; raw cells are kept as strings"""
    fallback = None

    for encoding in ['utf-8-sig', 'latin-1', 'cp1252']:
        for sep in [',', ';', '\t']:
            try:
                data = pd.read_csv(path, encoding=encoding, sep=sep, dtype=str,
                                   keep_default_na=False, skip_blank_lines=True)
            except pd.errors.EmptyDataError:
                return [], []
            except (UnicodeDecodeError, pd.errors.ParserError):
                continue

            if data.shape[1] > 1:  # Successfully parsed multiple columns
                return _frame_table(data)
            if fallback is None:
                fallback = data

    if fallback is not None:
        return _frame_table(fallback)
    raise DatasetNotFoundError(f"Could not parse CSV file with any encoding/separator combination: {path.name}")

class DataIngestionAgent:
    """Agent responsible for row loading and sampling"""

    def __init__(self, config: Optional[Config] = None):
        self.config = config or get_config()
        self.supported_formats = self.config.data_validation.SUPPORTED_FILE_FORMATS
        self.max_file_size_mb = self.config.data_validation.MAX_FILE_SIZE_MB

    async def process(self, state: dict) -> dict:
        """Load rows from ``data_path`` unless rows were supplied directly"""
        with PipelineLogger("data_ingestion") as step:
            try:
                rows = state.get('rows')
                data_path = state.get('data_path')
                columns = state.get('columns')

                if rows is None:
                    if not data_path:
                        raise InvalidRequestError("Either rows or data_path must be provided")
                    step.log_progress(f"Loading {data_path}")
                    rows, header = load_rows(
                        data_path,
                        extension=state.get('extension'),
                        max_file_size_mb=self.max_file_size_mb,
                        supported_formats=self.supported_formats
                    )
                    columns = columns or header or None
                else:
                    rows = list(rows)

                file_info = self._extract_file_info(
                    rows, data_path, state.get('extension'), columns
                )
                step.log_metric("total_rows", file_info['total_rows'])

                state.update({
                    'rows': rows,
                    'columns': columns,
                    'file_info': file_info,
                    'current_step': 'data_ingestion',
                    'next_action': 'sampling'
                })
                state['execution_log'].append(
                    f"Data loaded: {len(rows)} rows, {len(file_info['columns'])} columns"
                )

            except InsightEngineError as e:
                logger.error(f"Data ingestion failed: {e.message}")
                state['errors'].append(f"Data ingestion error: {e.message}")
                state['error_type'] = e.code
                state['next_action'] = 'error'

        return state

    async def sample(self, state: dict) -> dict:
        """Truncate rows to the cap for the current analysis mode"""
        if state.get('mode') == 'ai':
            limit = self.config.sampling.AI_ROW_CAP
        else:
            limit = self.config.sampling.ANALYSIS_ROW_CAP

        sampled = sample_rows(state.get('rows') or [], limit)
        logger.info(f"Sampled {len(sampled)} of {len(state.get('rows') or [])} rows (cap {limit})")

        state.update({
            'sampled_rows': sampled,
            'current_step': 'sampling',
            'next_action': 'schema_inference'
        })
        state['execution_log'].append(f"Sampled {len(sampled)} rows")
        return state

    def _extract_file_info(self, rows: List[Row], data_path: Optional[str],
                           extension: Optional[str], columns: Optional[List[str]] = None) -> dict:
        """Basic metadata about the loaded dataset"""
        name = Path(data_path).name if data_path else None
        if not extension and data_path:
            extension = Path(data_path).suffix
        if not columns:
            columns = [str(c) for c in rows[0].keys()] if rows else []
        return {
            'name': name,
            'extension': (extension or '').lstrip('.').lower() or None,
            'columns': columns,
            'total_rows': len(rows)
        }
