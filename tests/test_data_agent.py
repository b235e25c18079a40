# tests/test_data_agent.py
import pytest
import pandas as pd
import numpy as np
from insight_engine.agents.data_agent import DataIngestionAgent, sample_rows, load_rows, frame_to_rows
from insight_engine.config import Config
from insight_engine.errors import DatasetNotFoundError, UnsupportedFormatError
import tempfile
import os

class TestSampling:

    def test_sample_keeps_first_rows_in_order(self):
        """Test that sampling truncates without reordering"""
        rows = [{'i': i} for i in range(10)]
        sampled = sample_rows(rows, 4)

        assert sampled == [{'i': 0}, {'i': 1}, {'i': 2}, {'i': 3}]
        assert sampled[0] is rows[0]

    def test_sample_shorter_than_cap(self):
        rows = [{'i': i} for i in range(3)]
        assert sample_rows(rows, 5000) == rows

    def test_sample_accepts_generators(self):
        assert len(sample_rows(({'i': i} for i in range(1000)), 200)) == 200

    def test_sample_empty(self):
        assert sample_rows([], 10) == []

    def test_sample_negative_limit(self):
        with pytest.raises(ValueError):
            sample_rows([{'i': 1}], -1)

class TestDataIngestionAgent:

    @pytest.fixture
    def sample_data(self):
        """Create sample dataset for testing"""
        np.random.seed(42)
        data = pd.DataFrame({
            'age': np.random.randint(18, 65, 100),
            'income': np.random.normal(50000, 15000, 100).round(2),
            'education': np.random.choice(['High School', 'Bachelor', 'Master', 'PhD'], 100),
        })
        data.loc[[3, 7], 'income'] = np.nan
        return data

    @pytest.fixture
    def temp_csv_file(self, sample_data):
        """Create temporary CSV file"""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.csv', delete=False) as f:
            sample_data.to_csv(f.name, index=False)
        yield f.name
        os.unlink(f.name)

    @pytest.fixture
    def temp_semicolon_csv(self):
        with tempfile.NamedTemporaryFile(mode='w', suffix='.csv', delete=False, encoding='utf-8') as f:
            f.write("city;temp\nParis;12.5\nOslo;-3\n")
        yield f.name
        os.unlink(f.name)

    @pytest.fixture
    def temp_header_only_csv(self):
        with tempfile.NamedTemporaryFile(mode='w', suffix='.csv', delete=False, encoding='utf-8') as f:
            f.write("day,sales,region\n")
        yield f.name
        os.unlink(f.name)

    @pytest.fixture
    def temp_json_file(self):
        with tempfile.NamedTemporaryFile(mode='w', suffix='.json', delete=False) as f:
            f.write('[{"a": 1, "b": "x"}, {"a": null, "b": "y"}]')
        yield f.name
        os.unlink(f.name)

    def test_load_csv_keeps_raw_strings(self, temp_csv_file, sample_data):
        """Test CSV loading returns raw string cells"""
        rows, columns = load_rows(temp_csv_file)

        assert columns == ['age', 'income', 'education']
        assert len(rows) == len(sample_data)
        assert set(rows[0].keys()) == {'age', 'income', 'education'}
        assert isinstance(rows[0]['age'], str)
        assert rows[3]['income'] == ''

    def test_load_csv_detects_separator(self, temp_semicolon_csv):
        rows, _ = load_rows(temp_semicolon_csv)

        assert rows == [{'city': 'Paris', 'temp': '12.5'}, {'city': 'Oslo', 'temp': '-3'}]

    def test_load_json(self, temp_json_file):
        rows, columns = load_rows(temp_json_file)

        assert columns == ['a', 'b']
        assert rows[0] == {'a': 1, 'b': 'x'}
        assert rows[1]['a'] is None

    def test_load_header_only_csv(self, temp_header_only_csv):
        rows, columns = load_rows(temp_header_only_csv)

        assert rows == []
        assert columns == ['day', 'sales', 'region']

    @pytest.mark.asyncio
    async def test_header_only_file_keeps_columns(self, temp_header_only_csv):
        agent = DataIngestionAgent(Config())
        state = {'data_path': temp_header_only_csv, 'execution_log': [], 'errors': []}

        result = await agent.process(state)

        assert result['rows'] == []
        assert result['columns'] == ['day', 'sales', 'region']
        assert result['file_info']['columns'] == ['day', 'sales', 'region']
        assert result['file_info']['total_rows'] == 0

    def test_extension_override(self, temp_semicolon_csv):
        with pytest.raises(UnsupportedFormatError):
            load_rows(temp_semicolon_csv, extension='parquet')

    def test_load_missing_file(self):
        with pytest.raises(DatasetNotFoundError):
            load_rows('non_existent_file.csv')

    def test_frame_to_rows_replaces_nan(self):
        rows = frame_to_rows(pd.DataFrame({'x': [1.5, np.nan]}))
        assert rows == [{'x': 1.5}, {'x': None}]

    @pytest.mark.asyncio
    async def test_data_loading_success(self, temp_csv_file):
        """Test successful data loading"""
        agent = DataIngestionAgent(Config())

        state = {
            'data_path': temp_csv_file,
            'execution_log': [],
            'errors': []
        }

        result = await agent.process(state)

        assert len(result['rows']) == 100
        assert result['file_info']['name'] == os.path.basename(temp_csv_file)
        assert result['file_info']['extension'] == 'csv'
        assert result['file_info']['columns'] == ['age', 'income', 'education']
        assert result['current_step'] == 'data_ingestion'
        assert result['next_action'] == 'sampling'

    @pytest.mark.asyncio
    async def test_data_loading_file_not_found(self):
        """Test data loading with non-existent file"""
        agent = DataIngestionAgent(Config())

        state = {
            'data_path': 'non_existent_file.csv',
            'execution_log': [],
            'errors': []
        }

        result = await agent.process(state)

        assert len(result['errors']) == 1
        assert result['error_type'] == 'not_found'
        assert result['next_action'] == 'error'

    @pytest.mark.asyncio
    async def test_sampling_uses_mode_cap(self):
        config = Config()
        config.sampling.ANALYSIS_ROW_CAP = 50
        config.sampling.AI_ROW_CAP = 20
        agent = DataIngestionAgent(config)
        rows = [{'i': i} for i in range(100)]

        analysis = await agent.sample({'rows': rows, 'mode': 'analysis', 'execution_log': []})
        ai = await agent.sample({'rows': rows, 'mode': 'ai', 'execution_log': []})

        assert len(analysis['sampled_rows']) == 50
        assert len(ai['sampled_rows']) == 20
        assert ai['sampled_rows'][-1] == {'i': 19}
