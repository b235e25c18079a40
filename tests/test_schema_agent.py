# tests/test_schema_agent.py
import pytest
from insight_engine.agents.schema_agent import (
    SchemaInferenceAgent, classify_values, infer_schema, columns_of_type, candidate_columns
)
from insight_engine.config import Config

WORDS = ['apple', 'banana', 'cherry', 'durian', 'elderberry']

class TestClassifyValues:

    def test_numeric_majority_at_threshold(self):
        """Six of ten parseable numbers is enough"""
        values = ['1', '2', '3', '4', '5', '6'] + WORDS[:4]
        assert classify_values(values) == 'number'

    def test_numeric_below_threshold(self):
        values = ['1', '2', '3', '4', '5'] + WORDS
        assert classify_values(values) == 'string'

    def test_dates(self):
        values = ['2024-01-01', '2024-01-02', '2024-02-10', 'not a date']
        assert classify_values(values) == 'date'

    def test_relative_words_are_not_dates(self):
        assert classify_values(['now', 'today', 'x', 'now', 'today']) == 'string'

    def test_digit_separators_are_not_numbers(self):
        assert classify_values(['1_000', '2_000', '3_000', '4']) != 'number'

    def test_numbers_are_never_dates(self):
        assert classify_values([20240101, 20240102, 20240103]) == 'number'

    def test_missing_values_are_ignored(self):
        values = [None, '', '   ', '7', '8']
        assert classify_values(values) == 'number'

    def test_all_missing_is_string(self):
        assert classify_values([None, '', None]) == 'string'

    def test_native_numbers(self):
        assert classify_values([1, 2.5, -3]) == 'number'

    def test_custom_thresholds(self):
        values = ['1', '2', 'apple', 'banana']
        assert classify_values(values) == 'string'
        assert classify_values(values, numeric_threshold=0.5) == 'number'

class TestInferSchema:

    @pytest.fixture
    def rows(self):
        return [
            {'day': '2024-01-01', 'sales': '10', 'region': 'north'},
            {'day': '2024-01-02', 'sales': '12.5', 'region': 'south'},
            {'day': '2024-01-03', 'sales': None, 'region': 'north'},
        ]

    def test_infer_types(self, rows):
        schema = infer_schema(rows)

        assert schema == [
            {'name': 'day', 'inferred_type': 'date'},
            {'name': 'sales', 'inferred_type': 'number'},
            {'name': 'region', 'inferred_type': 'string'},
        ]

    def test_declared_columns_take_precedence(self, rows):
        schema = infer_schema(rows, columns=['region', 'absent'])

        assert [c['name'] for c in schema] == ['region', 'absent']
        assert schema[1]['inferred_type'] == 'string'

    def test_empty_rows_are_unknown(self):
        schema = infer_schema([], columns=['a', 'b'])
        assert schema == [
            {'name': 'a', 'inferred_type': 'unknown'},
            {'name': 'b', 'inferred_type': 'unknown'},
        ]

    def test_empty_rows_without_columns(self):
        assert infer_schema([]) == []

    def test_candidate_columns_from_first_row(self, rows):
        assert candidate_columns(rows) == ['day', 'sales', 'region']

    def test_columns_of_type(self, rows):
        schema = infer_schema(rows)
        assert columns_of_type(schema, 'number') == ['sales']
        assert columns_of_type(schema, 'date') == ['day']

class TestSchemaInferenceAgent:

    @pytest.mark.asyncio
    async def test_process(self):
        agent = SchemaInferenceAgent(Config())
        state = {
            'sampled_rows': [{'x': '1'}, {'x': '2'}],
            'columns': None,
            'execution_log': [],
            'errors': []
        }

        result = await agent.process(state)

        assert result['schema'] == [{'name': 'x', 'inferred_type': 'number'}]
        assert result['next_action'] == 'statistics'

    @pytest.mark.asyncio
    async def test_process_empty_sample(self):
        agent = SchemaInferenceAgent(Config())
        state = {'sampled_rows': [], 'columns': ['x'], 'execution_log': [], 'errors': []}

        result = await agent.process(state)

        assert result['schema'] == [{'name': 'x', 'inferred_type': 'unknown'}]
        assert result['next_action'] == 'empty'
