# tests/test_config.py
import json
import os
import tempfile
import pytest
from insight_engine.config import Config, reload_config, get_config

class TestConfig:

    @pytest.fixture
    def config_file(self):
        with tempfile.NamedTemporaryFile(mode='w', suffix='.json', delete=False) as f:
            json.dump({'sampling': {'AI_ROW_CAP': 25}, 'forecast': {'HORIZON': 7}}, f)
        yield f.name
        os.unlink(f.name)

    def test_defaults(self, monkeypatch):
        for name in ('ANALYSIS_ROW_CAP', 'AI_ROW_CAP', 'AI_PROVIDER'):
            monkeypatch.delenv(name, raising=False)
        config = Config()

        assert config.sampling.ANALYSIS_ROW_CAP == 5000
        assert config.sampling.AI_ROW_CAP == 200
        assert config.statistics.MAX_DISTINCT_KEYS == 50
        assert config.forecast.HORIZON == 5
        assert config.validate_config() == []

    def test_file_overrides(self, config_file, monkeypatch):
        monkeypatch.delenv('AI_ROW_CAP', raising=False)
        config = Config(config_file)

        assert config.sampling.AI_ROW_CAP == 25
        assert config.forecast.HORIZON == 7

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv('OLLAMA_MODELS', 'llama3, phi3 ,')
        monkeypatch.setenv('AI_PROVIDER', 'OpenAI')
        monkeypatch.setenv('AI_REQUEST_TIMEOUT', '5')
        config = Config()

        assert config.providers.OLLAMA_MODELS == ['llama3', 'phi3']
        assert config.providers.PREFERRED_PROVIDER == 'openai'
        assert config.providers.REQUEST_TIMEOUT == 5.0

    def test_validation_issues(self, monkeypatch):
        monkeypatch.delenv('AI_PROVIDER', raising=False)
        config = Config()
        config.providers.PREFERRED_PROVIDER = 'claude'
        config.sampling.AI_ROW_CAP = 0

        issues = config.validate_config()

        assert len(issues) == 2
        assert any('claude' in issue for issue in issues)

    def test_logging_settings(self, monkeypatch):
        monkeypatch.setenv('LOG_LEVEL', 'debug')
        monkeypatch.setenv('LOG_TO_FILE', 'true')
        config = Config()

        assert config.logging_level == 'debug'
        assert config.log_to_file is True
        assert config.paths.LOGS_DIR.name == 'logs'
        assert not any('logging level' in issue for issue in config.validate_config())

        config.logging_level = 'LOUD'
        assert any('logging level' in issue for issue in config.validate_config())

    def test_save_and_reload(self, tmp_path):
        path = tmp_path / 'config.json'
        config = Config()
        config.charts.MAX_SCATTER_CHARTS = 4
        config.save_config(str(path))

        reloaded = reload_config(str(path))

        assert reloaded.charts.MAX_SCATTER_CHARTS == 4
        assert get_config() is reloaded
        reload_config()
