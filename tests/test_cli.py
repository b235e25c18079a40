# tests/test_cli.py
import json
import sys
import pytest
from unittest.mock import patch
import main as cli
from insight_engine import config as config_module

class TestCLILogging:

    @pytest.fixture(autouse=True)
    def fresh_config(self, monkeypatch):
        """Each run builds its own configuration singleton"""
        for name in ('LOG_LEVEL', 'LOG_TO_FILE'):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.setattr(config_module, '_config', None)

    @pytest.fixture
    def template_path(self, tmp_path):
        return str(tmp_path / 'template.json')

    def _run(self, monkeypatch, *argv):
        monkeypatch.setattr(sys, 'argv', ['main.py', *argv])
        with patch('main.setup_logging') as mock_setup:
            cli.main()
        return mock_setup.call_args.kwargs

    def test_configured_level_and_directory(self, monkeypatch, tmp_path, template_path):
        config_file = tmp_path / 'config.json'
        config_file.write_text(json.dumps({'logging_level': 'WARNING', 'log_to_file': True}))

        kwargs = self._run(monkeypatch, '--config', str(config_file), '--init-config', template_path)

        assert kwargs['log_level'] == 'WARNING'
        assert kwargs['log_to_file'] is True
        assert kwargs['log_dir'] == str(config_module.get_config().paths.LOGS_DIR)

    def test_environment_level(self, monkeypatch, template_path):
        monkeypatch.setenv('LOG_LEVEL', 'ERROR')

        kwargs = self._run(monkeypatch, '--init-config', template_path)

        assert kwargs['log_level'] == 'ERROR'
        assert kwargs['log_to_file'] is False

    def test_flag_overrides_configuration(self, monkeypatch, template_path):
        monkeypatch.setenv('LOG_LEVEL', 'ERROR')

        kwargs = self._run(monkeypatch, '--log-level', 'DEBUG', '--log-file', '--init-config', template_path)

        assert kwargs['log_level'] == 'DEBUG'
        assert kwargs['log_to_file'] is True

    def test_init_config_writes_template(self, monkeypatch, template_path):
        self._run(monkeypatch, '--init-config', template_path)

        with open(template_path) as f:
            assert json.load(f)['sampling']['AI_ROW_CAP'] == 200
