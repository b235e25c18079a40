# tests/conftest.py
import pytest
from unittest.mock import Mock
from insight_engine.config import Config

@pytest.fixture
def offline_config():
    """Defaults with every provider credential cleared, whatever the environment holds"""
    config = Config()
    config.providers.PREFERRED_PROVIDER = None
    config.providers.OLLAMA_HOST = 'http://127.0.0.1:11434'
    config.providers.OLLAMA_MODELS = ['llama3.1', 'qwen2.5']
    config.providers.GEMINI_API_KEY = None
    config.providers.OPENAI_API_KEY = None
    config.providers.HF_API_TOKEN = None
    config.providers.GEMINI_MODEL = 'gemini-1.5-flash-latest'
    config.providers.OPENAI_MODEL = 'gpt-4o-mini'
    config.providers.HF_MODEL = 'mistralai/Mistral-7B-Instruct-v0.2'
    config.sampling.ANALYSIS_ROW_CAP = 5000
    config.sampling.AI_ROW_CAP = 200
    return config

def make_response(payload, status_code=200):
    response = Mock()
    response.ok = 200 <= status_code < 300
    response.status_code = status_code
    response.json.return_value = payload
    return response

@pytest.fixture
def json_response():
    """Factory for stand-ins of a requests.Response carrying a JSON body"""
    return make_response
