# insight_engine/config.py
import os
from pathlib import Path
from typing import List, Optional
from dataclasses import dataclass
import json
import logging

logger = logging.getLogger(__name__)

PROVIDER_NAMES = ['ollama', 'gemini', 'openai', 'huggingface']
LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']

@dataclass
class PathConfig:
    """Configuration for project paths"""
    PROJECT_ROOT: Path
    LOGS_DIR: Path

@dataclass
class SamplingConfig:
    """Row caps applied before any analysis"""
    ANALYSIS_ROW_CAP: int
    AI_ROW_CAP: int
    PROMPT_SAMPLE_ROWS: int

@dataclass
class InferenceConfig:
    """Thresholds for the column type vote"""
    NUMERIC_RATIO_THRESHOLD: float
    DATE_RATIO_THRESHOLD: float

@dataclass
class StatisticsConfig:
    """Bounds for categorical frequency tables"""
    MAX_DISTINCT_KEYS: int
    TOP_N: int
    MISSING_LABEL: str

@dataclass
class ChartConfig:
    """Configuration for chart recommendations"""
    SCATTER_MIN_CORRELATION: float
    MAX_SCATTER_CHARTS: int
    BAR_AGGREGATION: str

@dataclass
class ForecastConfig:
    """Configuration for linear forecasts"""
    HORIZON: int
    MAX_TARGETS: int
    MIN_POINTS: int

@dataclass
class ProviderConfig:
    """Connection settings for the language-model providers"""
    PREFERRED_PROVIDER: Optional[str]
    OLLAMA_HOST: str
    OLLAMA_MODELS: List[str]
    GEMINI_API_KEY: Optional[str]
    GEMINI_MODEL: str
    OPENAI_API_KEY: Optional[str]
    OPENAI_MODEL: str
    HF_API_TOKEN: Optional[str]
    HF_MODEL: str
    REQUEST_TIMEOUT: float  # seconds, per provider attempt
    TEMPERATURE: float

@dataclass
class DataValidationConfig:
    """Configuration for data loading"""
    MAX_FILE_SIZE_MB: int
    SUPPORTED_FILE_FORMATS: List[str]

@dataclass
class DeploymentConfig:
    """Configuration for the HTTP API"""
    DEFAULT_PORT: int
    DEFAULT_HOST: str
    WORKERS: int
    ENABLE_CORS: bool
    ENABLE_DOCS: bool

class Config:
    """Central configuration manager for the insight engine"""

    def __init__(self, config_file: Optional[str] = None):
        """
        Initialize configuration

        Args:
            config_file: Optional path to JSON config file to override defaults
        """
        self._load_default_config()

        if config_file and os.path.exists(config_file):
            self._load_config_file(config_file)

        self._load_environment_variables()

    def _load_default_config(self):
        """Load default configuration values"""

        project_root = Path(__file__).parent.parent
        self.paths = PathConfig(
            PROJECT_ROOT=project_root,
            LOGS_DIR=project_root / "logs"
        )

        self.sampling = SamplingConfig(
            ANALYSIS_ROW_CAP=5000,
            AI_ROW_CAP=200,
            PROMPT_SAMPLE_ROWS=50
        )

        self.inference = InferenceConfig(
            NUMERIC_RATIO_THRESHOLD=0.6,
            DATE_RATIO_THRESHOLD=0.6
        )

        self.statistics = StatisticsConfig(
            MAX_DISTINCT_KEYS=50,
            TOP_N=10,
            MISSING_LABEL="(missing)"
        )

        self.charts = ChartConfig(
            SCATTER_MIN_CORRELATION=0.5,
            MAX_SCATTER_CHARTS=10,
            BAR_AGGREGATION="mean"
        )

        self.forecast = ForecastConfig(
            HORIZON=5,
            MAX_TARGETS=3,
            MIN_POINTS=3
        )

        self.providers = ProviderConfig(
            PREFERRED_PROVIDER=None,
            OLLAMA_HOST="http://127.0.0.1:11434",
            OLLAMA_MODELS=["llama3.1", "llama3", "qwen2.5", "phi3"],
            GEMINI_API_KEY=None,
            GEMINI_MODEL="gemini-1.5-flash-latest",
            OPENAI_API_KEY=None,
            OPENAI_MODEL="gpt-4o-mini",
            HF_API_TOKEN=None,
            HF_MODEL="mistralai/Mistral-7B-Instruct-v0.2",
            REQUEST_TIMEOUT=60.0,
            TEMPERATURE=0.2
        )

        self.data_validation = DataValidationConfig(
            MAX_FILE_SIZE_MB=500,
            SUPPORTED_FILE_FORMATS=['.csv', '.xlsx', '.json']
        )

        self.deployment = DeploymentConfig(
            DEFAULT_PORT=8000,
            DEFAULT_HOST="0.0.0.0",
            WORKERS=1,
            ENABLE_CORS=True,
            ENABLE_DOCS=True
        )

        # Additional settings
        self.logging_level = "INFO"
        self.log_to_file = False

    def _load_config_file(self, config_file: str):
        """Load configuration from JSON file"""
        try:
            with open(config_file, 'r') as f:
                config_data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not load config file {config_file}: {e}")
            return

        # Update configurations with values from file
        for section, values in config_data.items():
            if hasattr(self, section):
                config_obj = getattr(self, section)
                if not isinstance(values, dict):
                    setattr(self, section, values)
                    continue
                for key, value in values.items():
                    if hasattr(config_obj, key):
                        setattr(config_obj, key, value)

    def _load_environment_variables(self):
        """Load configuration from environment variables"""

        # Sampling
        if os.getenv("ANALYSIS_ROW_CAP"):
            self.sampling.ANALYSIS_ROW_CAP = int(os.getenv("ANALYSIS_ROW_CAP"))

        if os.getenv("AI_ROW_CAP"):
            self.sampling.AI_ROW_CAP = int(os.getenv("AI_ROW_CAP"))

        # Providers
        if os.getenv("AI_PROVIDER"):
            self.providers.PREFERRED_PROVIDER = os.getenv("AI_PROVIDER").strip().lower()

        if os.getenv("OLLAMA_HOST"):
            self.providers.OLLAMA_HOST = os.getenv("OLLAMA_HOST")

        if os.getenv("OLLAMA_MODELS"):
            self.providers.OLLAMA_MODELS = [
                m.strip() for m in os.getenv("OLLAMA_MODELS").split(",") if m.strip()
            ]

        if os.getenv("GEMINI_API_KEY"):
            self.providers.GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")

        if os.getenv("GEMINI_MODEL"):
            self.providers.GEMINI_MODEL = os.getenv("GEMINI_MODEL")

        if os.getenv("OPENAI_API_KEY"):
            self.providers.OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")

        if os.getenv("OPENAI_MODEL"):
            self.providers.OPENAI_MODEL = os.getenv("OPENAI_MODEL")

        if os.getenv("HF_API_TOKEN"):
            self.providers.HF_API_TOKEN = os.getenv("HF_API_TOKEN")

        if os.getenv("HF_MODEL"):
            self.providers.HF_MODEL = os.getenv("HF_MODEL")

        if os.getenv("AI_REQUEST_TIMEOUT"):
            self.providers.REQUEST_TIMEOUT = float(os.getenv("AI_REQUEST_TIMEOUT"))

        # Data loading
        if os.getenv("MAX_FILE_SIZE_MB"):
            self.data_validation.MAX_FILE_SIZE_MB = int(os.getenv("MAX_FILE_SIZE_MB"))

        # Deployment settings
        if os.getenv("API_PORT"):
            self.deployment.DEFAULT_PORT = int(os.getenv("API_PORT"))

        if os.getenv("API_HOST"):
            self.deployment.DEFAULT_HOST = os.getenv("API_HOST")

        if os.getenv("API_WORKERS"):
            self.deployment.WORKERS = int(os.getenv("API_WORKERS"))

        # General settings
        if os.getenv("LOG_LEVEL"):
            self.logging_level = os.getenv("LOG_LEVEL")

        if os.getenv("LOG_TO_FILE"):
            self.log_to_file = os.getenv("LOG_TO_FILE").lower() == 'true'

    def save_config(self, config_file: str):
        """Save current configuration to JSON file"""
        config_dict = {}

        # Convert dataclasses to dictionaries
        for attr_name in dir(self):
            if not attr_name.startswith('_'):
                attr_value = getattr(self, attr_name)
                if hasattr(attr_value, '__dict__'):
                    config_dict[attr_name] = {}
                    for field_name, field_value in attr_value.__dict__.items():
                        if isinstance(field_value, Path):
                            config_dict[attr_name][field_name] = str(field_value)
                        else:
                            config_dict[attr_name][field_name] = field_value
                elif not callable(attr_value):
                    config_dict[attr_name] = attr_value

        with open(config_file, 'w') as f:
            json.dump(config_dict, f, indent=2)

    def validate_config(self) -> List[str]:
        """Validate configuration and return list of issues"""
        issues = []

        if self.sampling.ANALYSIS_ROW_CAP <= 0:
            issues.append(f"Invalid analysis row cap: {self.sampling.ANALYSIS_ROW_CAP}")

        if self.sampling.AI_ROW_CAP <= 0:
            issues.append(f"Invalid AI row cap: {self.sampling.AI_ROW_CAP}")

        for name in ('NUMERIC_RATIO_THRESHOLD', 'DATE_RATIO_THRESHOLD'):
            value = getattr(self.inference, name)
            if value <= 0 or value > 1:
                issues.append(f"Invalid {name.lower()}: {value}")

        if self.statistics.TOP_N > self.statistics.MAX_DISTINCT_KEYS:
            issues.append(
                f"Top-N ({self.statistics.TOP_N}) exceeds distinct key cap ({self.statistics.MAX_DISTINCT_KEYS})"
            )

        if self.forecast.MIN_POINTS < 2:
            issues.append(f"Forecast needs at least 2 points: {self.forecast.MIN_POINTS}")

        preferred = self.providers.PREFERRED_PROVIDER
        if preferred and preferred not in PROVIDER_NAMES:
            issues.append(f"Unknown preferred provider: {preferred}")

        if self.providers.REQUEST_TIMEOUT <= 0:
            issues.append(f"Invalid provider timeout: {self.providers.REQUEST_TIMEOUT}")

        if self.data_validation.MAX_FILE_SIZE_MB <= 0:
            issues.append(f"Invalid max file size: {self.data_validation.MAX_FILE_SIZE_MB}")

        if str(self.logging_level).upper() not in LOG_LEVELS:
            issues.append(f"Invalid logging level: {self.logging_level}")

        return issues

    def __str__(self) -> str:
        """String representation of configuration"""
        return f"Config(project_root={self.paths.PROJECT_ROOT}, log_level={self.logging_level})"

# Global configuration instance
_config = None

def get_config(config_file: Optional[str] = None) -> Config:
    """Get global configuration instance (singleton pattern)"""
    global _config
    if _config is None:
        _config = Config(config_file)
    return _config

def reload_config(config_file: Optional[str] = None) -> Config:
    """Reload configuration (useful for testing)"""
    global _config
    _config = Config(config_file)
    return _config

# Example configuration file template
CONFIG_TEMPLATE = {
    "sampling": {
        "ANALYSIS_ROW_CAP": 5000,
        "AI_ROW_CAP": 200
    },
    "providers": {
        "PREFERRED_PROVIDER": None,
        "OLLAMA_HOST": "http://127.0.0.1:11434",
        "OLLAMA_MODELS": ["llama3.1", "qwen2.5"],
        "REQUEST_TIMEOUT": 60
    },
    "deployment": {
        "DEFAULT_PORT": 8080,
        "WORKERS": 2
    }
}

def create_config_template(output_file: str):
    """Create a configuration template file"""
    with open(output_file, 'w') as f:
        json.dump(CONFIG_TEMPLATE, f, indent=2)
    logger.info(f"Configuration template created: {output_file}")
