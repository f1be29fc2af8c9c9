"""
Evaluator Configuration

Manages loading from environment variables and default values.
"""

import os
from dataclasses import dataclass, field, asdict

from explainer_eval.domain.constants import DEFAULT_MODEL, DEFAULT_STRATEGIES


def _env_bool(key: str, default: bool) -> bool:
    """Convert an environment variable to bool"""
    val = os.environ.get(key)
    if val is None:
        return default
    return val.lower() in ("true", "1", "yes")


def _env_int(key: str, default: int) -> int:
    """Convert an environment variable to int"""
    val = os.environ.get(key)
    if val is None:
        return default
    try:
        return int(val)
    except ValueError:
        raise ValueError(f"The value '{val}' of environment variable '{key}' cannot be converted to an integer.")


def _env_float(key: str, default: float) -> float:
    """Convert an environment variable to float"""
    val = os.environ.get(key)
    if val is None:
        return default
    try:
        return float(val)
    except ValueError:
        raise ValueError(f"The value '{val}' of environment variable '{key}' cannot be converted to a number.")


def _env_str(key: str, default: str | None) -> str | None:
    """Get an environment variable as a string (empty counts as unset)"""
    val = os.environ.get(key)
    return val if val else default


def _env_str_list(key: str, default: list[str]) -> list[str]:
    """Convert an environment variable to a comma-separated list of strings"""
    val = os.environ.get(key)
    if val is None:
        return list(default)
    return [x.strip() for x in val.split(",") if x.strip()]


@dataclass
class BackendConfig:
    """Text-generation backend configuration"""
    strategies: list[str] = field(default_factory=lambda: list(DEFAULT_STRATEGIES))
    model: str = DEFAULT_MODEL
    timeout_seconds: int = 60
    max_retries: int = 2
    temperature: float = 0.2
    max_output_tokens: int = 800


@dataclass
class GeminiConfig:
    """Gemini (Google GenAI) configuration"""
    api_key: str | None = None
    rest_base_url: str = "https://generativelanguage.googleapis.com/v1beta"


@dataclass
class ClaudeConfig:
    """Anthropic Claude configuration"""
    model: str = "claude-haiku-4-5-20251001"
    api_key: str | None = None


@dataclass
class LMStudioConfig:
    """LMStudio (OpenAI-compatible local LLM) configuration"""
    base_url: str = "http://localhost:1234/v1"
    api_key: str = "lm-studio"
    model: str = "qwen2.5-7b"


@dataclass
class StorageConfig:
    """Title store configuration"""
    title_store_path: str = "data/video_titles.json"
    seed_path: str | None = None


@dataclass
class ServerConfig:
    """HTTP server and logging configuration"""
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"
    log_json: bool = False


@dataclass
class EvaluatorConfig:
    """Overall evaluator configuration"""
    backend: BackendConfig = field(default_factory=BackendConfig)
    gemini: GeminiConfig = field(default_factory=GeminiConfig)
    claude: ClaudeConfig = field(default_factory=ClaudeConfig)
    lmstudio: LMStudioConfig = field(default_factory=LMStudioConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    def to_dict(self) -> dict:
        """Convert to dictionary format"""
        return {"evaluator_config": asdict(self)}

    @classmethod
    def from_dict(cls, data: dict) -> "EvaluatorConfig":
        """Create from dictionary (handles presence/absence of evaluator_config key)"""
        config_data = data.get("evaluator_config", data)
        return cls(
            backend=BackendConfig(**config_data.get("backend", {})),
            gemini=GeminiConfig(**config_data.get("gemini", {})),
            claude=ClaudeConfig(**config_data.get("claude", {})),
            lmstudio=LMStudioConfig(**config_data.get("lmstudio", {})),
            storage=StorageConfig(**config_data.get("storage", {})),
            server=ServerConfig(**config_data.get("server", {})),
        )


def load_config() -> EvaluatorConfig:
    """
    Load configuration from environment variables

    Uses default values when environment variables are not set.

    Returns:
        EvaluatorConfig
    """
    backend = BackendConfig(
        strategies=_env_str_list("EVALUATOR_BACKENDS", DEFAULT_STRATEGIES),
        model=_env_str("EVALUATOR_MODEL", DEFAULT_MODEL),
        timeout_seconds=_env_int("EVALUATOR_TIMEOUT_SECONDS", 60),
        max_retries=_env_int("EVALUATOR_MAX_RETRIES", 2),
        temperature=_env_float("EVALUATOR_TEMPERATURE", 0.2),
        max_output_tokens=_env_int("EVALUATOR_MAX_OUTPUT_TOKENS", 800),
    )
    gemini = GeminiConfig(
        api_key=_env_str("GEMINI_API_KEY", None),
        rest_base_url=_env_str("GEMINI_REST_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"),
    )
    claude = ClaudeConfig(
        model=_env_str("CLAUDE_MODEL", "claude-haiku-4-5-20251001"),
        api_key=_env_str("ANTHROPIC_API_KEY", None),
    )
    lmstudio = LMStudioConfig(
        base_url=_env_str("LMSTUDIO_BASE_URL", "http://localhost:1234/v1"),
        api_key=_env_str("LMSTUDIO_API_KEY", "lm-studio"),
        model=_env_str("LMSTUDIO_MODEL", "qwen2.5-7b"),
    )
    storage = StorageConfig(
        title_store_path=_env_str("TITLE_STORE_PATH", "data/video_titles.json"),
        seed_path=_env_str("TITLE_STORE_SEED_PATH", None),
    )
    server = ServerConfig(
        host=_env_str("HOST", "0.0.0.0"),
        port=_env_int("PORT", 3000),
        log_level=_env_str("LOG_LEVEL", "INFO"),
        log_json=_env_bool("LOG_JSON", False),
    )
    return EvaluatorConfig(
        backend=backend,
        gemini=gemini,
        claude=claude,
        lmstudio=lmstudio,
        storage=storage,
        server=server,
    )
