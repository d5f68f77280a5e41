"""
Configuration Management for Weaklog

Loads configuration from ~/.weaklog/config.json and environment variables.
"""

import os
import json
import logging
import logging.handlers
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigError

# Default config paths
CONFIG_DIR = Path.home() / ".weaklog"
CONFIG_PATH = CONFIG_DIR / "config.json"
LOGS_DIR = CONFIG_DIR / "logs"

DEFAULT_FOLDER = str(Path.home() / "Weaklog")
DEFAULT_OLLAMA_ENDPOINT = "http://localhost:11434"

SUPPORTED_PROVIDERS = ("anthropic", "openai", "gemini", "ollama")
CLOUD_PROVIDERS = ("anthropic", "openai", "gemini")

DEFAULT_MODELS = {
    "anthropic": "claude-sonnet-4-20250514",
    "openai": "gpt-4o-mini",
    "gemini": "gemini-2.0-flash",
    "ollama": "llama3",
}

# Universal credential override, applies to every cloud provider
API_KEY_ENV = "WEAKLOG_API_KEY"


@dataclass
class ProviderConfig:
    """What the client facade needs to build an adapter"""
    provider_type: str
    model: str
    api_key: Optional[str] = None
    endpoint: Optional[str] = None


@dataclass
class LLMConfig:
    """LLM provider configuration"""
    provider: str = "anthropic"
    anthropic_api_key: str = ""
    openai_api_key: str = ""
    gemini_api_key: str = ""
    ollama_endpoint: str = DEFAULT_OLLAMA_ENDPOINT
    model: str = ""  # empty = provider default
    triage_temperature: float = 0.3
    synthesis_temperature: float = 0.7
    triage_timeout_ms: int = 30000
    synthesis_timeout_ms: int = 20000

    @property
    def effective_model(self) -> str:
        return self.model or DEFAULT_MODELS.get(self.provider, "")

    @property
    def api_key(self) -> str:
        """Credential for the selected provider ("" for ollama)"""
        return {
            "anthropic": self.anthropic_api_key,
            "openai": self.openai_api_key,
            "gemini": self.gemini_api_key,
        }.get(self.provider, "")


@dataclass
class WorkflowConfig:
    """Entry workflow configuration"""
    folder_path: str = DEFAULT_FOLDER
    default_cooldown_days: int = 7
    response_language: str = "english"  # "english", "japanese" or "auto"


@dataclass
class WeaklogConfig:
    """Main Weaklog configuration"""
    llm: LLMConfig = field(default_factory=LLMConfig)
    workflow: WorkflowConfig = field(default_factory=WorkflowConfig)
    _env_sourced_keys: set = field(default_factory=set, repr=False)

    def provider_config(self) -> ProviderConfig:
        """Build the facade input for the selected provider."""
        provider = self.llm.provider.lower()
        if provider == "ollama":
            return ProviderConfig(
                provider_type=provider,
                model=self.llm.effective_model,
                endpoint=self.llm.ollama_endpoint or DEFAULT_OLLAMA_ENDPOINT,
            )
        return ProviderConfig(
            provider_type=provider,
            model=self.llm.effective_model,
            api_key=self.llm.api_key or None,
        )

    def credential_source(self) -> str:
        """Where the active credential came from: "environment" or "config"."""
        if self.llm.provider in CLOUD_PROVIDERS and \
                f"{self.llm.provider}_api_key" in self._env_sourced_keys:
            return "environment"
        return "config"


def _parse_llm_config(data: dict) -> LLMConfig:
    """Parse llm section from config dict"""
    llm_data = data.get("llm", {})
    return LLMConfig(
        provider=str(llm_data.get("provider", "anthropic")).lower(),
        anthropic_api_key=llm_data.get("anthropic_api_key", ""),
        openai_api_key=llm_data.get("openai_api_key", ""),
        gemini_api_key=llm_data.get("gemini_api_key", ""),
        ollama_endpoint=llm_data.get("ollama_endpoint", DEFAULT_OLLAMA_ENDPOINT),
        model=llm_data.get("model", ""),
        triage_temperature=float(llm_data.get("triage_temperature", 0.3)),
        synthesis_temperature=float(llm_data.get("synthesis_temperature", 0.7)),
        triage_timeout_ms=int(llm_data.get("triage_timeout_ms", 30000)),
        synthesis_timeout_ms=int(llm_data.get("synthesis_timeout_ms", 20000)),
    )


def _parse_workflow_config(data: dict) -> WorkflowConfig:
    """Parse workflow section from config dict"""
    workflow_data = data.get("workflow", {})
    return WorkflowConfig(
        folder_path=workflow_data.get("folder_path", DEFAULT_FOLDER),
        default_cooldown_days=int(workflow_data.get("default_cooldown_days", 7)),
        response_language=workflow_data.get("response_language", "english"),
    )


def _validate(config: WeaklogConfig) -> None:
    days = config.workflow.default_cooldown_days
    if days < 1 or days > 365:
        raise ConfigError(f"default_cooldown_days must be between 1 and 365, got {days}")
    if ".." in Path(config.workflow.folder_path).parts:
        raise ConfigError("Invalid folder path: cannot contain '..'")
    if config.workflow.response_language not in ("english", "japanese", "auto"):
        raise ConfigError(
            f"response_language must be english, japanese or auto, "
            f"got {config.workflow.response_language!r}"
        )
    for name in ("triage_temperature", "synthesis_temperature"):
        value = getattr(config.llm, name)
        if value < 0 or value > 1:
            raise ConfigError(f"{name} must be between 0.0 and 1.0")


def load_config() -> WeaklogConfig:
    """
    Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables (a .env file is honoured)
    2. Config file (~/.weaklog/config.json)
    3. Default values
    """
    load_dotenv()
    config = WeaklogConfig()

    # Load from config file if exists
    if CONFIG_PATH.exists():
        try:
            with open(CONFIG_PATH) as f:
                data = json.load(f)

            config.llm = _parse_llm_config(data)
            config.workflow = _parse_workflow_config(data)
        except (json.JSONDecodeError, IOError) as e:
            logging.getLogger("weaklog.common.config").warning(
                "Failed to load config file: %s", e
            )

    # Environment variable overrides
    _env_map = {
        "WEAKLOG_LLM_PROVIDER": ("llm", "provider"),
        "WEAKLOG_MODEL": ("llm", "model"),
        "WEAKLOG_OLLAMA_ENDPOINT": ("llm", "ollama_endpoint"),
        "WEAKLOG_FOLDER": ("workflow", "folder_path"),
        "WEAKLOG_LANGUAGE": ("workflow", "response_language"),
    }
    for env_var, (section, attr) in _env_map.items():
        val = os.getenv(env_var)
        if val:
            setattr(getattr(config, section), attr, val)
    config.llm.provider = config.llm.provider.lower()

    env_key = os.getenv(API_KEY_ENV)
    if env_key:
        for provider in CLOUD_PROVIDERS:
            attr = f"{provider}_api_key"
            setattr(config.llm, attr, env_key)
            config._env_sourced_keys.add(attr)

    _validate(config)
    return config


def save_config(config: WeaklogConfig) -> None:
    """Save configuration to file.

    API key fields that were sourced from environment variables are written
    as empty strings so that secrets are not persisted to disk.
    """
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)

    env_sourced = getattr(config, "_env_sourced_keys", set())

    llm_section = {
        "provider": config.llm.provider,
        "anthropic_api_key": config.llm.anthropic_api_key,
        "openai_api_key": config.llm.openai_api_key,
        "gemini_api_key": config.llm.gemini_api_key,
        "ollama_endpoint": config.llm.ollama_endpoint,
        "model": config.llm.model,
        "triage_temperature": config.llm.triage_temperature,
        "synthesis_temperature": config.llm.synthesis_temperature,
        "triage_timeout_ms": config.llm.triage_timeout_ms,
        "synthesis_timeout_ms": config.llm.synthesis_timeout_ms,
    }
    for key in env_sourced:
        if key in llm_section:
            llm_section[key] = ""

    data = {
        "llm": llm_section,
        "workflow": {
            "folder_path": config.workflow.folder_path,
            "default_cooldown_days": config.workflow.default_cooldown_days,
            "response_language": config.workflow.response_language,
        },
    }

    with open(CONFIG_PATH, "w") as f:
        json.dump(data, f, indent=2)

    # Set secure permissions
    CONFIG_PATH.chmod(0o600)


def ensure_directories() -> None:
    """Ensure required directories exist"""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    LOGS_DIR.mkdir(parents=True, exist_ok=True)


def setup_logging(level: int = logging.INFO, log_to_file: bool = True) -> logging.Logger:
    """Attach handlers to the ``weaklog`` logger hierarchy.

    Library modules only create named loggers; handlers are configured here
    once by the host application.
    """
    root = logging.getLogger("weaklog")
    root.setLevel(level)
    if root.handlers:
        return root

    formatter = logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")

    stream = logging.StreamHandler()
    stream.setFormatter(formatter)
    root.addHandler(stream)

    if log_to_file:
        ensure_directories()
        file_handler = logging.handlers.RotatingFileHandler(
            LOGS_DIR / "weaklog.log", maxBytes=1_000_000, backupCount=3, encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    return root
