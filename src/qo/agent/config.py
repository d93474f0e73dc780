"""
Configuration management for quant-optik.

Config is stored at ~/.quant-optik/config.json and manages:
- LLM provider settings (DeepSeek, OpenAI, Anthropic)
- arXiv lookup settings
- Terminal preferences (theme, prompt, spinner)
- Location of the local user registry
"""

import json
import os
import logging
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

# Load .env from current dir and project root
load_dotenv()
load_dotenv(Path(__file__).resolve().parents[3] / ".env")  # repo root

from rich.table import Table

CONFIG_DIR = Path.home() / ".quant-optik"
CONFIG_FILE = CONFIG_DIR / "config.json"
VALID_LLM_PROVIDERS = frozenset({"deepseek", "openai", "anthropic"})
VALID_THEMES = ("green", "amber", "blue")
logger = logging.getLogger("qo.config")

DEFAULTS = {
    "llm.provider": "deepseek",
    "llm.model": "deepseek-chat",
    "llm.endpoint": "https://api.deepseek.com/v1/chat/completions",
    "llm.base_url": None,
    "llm.api_key": None,
    "llm.openai_api_key": None,
    "llm.anthropic_api_key": None,
    "llm.temperature": 0.7,
    "llm.max_tokens": 1500,

    "http.timeout": 0.0,

    "arxiv.endpoint": "https://export.arxiv.org/api/query",
    "arxiv.max_titles": 5,

    "ui.theme": "green",
    "ui.prompt": "⟩⟩",
    "ui.spinner": "photon_pulse",

    "auth.store_path": str(CONFIG_DIR / "users.json"),

    "logging.level": "WARNING",
}

API_KEYS = {
    "llm.api_key": {
        "name": "DeepSeek",
        "env_var": "DEEPSEEK_API_KEY",
        "description": "Default chat model (ask, explain, quiz, derive, papers)",
        "url": "https://platform.deepseek.com/api_keys",
    },
    "llm.openai_api_key": {
        "name": "OpenAI",
        "env_var": "OPENAI_API_KEY",
        "description": "llm.provider = openai",
        "url": "https://platform.openai.com/api-keys",
    },
    "llm.anthropic_api_key": {
        "name": "Anthropic",
        "env_var": "ANTHROPIC_API_KEY",
        "description": "llm.provider = anthropic",
        "url": "https://console.anthropic.com/settings/keys",
    },
}

PROVIDER_KEYS = {
    "deepseek": "llm.api_key",
    "openai": "llm.openai_api_key",
    "anthropic": "llm.anthropic_api_key",
}

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _validate_config(config_dict: dict) -> list[str]:
    """Validate a config dict and return a list of warning/error messages.

    Checks:
    - Type correctness (numeric, bool, string)
    - Range validity
    - Enumerated values (provider, theme, log level)
    - Unknown keys (possible typos)
    """
    warnings: list[str] = []

    # --- Unknown keys ---
    known_keys = set(DEFAULTS.keys())
    for key in config_dict:
        if key not in known_keys:
            warnings.append(f"Unknown config key '{key}' (possible typo)")

    # --- Type checks ---
    for key, value in config_dict.items():
        if key not in DEFAULTS or value is None:
            continue
        default = DEFAULTS[key]
        if default is None:
            continue

        expected_type = type(default)
        if expected_type == bool:
            if not isinstance(value, bool):
                warnings.append(
                    f"Type error: '{key}' should be bool, got {type(value).__name__} ({value!r})"
                )
        elif expected_type in (int, float):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                warnings.append(
                    f"Type error: '{key}' should be {expected_type.__name__}, "
                    f"got {type(value).__name__} ({value!r})"
                )
        elif expected_type == str:
            if not isinstance(value, str):
                warnings.append(
                    f"Type error: '{key}' should be str, got {type(value).__name__} ({value!r})"
                )

    # --- Range checks ---
    def _check_min(key: str, minimum: float, label: str):
        val = config_dict.get(key)
        if val is not None and isinstance(val, (int, float)) and val < minimum:
            warnings.append(
                f"Range error: '{key}' ({label}) must be >= {minimum}, got {val}"
            )

    _check_min("llm.max_tokens", 1, "max output tokens")
    _check_min("llm.temperature", 0, "sampling temperature")
    _check_min("http.timeout", 0, "request timeout")
    _check_min("arxiv.max_titles", 1, "titles per lookup")

    # --- Enumerations ---
    provider = config_dict.get("llm.provider")
    if isinstance(provider, str) and provider.lower() not in VALID_LLM_PROVIDERS:
        warnings.append(f"Unsupported llm.provider '{provider}'")
    theme = config_dict.get("ui.theme")
    if isinstance(theme, str) and theme not in VALID_THEMES:
        warnings.append(f"Unknown ui.theme '{theme}' (falls back to green)")
    level = config_dict.get("logging.level")
    if isinstance(level, str) and level.upper() not in _LOG_LEVELS:
        warnings.append(f"Unknown logging.level '{level}'")

    return warnings


class Config:
    """quant-optik configuration manager."""

    def __init__(self, data: dict = None):
        self._data = data or {}
        self._env_loaded_keys: set[str] = set()

    def __repr__(self) -> str:
        """Safe repr that masks API keys."""
        safe = {}
        for k, v in self._data.items():
            if "api_key" in k and v:
                safe[k] = str(v)[:4] + "..." if len(str(v)) > 4 else "***"
            else:
                safe[k] = v
        return f"Config({safe})"

    @classmethod
    def load(cls) -> "Config":
        """Load config from disk, creating defaults if needed."""
        if CONFIG_FILE.exists():
            try:
                with open(CONFIG_FILE) as f:
                    data = json.load(f)
                if not isinstance(data, dict):
                    logger.warning(
                        "Invalid config format in %s (expected JSON object), ignoring file",
                        CONFIG_FILE,
                    )
                    data = {}
            except (json.JSONDecodeError, OSError) as exc:
                logger.warning("Failed to read config file %s: %s", CONFIG_FILE, exc)
                data = {}
        else:
            data = {}

        # Check environment variables
        env_mappings = {
            "DEEPSEEK_API_KEY": "llm.api_key",
            "OPENAI_API_KEY": "llm.openai_api_key",
            "ANTHROPIC_API_KEY": "llm.anthropic_api_key",
            "QO_LLM_PROVIDER": "llm.provider",
            "QO_LLM_MODEL": "llm.model",
            "QO_LLM_ENDPOINT": "llm.endpoint",
            "QO_USERS_FILE": "auth.store_path",
            "QO_LOG_LEVEL": "logging.level",
        }
        env_loaded = set()
        for env_var, config_key in env_mappings.items():
            val = os.environ.get(env_var)
            if val and config_key not in data:
                data[config_key] = val
                env_loaded.add(config_key)

        cfg = cls(data)
        # Track keys loaded from environment so they stay out of the saved file
        cfg._env_loaded_keys = env_loaded

        # Run validation and log warnings (never crash)
        issues = _validate_config(data)
        for issue in issues:
            logger.warning("Config validation: %s", issue)

        return cfg

    def validate(self) -> list[str]:
        """Run schema validation on current config data. Returns list of issues."""
        return _validate_config(self._data)

    def save(self):
        """Save config to disk. Values that came from the environment stay out of the file."""
        CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        persisted = {
            k: v for k, v in self._data.items() if k not in self._env_loaded_keys
        }
        with open(CONFIG_FILE, "w") as f:
            json.dump(persisted, f, indent=2)

    def get(self, key: str, default: Any = None) -> Any:
        """Get a config value, falling back to defaults."""
        return self._data.get(key, DEFAULTS.get(key, default))

    def set(self, key: str, value: Any):
        """Set a config value."""
        if key == "llm.provider":
            provider = str(value).strip().lower()
            if provider not in VALID_LLM_PROVIDERS:
                valid = ", ".join(sorted(VALID_LLM_PROVIDERS))
                raise ValueError(
                    f"Invalid llm.provider '{value}'. Valid providers: {valid}"
                )
            value = provider

        # Type coercion
        if key in DEFAULTS and DEFAULTS[key] is not None:
            expected_type = type(DEFAULTS[key])
            if expected_type == bool:
                value = value.lower() in ("true", "1", "yes") if isinstance(value, str) else bool(value)
            elif expected_type == float:
                value = float(value)
            elif expected_type == int:
                value = int(value)

        self._data[key] = value
        self._env_loaded_keys.discard(key)

    def llm_api_key(self, provider: Optional[str] = None) -> Optional[str]:
        """Get the API key for the selected provider."""
        provider = (provider or self.get("llm.provider", "deepseek")).lower()
        return self.get(PROVIDER_KEYS.get(provider, "llm.api_key"))

    def http_timeout(self) -> Optional[float]:
        """Request timeout in seconds; None when disabled (0)."""
        timeout = float(self.get("http.timeout") or 0)
        return timeout if timeout > 0 else None

    def llm_preflight_issue(self) -> Optional[str]:
        """Return a human-readable LLM config issue, or None when ready."""
        provider_raw = self.get("llm.provider", "deepseek")
        provider = str(provider_raw or "").strip().lower()
        if not provider:
            return "llm.provider is empty. Set it with: quant-optik config set llm.provider deepseek"

        if provider not in VALID_LLM_PROVIDERS:
            valid = ", ".join(sorted(VALID_LLM_PROVIDERS))
            return (
                f"Unsupported llm.provider '{provider}'. "
                f"Valid providers: {valid}. Set it with: quant-optik config set llm.provider <provider>"
            )

        if not self.get("llm.model"):
            return "llm.model is empty. Set it with: quant-optik config set llm.model <model-id>"

        if self.llm_api_key(provider):
            return None

        config_key = PROVIDER_KEYS[provider]
        info = API_KEYS[config_key]
        return (
            f"{info['name']} API key not configured. Set {info['env_var']} or run:\n"
            f"  quant-optik config set {config_key} <key>"
        )

    def keys_table(self) -> Table:
        """Render API key status as a rich table."""
        table = Table(title="API Keys", caption="Set: quant-optik config set <key> <value>  |  Or: export ENV_VAR=<value>")
        table.add_column("Service", style="bold")
        table.add_column("Status")
        table.add_column("Used for", style="dim")
        table.add_column("Config Key", style="cyan dim")
        table.add_column("Sign Up", style="dim")

        for config_key, info in API_KEYS.items():
            if self.get(config_key):
                status = "[green]configured[/green]"
            else:
                status = "[red]not set[/red]"
            table.add_row(info["name"], status, info["description"], config_key, info["url"])

        return table

    def to_table(self) -> Table:
        """Render config as a rich table."""
        table = Table(title="quant-optik Configuration")
        table.add_column("Key", style="cyan")
        table.add_column("Value", style="green")
        table.add_column("Source", style="dim")

        all_keys = sorted(set(list(DEFAULTS.keys()) + list(self._data.keys())))
        for key in all_keys:
            if key in self._data:
                val = self._data[key]
                source = "env" if key in self._env_loaded_keys else "config"
            elif key in DEFAULTS:
                val = DEFAULTS[key]
                source = "default"
            else:
                continue

            # Mask API keys
            display_val = str(val)
            if "api_key" in key and val and len(str(val)) > 8:
                display_val = str(val)[:4] + "..." + str(val)[-4:]

            table.add_row(key, display_val, source)

        return table
