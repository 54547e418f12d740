import os
from pathlib import Path
from string import Template
from typing import Any, Dict, Mapping, Optional

import structlog
import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from notes_ai.models.config import AppConfig

logger = structlog.get_logger()

# Environment variable -> (section, key); applied when the key is unset
ENV_OVERRIDES = {
    "OPENROUTER_API_KEY": ("llm", "api_key"),
    "OPENROUTER_DEFAULT_MODEL": ("llm", "default_model"),
    "OPENROUTER_TIMEOUT_SECONDS": ("llm", "timeout_seconds"),
    "OPENROUTER_APP_URL": ("llm", "app_url"),
    "OPENROUTER_APP_NAME": ("llm", "app_name"),
    "SUPABASE_URL": ("telemetry", "supabase_url"),
    "SUPABASE_KEY": ("telemetry", "supabase_key"),
    "RATE_LIMIT_MAX_REQUESTS": ("rate_limit", "max_requests"),
    "RATE_LIMIT_WINDOW_SECONDS": ("rate_limit", "window_seconds"),
    "LOG_LEVEL": ("logging", "level"),
}


class ConfigValidationError(Exception):
    """Configuration validation failed"""

    pass


class ConfigManager:
    """Loads application configuration from YAML and environment"""

    def __init__(
        self,
        config_path: Optional[str] = "config/notes_ai.yaml",
        environ: Optional[Mapping[str, str]] = None,
        load_env_file: bool = True,
    ):
        self.config_path = Path(config_path) if config_path else None
        self.environ = environ
        self.load_env_file = load_env_file
        self._config: Optional[AppConfig] = None

    def load_config(self) -> AppConfig:
        """Load and validate configuration.

        The YAML file is optional; when absent, configuration is built
        from environment variables and defaults.

        Raises:
            ConfigValidationError: If the file cannot be parsed or the
                resulting configuration is invalid
        """
        if self._config:
            return self._config

        # 1. Load environment
        if self.load_env_file and self.environ is None:
            load_dotenv()
        env = dict(self.environ if self.environ is not None else os.environ)

        # 2. Read YAML with ${VAR} substitution
        config_data: Dict[str, Any] = {}
        if self.config_path is not None and self.config_path.exists():
            config_data = self._read_yaml(self.config_path, env)
        elif self.config_path is not None:
            logger.debug("config_file_missing", path=str(self.config_path))

        # 3. Apply environment overrides
        self._apply_env_overrides(config_data, env)

        # 4. Validate with Pydantic
        try:
            self._config = AppConfig(**config_data)
        except ValidationError as e:
            raise ConfigValidationError(f"Invalid configuration: {e}")

        logger.info(
            "config_loaded",
            default_model=self._config.llm.default_model,
            telemetry_enabled=self._config.telemetry.enabled,
            api_key_present=bool(self._config.llm.api_key),
        )
        return self._config

    def _read_yaml(self, path: Path, env: Mapping[str, str]) -> Dict[str, Any]:
        try:
            with open(path) as f:
                raw_content = f.read()
        except OSError as e:
            raise ConfigValidationError(f"Failed to read config file: {e}")

        try:
            substituted_content = Template(raw_content).safe_substitute(env)
            data = yaml.safe_load(substituted_content)
        except (yaml.YAMLError, ValueError) as e:
            raise ConfigValidationError(
                f"Failed to parse YAML or substitute variables: {e}"
            )

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigValidationError("Configuration root must be a mapping")
        return data

    def _apply_env_overrides(
        self, config_data: Dict[str, Any], env: Mapping[str, str]
    ) -> None:
        for var, (section, key) in ENV_OVERRIDES.items():
            value = env.get(var)
            section_data = config_data.get(section)
            if section_data is None:
                if not value:
                    continue
                section_data = config_data[section] = {}
            if not isinstance(section_data, dict):
                raise ConfigValidationError(f"Section '{section}' must be a mapping")

            current = section_data.get(key)
            # Unresolved ${VAR} placeholders count as unset
            if isinstance(current, str) and current.startswith("${"):
                current = None
                section_data.pop(key)
            if current is None and value:
                section_data[key] = value
