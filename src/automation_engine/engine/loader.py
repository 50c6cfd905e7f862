"""
Automation configuration loader.

Automation configurations are persisted by the host as camelCase JSON next to
the component definition. For headless runs they can also live in a file,
YAML or JSON (YAML is a superset of JSON, so one parser reads both).

Features:
- Load from files or strings into a validated AutomationConfig
- Accept the bare document or the host's ``automationConfiguration`` wrapper
- Write back by alias (camelCase), JSON or YAML by file suffix
- Config file discovery: explicit path, AUTOMATION_CONFIG, ~/.automation/automation.yml
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from .load_result import LoadResult
from .schema import AutomationConfig

logger = logging.getLogger(__name__)

HOST_WRAPPER_KEY = "automationConfiguration"


def load_automation_config(file_path: str | Path) -> LoadResult[AutomationConfig]:
    """
    Load and validate an automation configuration file.

    Args:
        file_path: Path to a YAML or JSON file

    Returns:
        LoadResult.success(AutomationConfig) if valid
        LoadResult.failure(error_message) otherwise

    Example:
        result = load_automation_config("automation.yml")
        if result.is_success:
            runner = AutomationRunner(result.value, executors, actions)
        else:
            print(f"Failed to load: {result.error}")
    """
    path = Path(file_path)

    if not path.exists():
        return LoadResult.failure(f"Automation config file not found: {file_path}")

    if not path.is_file():
        return LoadResult.failure(f"Path is not a file: {file_path}")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        return LoadResult.failure(f"Failed to read file '{file_path}': {e}")

    return load_automation_from_yaml(content, source=str(file_path))


def load_automation_from_yaml(
    content: str, source: str = "<string>"
) -> LoadResult[AutomationConfig]:
    """
    Load and validate an automation configuration from a YAML/JSON string.

    Args:
        content: Document text
        source: Source identifier for error messages (default: "<string>")

    Returns:
        LoadResult.success(AutomationConfig) if valid
        LoadResult.failure(error_message) otherwise

    Example:
        yaml_str = '''
        eventConfigs:
          onClick:
            executors:
              - key: echo
                params: {message: "Hello {{$context.trigger.name}}"}
            actions:
              - key: console
        '''
        result = load_automation_from_yaml(yaml_str)
    """
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        return LoadResult.failure(f"Invalid YAML syntax in {source}: {e}")

    if data is None:
        data = {}

    if not isinstance(data, dict):
        return LoadResult.failure(
            f"Automation config {source} must be a mapping, got {type(data).__name__}"
        )

    if HOST_WRAPPER_KEY in data:
        data = data[HOST_WRAPPER_KEY] or {}

    try:
        config = AutomationConfig.model_validate(data)
    except ValidationError as e:
        return LoadResult.failure(f"Automation config validation failed in {source}:\n{e}")

    logger.debug(f"Loaded automation config from {source}: {list(config.event_configs)}")
    return LoadResult.success(config, metadata={"source": source})


def dump_automation_config(config: AutomationConfig, file_path: str | Path) -> None:
    """
    Write a configuration in its persisted camelCase shape.

    ``.json`` files are written as JSON, anything else as YAML.
    """
    path = Path(file_path)
    data = config.model_dump(by_alias=True, mode="json")
    if path.suffix.lower() == ".json":
        text = json.dumps(data, indent=2, ensure_ascii=False)
    else:
        text = yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
    path.write_text(text, encoding="utf-8")


class AutomationConfigLoader:
    """Locate and load the automation configuration file.

    Usage:
        ```python
        loader = AutomationConfigLoader()
        result = loader.load()
        config = result.unwrap_or(AutomationConfig())
        ```
    """

    ENV_VAR = "AUTOMATION_CONFIG"
    STANDARD_PATH = Path(".automation") / "automation.yml"

    def __init__(self, config_path: str | Path | None = None):
        """Initialize config loader with optional explicit path.

        Args:
            config_path: Explicit path to config file (optional).
                If not provided, uses environment variable or standard location.
        """
        self._explicit_path = Path(config_path).expanduser() if config_path else None

    def get_config_path(self) -> Path | None:
        """Determine config file path using priority order.

        Priority:
        1. Explicit path passed to constructor
        2. AUTOMATION_CONFIG environment variable
        3. Standard location: ~/.automation/automation.yml

        Returns:
            Path to config file, or None if file doesn't exist
        """
        if self._explicit_path:
            if self._explicit_path.exists():
                return self._explicit_path
            logger.warning(f"Explicit automation config path does not exist: {self._explicit_path}")
            return None

        env_path_str = os.getenv(self.ENV_VAR)
        if env_path_str:
            env_path = Path(env_path_str).expanduser()
            if env_path.exists():
                return env_path
            logger.warning(f"{self.ENV_VAR} path does not exist: {env_path}")
            return None

        standard_path = Path.home() / self.STANDARD_PATH
        if standard_path.exists():
            return standard_path

        return None

    def load(self) -> LoadResult[AutomationConfig]:
        """Load the located configuration file.

        Returns:
            LoadResult.failure when no file is found or the file is invalid
        """
        path = self.get_config_path()
        if path is None:
            return LoadResult.failure("No automation config file found")
        logger.info(f"Loading automation config from {path}")
        return load_automation_config(path)
