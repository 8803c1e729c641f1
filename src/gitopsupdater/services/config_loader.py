"""Configuration loader for the GitOps updater."""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from gitopsupdater.errors import ConfigurationError
from gitopsupdater.errors_catalog import actionable_error


class ConfigLoader:
    """Loads YAML configuration files for CLI defaults."""

    SUPPORTED_KEYS = {
        "server_url",
        "username",
        "password",
        "branch_name",
        "file_path",
        "commit_message",
        "author_name",
        "author_email",
        "deploy_tool",
        "container_image",
        "container_registry_url",
        "container_name",
        "deployment_name",
        "chart_path",
        "helm_values_file",
        "helm_image_value_name",
        "helm_tag_value_name",
        "manifest_file_mode",
        "workspace_base_dir",
        "tool_timeout",
        "verbose",
        "log_file",
    }

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        path = Path(config_path)
        if not path.exists():
            raise ConfigurationError(actionable_error("config_not_found", path=config_path))

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise ConfigurationError(f"Invalid config file '{config_path}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise ConfigurationError("Config file must contain a YAML mapping at the root.")

        unknown = sorted(set(parsed.keys()) - self.SUPPORTED_KEYS)
        if unknown:
            unknown_list = ", ".join(unknown)
            raise ConfigurationError(f"Unknown configuration keys: {unknown_list}")

        return self.coerce(parsed)

    def coerce(self, values: Dict[str, Any]) -> Dict[str, Any]:
        """Converts YAML scalars to the types the request expects."""
        coerced = dict(values)
        for key, value in values.items():
            if value is None:
                coerced.pop(key)
                continue
            if key == "manifest_file_mode":
                coerced[key] = parse_file_mode(value)
            elif key == "tool_timeout":
                coerced[key] = parse_timeout(value)
            elif key == "verbose":
                if not isinstance(value, bool):
                    raise ConfigurationError(f"verbose must be true or false, got {value!r}")
            elif isinstance(value, (dict, list)):
                raise ConfigurationError(f"{key} must be a single value, got {value!r}")
            else:
                coerced[key] = str(value)
        return coerced


def parse_file_mode(value: Any) -> int:
    """Accepts ``0o644``-style ints or octal strings such as ``"644"`` and ``"0755"``."""
    if isinstance(value, bool):
        raise ConfigurationError(f"Invalid file mode: {value!r}")
    if isinstance(value, int):
        return value

    text = str(value).strip().lower()
    if text.startswith("0o"):
        text = text[2:]
    try:
        return int(text, 8)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid file mode: {value!r}") from exc


def parse_timeout(value: Any) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ConfigurationError(f"Invalid tool timeout: {value!r}")
    try:
        timeout = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid tool timeout: {value!r}") from exc
    if timeout <= 0:
        raise ConfigurationError(f"Tool timeout must be positive, got {value!r}")
    return timeout
