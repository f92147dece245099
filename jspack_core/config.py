"""
Build configuration.

Settings come from `jspack.json` in the working directory, falling back to
`~/.jspack/config.json`, then to the defaults below. Command-line flags are
applied on top with BuildConfig.merged().
"""
import json
import os
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from jspack_core.errors import ConfigError
from jspack_core.resolver import DEFAULT_EXTENSIONS


CONFIG_FILE = "jspack.json"
USER_CONFIG_FILE = os.path.join("~", ".jspack", "config.json")


class BuildConfig(BaseModel):
    """Settings for a single build."""
    model_config = ConfigDict(extra='forbid')

    entry: Optional[str] = None
    output: str = os.path.join("dist", "bundle.js")
    root: str = "."
    extensions: List[str] = Field(default_factory=lambda: list(DEFAULT_EXTENSIONS))
    modules_dir: str = "node_modules"
    package_fields: List[str] = Field(default_factory=lambda: ["module", "main"])
    cache_modules: bool = False
    workers: int = Field(default=1, ge=1)

    def merged(self, **overrides):
        """Copy with every non-None override applied."""
        values = {k: v for k, v in overrides.items() if v is not None}
        try:
            return BuildConfig(**{**self.model_dump(), **values})
        except ValidationError as e:
            raise ConfigError(_describe(e))


def config_paths():
    return [CONFIG_FILE, os.path.expanduser(USER_CONFIG_FILE)]


def load_config(path=None):
    """
    Load the build configuration.

    Args:
        path: Explicit config file; must exist when given

    Raises:
        ConfigError: If the file is unreadable, not JSON, or has invalid settings
    """
    if path is not None:
        if not os.path.exists(path):
            raise ConfigError(f"Config file '{path}' not found", module=path)
        candidates = [path]
    else:
        candidates = [p for p in config_paths() if os.path.exists(p)][:1]

    if not candidates:
        return BuildConfig()

    config_path = candidates[0]
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except ValueError as e:
        raise ConfigError(f"Invalid JSON: {e}", module=config_path)

    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a JSON object", module=config_path)
    try:
        return BuildConfig(**data)
    except ValidationError as e:
        raise ConfigError(_describe(e), module=config_path)


def _describe(error):
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"])
        problems.append(f"{location}: {item['msg']}")
    return "; ".join(problems)
