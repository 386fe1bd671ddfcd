"""
Configuration persistence for the FlowX migration CLI.

Loads and saves EngineConfig in YAML or TOML format. A project may carry
its configuration as flowx-migrate.yaml, flowx-migrate.yml or
flowx-migrate.toml in its root; an explicit --config file takes precedence.
"""

from pathlib import Path
from typing import Any, Dict, Optional, Union

import toml
import yaml
from pydantic import ValidationError as PydanticValidationError
from rich import box
from rich.console import Console
from rich.table import Table

from flowx_migrate.core.exceptions import ConfigurationError
from flowx_migrate.models.config import EngineConfig


CONFIG_FILENAMES = (
    "flowx-migrate.yaml",
    "flowx-migrate.yml",
    "flowx-migrate.toml",
)


class ConfigurationPersistence:
    """Handles saving and loading engine configuration."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console(stderr=True)

    def find_configuration(self, project_path: Union[str, Path]) -> Optional[Path]:
        """Return the first project configuration file found, if any."""
        for name in CONFIG_FILENAMES:
            candidate = Path(project_path) / name
            if candidate.is_file():
                return candidate
        return None

    def load_for_project(
        self,
        project_path: Union[str, Path],
        config_file: Optional[Union[str, Path]] = None,
    ) -> EngineConfig:
        """
        Load the configuration that applies to a project.

        Args:
            project_path: Project root searched for a configuration file
            config_file: Explicit configuration file, used instead of the search

        Returns:
            EngineConfig (defaults when no file is found)
        """
        path = Path(config_file) if config_file else self.find_configuration(project_path)
        if path is None:
            return EngineConfig()
        return self.load_configuration(path)

    def load_configuration(self, file_path: Union[str, Path]) -> EngineConfig:
        """
        Load engine configuration from file.

        Raises:
            ConfigurationError: If the file is missing, unparsable or invalid
        """
        path = Path(file_path)

        if not path.exists():
            raise ConfigurationError(f"Configuration file not found: {file_path}")

        suffix = path.suffix.lower()
        if suffix not in ('.yaml', '.yml', '.toml'):
            raise ConfigurationError(f"Unsupported file format: {path.suffix}")

        try:
            with open(path, 'r', encoding='utf-8') as f:
                if suffix == '.toml':
                    config_dict = toml.load(f)
                else:
                    config_dict = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML format: {e}")
        except toml.TomlDecodeError as e:
            raise ConfigurationError(f"Invalid TOML format: {e}")
        except OSError as e:
            raise ConfigurationError(f"Cannot read configuration: {e}")

        if config_dict is None:
            return EngineConfig()
        if not isinstance(config_dict, dict):
            raise ConfigurationError(f"Configuration must be a mapping: {file_path}")

        return self._dict_to_config(config_dict, path)

    def save_configuration(self, config: EngineConfig, file_path: Union[str, Path]) -> Path:
        """
        Save engine configuration; the format follows the file extension.

        Raises:
            ConfigurationError: If the format is unsupported or the file cannot be written
        """
        path = Path(file_path)
        suffix = path.suffix.lower()
        if suffix not in ('.yaml', '.yml', '.toml'):
            raise ConfigurationError(f"Unsupported file format: {path.suffix}. Use .yaml or .toml")

        config_dict = self._config_to_dict(config)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, 'w', encoding='utf-8') as f:
                if suffix == '.toml':
                    toml.dump(config_dict, f)
                else:
                    yaml.dump(config_dict, f, default_flow_style=False, indent=2, sort_keys=False)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration: {e}")

        return path

    def show_configuration_summary(self, config: EngineConfig) -> None:
        """Display the effective configuration."""
        table = Table(title="Engine Configuration", box=box.ROUNDED)
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="white")

        table.add_row("Backup directory", config.backup_dir)
        table.add_row("Strategy", config.strategy.value)
        table.add_row("Ruleset", config.ruleset)
        for kind, target in config.merge_rules.items():
            table.add_row(f"Merge rule ({kind.value})", target)
        table.add_row("Log level", config.log_level)
        table.add_row("Log file", config.log_file or "-")

        self.console.print(table)

    def _config_to_dict(self, config: EngineConfig) -> Dict[str, Any]:
        # TOML has no null
        return config.model_dump(mode="json", exclude_none=True)

    def _dict_to_config(self, config_dict: Dict[str, Any], path: Path) -> EngineConfig:
        try:
            return EngineConfig(**config_dict)
        except PydanticValidationError as e:
            errors = "; ".join(
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in e.errors()
            )
            raise ConfigurationError(
                f"Invalid configuration in {path}: {errors}",
                details={"file": str(path)},
            )
