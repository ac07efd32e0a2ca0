"""
Invoice Composer settings.

Every tunable the composer uses lives in ``settings.yaml``: the storage
key names, the auto-save delay, currency symbols and minor units, logo
presets and upload limits, PDF page geometry and logging. Modules read
them through ``get_config("section.key", default)``.

Set ``INVOICE_COMPOSER_CONFIG`` (or pass ``--config`` to the CLI) to load
a different file.
"""

import os
import yaml
from pathlib import Path
from typing import Any, Dict, Optional

# Environment variable that points to an alternative settings file
CONFIG_ENV_VAR = "INVOICE_COMPOSER_CONFIG"


class ConfigurationManager:
    """
    Process-wide holder of the loaded settings.

    The first construction decides which file is read; later calls return
    the same instance until ``reset()``.

    Attributes:
        config_path (Path): Settings file that was loaded.

    Example:
        >>> settings = ConfigurationManager()
        >>> settings.get("autosave.delay_seconds")
        2.0
        >>> settings.get("export.pdf.margin_mm")
        20
    """

    _instance: Optional['ConfigurationManager'] = None
    _config: Dict[str, Any] = {}

    def __new__(cls, config_path: Optional[str] = None) -> 'ConfigurationManager':
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, config_path: Optional[str] = None) -> None:
        """
        Args:
            config_path: Settings file. Defaults to $INVOICE_COMPOSER_CONFIG,
                         then the bundled config/settings.yaml.
        """
        if self._initialized:
            return

        config_path = config_path or os.environ.get(CONFIG_ENV_VAR)
        if config_path:
            self.config_path = Path(config_path)
        else:
            self.config_path = Path(__file__).parent / "settings.yaml"

        self._load_config()
        self._initialized = True

    def _load_config(self) -> None:
        """
        Read the YAML file.

        Raises:
            FileNotFoundError: If the settings file is missing.
            yaml.YAMLError: If it is not valid YAML.
        """
        if not self.config_path.exists():
            raise FileNotFoundError(f"Settings file not found: {self.config_path}")

        with open(self.config_path, 'r', encoding='utf-8') as f:
            self._config = yaml.safe_load(f) or {}

        self._resolve_paths()

    def _resolve_paths(self) -> None:
        # Relative output and database paths are anchored at the project root
        project_root = Path(__file__).parent.parent
        for key, value in (self._config.get('paths') or {}).items():
            if value and not Path(value).is_absolute():
                self._config['paths'][key] = str(project_root / value)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Look up a dotted key such as ``"storage.keys.company_profile"``.

        Returns ``default`` when any segment is missing.

        Example:
            >>> settings.get("imaging.upload.max_bytes")
            5242880
            >>> settings.get("export.pdf.bleed_mm", 0)
            0
        """
        value = self._config
        try:
            for part in key.split('.'):
                value = value[part]
        except (KeyError, TypeError):
            return default
        return value

    @classmethod
    def reset(cls) -> None:
        """Forget the loaded settings so the next access reads the file again."""
        cls._instance = None


def get_config(key: str, default: Any = None) -> Any:
    """Shortcut for ``ConfigurationManager().get(key, default)``."""
    return ConfigurationManager().get(key, default)


__all__ = ['ConfigurationManager', 'get_config', 'CONFIG_ENV_VAR']
