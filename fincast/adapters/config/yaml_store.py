"""
YAML Config Store Adapter - File-based forecast configuration.

Loads forecast config definitions from a YAML file with a top-level
``configs`` list.
"""

import logging
from pathlib import Path

import yaml

from fincast.core.domain.config import ForecastConfig
from fincast.core.domain.errors import ValidationError
from fincast.core.ports.config_store import ConfigStore

logger = logging.getLogger(__name__)


class YamlConfigStore(ConfigStore):
    """
    Config store that reads forecast configs from a YAML file.
    """

    def __init__(self, config_path: str | Path):
        self.config_path = Path(config_path)
        self._configs: dict[int, ForecastConfig] = {}
        self._loaded = False

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self._load_configs()
            self._loaded = True

    def _load_configs(self) -> None:
        if not self.config_path.exists():
            logger.warning(f"Config file {self.config_path} not found, starting empty")
            return

        with open(self.config_path) as f:
            data = yaml.safe_load(f) or {}

        for config_data in data.get("configs", []):
            try:
                config = ForecastConfig(**config_data)
            except (ValidationError, TypeError) as e:
                logger.error(f"Skipping invalid forecast config: {e}")
                continue
            self._configs[config.id] = config

        logger.info(f"Loaded {len(self._configs)} forecast configs from {self.config_path}")

    async def list_configs(self, user_id: int | None = None) -> list[ForecastConfig]:
        self._ensure_loaded()
        configs = sorted(self._configs.values(), key=lambda c: c.id)
        if user_id is None:
            return configs
        return [c for c in configs if c.user_id == user_id]

    async def get_config(self, config_id: int) -> ForecastConfig | None:
        self._ensure_loaded()
        return self._configs.get(config_id)

    async def save_config(self, config: ForecastConfig) -> None:
        self._ensure_loaded()
        self._configs[config.id] = config
        await self._save_to_file()

    async def delete_config(self, config_id: int) -> bool:
        self._ensure_loaded()
        if config_id in self._configs:
            del self._configs[config_id]
            await self._save_to_file()
            return True
        return False

    async def _save_to_file(self) -> None:
        configs_data = [
            c.model_dump(mode="json", exclude_defaults=True)
            for c in sorted(self._configs.values(), key=lambda c: c.id)
        ]

        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, "w") as f:
            yaml.safe_dump({"configs": configs_data}, f, default_flow_style=False, sort_keys=False)
