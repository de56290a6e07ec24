"""
ConfigStore Port - Interface for loading and persisting forecast configurations.

This port defines the contract for reading and writing forecast configs.
Implementations can be file-based (YAML) or database-backed.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fincast.core.domain.config import ForecastConfig


class ConfigStore(ABC):
    """
    Abstract interface for forecast configuration storage.

    Implementations:
    - YamlConfigStore: File-based configuration
    """

    @abstractmethod
    async def list_configs(self, user_id: int | None = None) -> list["ForecastConfig"]:
        """
        List configured forecasts.

        Args:
            user_id: Restrict to one user's configs when given

        Returns:
            List of ForecastConfig objects
        """
        ...

    @abstractmethod
    async def get_config(self, config_id: int) -> "ForecastConfig | None":
        """
        Get a specific config by id.

        Returns:
            ForecastConfig if found, None otherwise
        """
        ...

    @abstractmethod
    async def save_config(self, config: "ForecastConfig") -> None:
        """Save or update a config."""
        ...

    @abstractmethod
    async def delete_config(self, config_id: int) -> bool:
        """
        Delete a config by id.

        Returns:
            True if deleted, False if not found
        """
        ...
