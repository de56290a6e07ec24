import os

import yaml

from fincast.core.domain.settings import EngineSettings

# Environment variable -> settings field
ENV_OVERRIDES = {
    "FINCAST_REDIS_URL": "redis_url",
    "FINCAST_CONFIGS_FILE": "configs_file",
    "FINCAST_TRANSACTIONS_FILE": "transactions_file",
    "FINCAST_RESULTS_DIR": "results_dir",
    "FINCAST_MAX_WORKERS": "max_workers",
    "FINCAST_LOG_LEVEL": "log_level",
}


def load_settings(path: str | None = None) -> EngineSettings:
    """
    Load engine settings from a YAML file.
    Environment variables take precedence over the file, which takes
    precedence over defaults.

    Args:
        path: Path to config.yaml. Defaults to FINCAST_CONFIG_FILE env var or "config.yaml".
    """
    if path is None:
        path = os.getenv("FINCAST_CONFIG_FILE", "config.yaml")

    config_data = {}

    if os.path.exists(path):
        try:
            with open(path, "r") as f:
                config_data = yaml.safe_load(f) or {}
        except Exception as e:
            raise RuntimeError(f"Failed to load configuration from {path}: {e}")

    for env_var, field_name in ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value:
            config_data[field_name] = value

    return EngineSettings(**config_data)
