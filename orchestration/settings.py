"""
Harness Settings

Loads config/harness.yaml into a HarnessSettings object. Every field has a
built-in default, so the orchestrator works without a settings file.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from orchestration.environment import ISOLATED_ENV_DEFAULTS
from orchestration.interceptors import (
    DEFAULT_ALLOWED_HOSTS, DEFAULT_BLOCKED_HOSTS, DEFAULT_SERVICE_HOSTS
)
from synthetic.gex_generator import DEFAULT_GEX_SEED
from synthetic.webhook_generator import DEFAULT_WEBHOOK_SEED
from validation.config_validator import load_yaml_config, validate_harness_config

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "config" / "harness.yaml"
CONFIG_ENV_VAR = "HARNESS_CONFIG"


@dataclass
class HarnessSettings:
    """Harness-wide defaults; TestConfig values override per context."""
    timeout: float = 30.0
    settle_delay: float = 0.1
    overlay_process_environment: bool = False
    gex_seed: int = DEFAULT_GEX_SEED
    webhook_seed: int = DEFAULT_WEBHOOK_SEED
    allowed_hosts: List[str] = field(default_factory=lambda: list(DEFAULT_ALLOWED_HOSTS))
    blocked_hosts: List[str] = field(default_factory=lambda: list(DEFAULT_BLOCKED_HOSTS))
    service_hosts: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_SERVICE_HOSTS))
    isolated_environment: Dict[str, str] = field(default_factory=lambda: dict(ISOLATED_ENV_DEFAULTS))

    @classmethod
    def from_dict(cls, cfg: Dict) -> 'HarnessSettings':
        """Build settings from a validated harness.yaml mapping."""
        validate_harness_config(cfg)
        orchestrator = cfg["orchestrator"]
        generators = cfg["generators"]
        network = cfg["network"]

        return cls(
            timeout=float(orchestrator["timeout"]),
            settle_delay=float(orchestrator["settle_delay"]),
            overlay_process_environment=bool(orchestrator.get("overlay_process_environment", False)),
            gex_seed=generators["gex_seed"],
            webhook_seed=generators["webhook_seed"],
            allowed_hosts=list(network["allowed_hosts"]),
            blocked_hosts=list(network.get("blocked_hosts", [])),
            service_hosts=dict(network.get("service_hosts", {})),
            isolated_environment={k: str(v) for k, v in cfg["isolated_environment"].items()},
        )


def load_harness_settings(path: Optional[str] = None) -> HarnessSettings:
    """
    Load harness settings.

    Resolution order: explicit path, $HARNESS_CONFIG, config/harness.yaml.
    A missing default file yields built-in defaults; a missing explicit
    file is an error.

    Raises:
        ConfigValidationError: If the file is missing (explicit path) or invalid
    """
    explicit = path or os.getenv(CONFIG_ENV_VAR)
    config_path = Path(explicit) if explicit else DEFAULT_CONFIG_PATH

    if not explicit and not config_path.exists():
        logger.info(f"No harness config at {config_path}, using defaults")
        return HarnessSettings()

    settings = HarnessSettings.from_dict(load_yaml_config(config_path))
    logger.info(f"Loaded harness settings from {config_path}")
    return settings
