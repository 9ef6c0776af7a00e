"""
Configuration Validator

Validates the harness settings file (config/harness.yaml) before any test
context is created. Unsafe settings, such as allow-listing the broker host,
are rejected outright.
"""

import logging
import sys
from pathlib import Path
from typing import Dict, Any

import yaml

from harness_errors import HarnessError

logger = logging.getLogger(__name__)

REQUIRED_SECTIONS = ["orchestrator", "generators", "network", "isolated_environment"]
REQUIRED_ISOLATED_KEYS = ["DATABASE_URL", "BROKER_API_KEY"]


class ConfigValidationError(HarnessError):
    """Raised when configuration validation fails."""
    pass


def _require_number(section: Dict[str, Any], key: str, where: str,
                    minimum: float = 0.0, strict: bool = False) -> None:
    value = section.get(key)
    if value is None:
        raise ConfigValidationError(f"Missing required field: '{where}.{key}'")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigValidationError(
            f"'{where}.{key}' must be a number, got {type(value).__name__}"
        )
    if strict and value <= minimum:
        raise ConfigValidationError(f"'{where}.{key}' must be > {minimum}, got {value}")
    if not strict and value < minimum:
        raise ConfigValidationError(f"'{where}.{key}' must be >= {minimum}, got {value}")


def validate_orchestrator_config(cfg: Dict[str, Any]) -> None:
    """
    Validate the orchestrator section.

    Raises:
        ConfigValidationError: If timeout/settle_delay are missing or invalid
    """
    _require_number(cfg, "timeout", "orchestrator", minimum=0.0, strict=True)
    _require_number(cfg, "settle_delay", "orchestrator", minimum=0.0)

    if cfg["settle_delay"] >= cfg["timeout"]:
        raise ConfigValidationError(
            f"orchestrator.settle_delay ({cfg['settle_delay']}) must be shorter than "
            f"orchestrator.timeout ({cfg['timeout']})"
        )

    if cfg.get("overlay_process_environment", False):
        logger.warning(
            "overlay_process_environment is enabled: contexts will write into os.environ "
            "and must not run concurrently."
        )


def validate_generator_config(cfg: Dict[str, Any]) -> None:
    for key in ("gex_seed", "webhook_seed"):
        value = cfg.get(key)
        if value is None:
            raise ConfigValidationError(f"Missing required field: 'generators.{key}'")
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigValidationError(f"'generators.{key}' must be an integer, got {value!r}")
        if not 0 <= value < 2 ** 32:
            raise ConfigValidationError(f"'generators.{key}' must be a 32-bit seed, got {value}")


def validate_network_config(cfg: Dict[str, Any]) -> None:
    """
    Validate the network section.

    Raises:
        ConfigValidationError: If a blocked host is also allow-listed
    """
    allowed = cfg.get("allowed_hosts")
    if not isinstance(allowed, list) or not all(isinstance(h, str) and h for h in allowed):
        raise ConfigValidationError("'network.allowed_hosts' must be a list of host names")

    blocked = cfg.get("blocked_hosts", [])
    if not isinstance(blocked, list):
        raise ConfigValidationError("'network.blocked_hosts' must be a list of host names")

    overlap = {h.lower() for h in allowed} & {h.lower() for h in blocked}
    if overlap:
        raise ConfigValidationError(
            f"Hosts cannot be both allowed and blocked: {', '.join(sorted(overlap))}"
        )

    services = cfg.get("service_hosts", {})
    if not isinstance(services, dict):
        raise ConfigValidationError("'network.service_hosts' must map host -> service name")
    for host, name in services.items():
        if not isinstance(name, str) or not name:
            raise ConfigValidationError(f"Service name for host '{host}' must be a non-empty string")

    external_allowed = [h for h in allowed if h.lower() in {s.lower() for s in services}]
    if external_allowed:
        logger.warning(
            f"External service hosts are allow-listed: {', '.join(external_allowed)}. "
            "Tests will reach real endpoints."
        )


def validate_isolated_environment(cfg: Dict[str, Any]) -> None:
    for key in REQUIRED_ISOLATED_KEYS:
        if key not in cfg:
            raise ConfigValidationError(f"Missing isolated environment entry: '{key}'")

    for key, value in cfg.items():
        if not isinstance(value, (str, int, float)) or isinstance(value, bool):
            raise ConfigValidationError(
                f"Isolated environment entry '{key}' must be a scalar, got {type(value).__name__}"
            )
        if key.endswith("_API_KEY") and not str(value).startswith("TEST_"):
            raise ConfigValidationError(
                f"Isolated credential '{key}' must be a TEST_ placeholder, got a real-looking value"
            )


def validate_harness_config(cfg: Dict[str, Any]) -> None:
    """
    Validate a parsed harness.yaml.

    Raises:
        ConfigValidationError: If any section is missing or invalid
    """
    if not isinstance(cfg, dict):
        raise ConfigValidationError(f"Harness config must be a mapping, got {type(cfg).__name__}")

    for section in REQUIRED_SECTIONS:
        if not isinstance(cfg.get(section), dict):
            raise ConfigValidationError(f"Missing required section: '{section}'")

    validate_orchestrator_config(cfg["orchestrator"])
    validate_generator_config(cfg["generators"])
    validate_network_config(cfg["network"])
    validate_isolated_environment(cfg["isolated_environment"])

    logger.info("[OK] Harness config validated")


def load_yaml_config(path) -> Dict[str, Any]:
    """
    Load YAML configuration file.

    Raises:
        ConfigValidationError: If file cannot be loaded
    """
    config_file = Path(path)

    if not config_file.exists():
        raise ConfigValidationError(f"Config file not found: {path}")

    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigValidationError(f"Invalid YAML in {path}: {e}")
    except OSError as e:
        raise ConfigValidationError(f"Error loading {path}: {e}")


if __name__ == "__main__":
    """
    Standalone config validation script.

    Usage:
        python -m validation.config_validator [path/to/harness.yaml]
    """
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s'
    )

    target = sys.argv[1] if len(sys.argv) > 1 else "config/harness.yaml"
    try:
        validate_harness_config(load_yaml_config(target))
        print(f"\n[OK] {target} is valid.")
    except ConfigValidationError as e:
        print(f"\n[FAIL] Configuration validation failed: {e}")
        sys.exit(1)
