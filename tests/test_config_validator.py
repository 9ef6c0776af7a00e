"""
Unit tests for harness configuration validation and settings loading.
"""

import copy
import os
import tempfile
import unittest
from pathlib import Path

import yaml

from orchestration.settings import HarnessSettings, load_harness_settings, DEFAULT_CONFIG_PATH, CONFIG_ENV_VAR
from validation.config_validator import (
    ConfigValidationError,
    validate_harness_config,
    validate_orchestrator_config,
    validate_generator_config,
    validate_network_config,
    validate_isolated_environment,
    load_yaml_config,
)


def _valid_config():
    with open(DEFAULT_CONFIG_PATH, 'r', encoding='utf-8') as f:
        return yaml.safe_load(f)


class TestConfigValidator(unittest.TestCase):
    """Test configuration validation functions."""

    def setUp(self):
        self.config = _valid_config()

    def test_shipped_config_is_valid(self):
        validate_harness_config(self.config)

    def test_missing_section(self):
        del self.config['network']
        with self.assertRaises(ConfigValidationError) as ctx:
            validate_harness_config(self.config)
        self.assertIn("network", str(ctx.exception))

    def test_non_mapping_config(self):
        with self.assertRaises(ConfigValidationError):
            validate_harness_config(["orchestrator"])

    def test_orchestrator_timeout_must_be_positive(self):
        with self.assertRaises(ConfigValidationError):
            validate_orchestrator_config({'timeout': 0, 'settle_delay': 0})
        with self.assertRaises(ConfigValidationError):
            validate_orchestrator_config({'timeout': "30", 'settle_delay': 0.1})
        with self.assertRaises(ConfigValidationError):
            validate_orchestrator_config({'settle_delay': 0.1})

    def test_settle_delay_shorter_than_timeout(self):
        with self.assertRaises(ConfigValidationError):
            validate_orchestrator_config({'timeout': 1.0, 'settle_delay': 1.0})
        validate_orchestrator_config({'timeout': 1.0, 'settle_delay': 0.0})

    def test_generator_seeds(self):
        validate_generator_config({'gex_seed': 0, 'webhook_seed': 2 ** 32 - 1})
        for bad in (-1, 2 ** 32, 1.5, True, None):
            with self.assertRaises(ConfigValidationError):
                validate_generator_config({'gex_seed': bad, 'webhook_seed': 1})

    def test_broker_cannot_be_allow_listed(self):
        network = copy.deepcopy(self.config['network'])
        network['allowed_hosts'].append('API.BROKER.COM')
        with self.assertRaises(ConfigValidationError) as ctx:
            validate_network_config(network)
        self.assertIn("api.broker.com", str(ctx.exception))

    def test_allowed_hosts_must_be_strings(self):
        with self.assertRaises(ConfigValidationError):
            validate_network_config({'allowed_hosts': "localhost"})
        with self.assertRaises(ConfigValidationError):
            validate_network_config({'allowed_hosts': ["localhost", ""]})

    def test_service_names_required(self):
        with self.assertRaises(ConfigValidationError):
            validate_network_config({'allowed_hosts': ["localhost"], 'service_hosts': {'a.com': ''}})

    def test_real_credentials_rejected(self):
        env = dict(self.config['isolated_environment'], BROKER_API_KEY='PKLIVE123')
        with self.assertRaises(ConfigValidationError) as ctx:
            validate_isolated_environment(env)
        self.assertIn("BROKER_API_KEY", str(ctx.exception))

    def test_required_isolated_keys(self):
        env = dict(self.config['isolated_environment'])
        del env['DATABASE_URL']
        with self.assertRaises(ConfigValidationError):
            validate_isolated_environment(env)

    def test_nested_isolated_value_rejected(self):
        env = dict(self.config['isolated_environment'], EXTRA={'a': 1})
        with self.assertRaises(ConfigValidationError):
            validate_isolated_environment(env)


class TestSettingsLoading(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        self.saved_env = os.environ.pop(CONFIG_ENV_VAR, None)
        self.addCleanup(self._restore_env)

    def _restore_env(self):
        os.environ.pop(CONFIG_ENV_VAR, None)
        if self.saved_env is not None:
            os.environ[CONFIG_ENV_VAR] = self.saved_env

    def _write(self, data, name="harness.yaml"):
        path = Path(self.tmpdir.name) / name
        with open(path, 'w', encoding='utf-8') as f:
            yaml.safe_dump(data, f)
        return path

    def test_default_file_loads(self):
        settings = load_harness_settings()
        self.assertEqual(settings.timeout, 30.0)
        self.assertEqual(settings.gex_seed, 54321)
        self.assertIn('api.broker.com', settings.blocked_hosts)
        self.assertEqual(settings.service_hosts['api.twelvedata.com'], 'TwelveData')

    def test_explicit_path(self):
        config = _valid_config()
        config['orchestrator']['timeout'] = 5.0
        config['generators']['gex_seed'] = 7
        settings = load_harness_settings(str(self._write(config)))
        self.assertEqual(settings.timeout, 5.0)
        self.assertEqual(settings.gex_seed, 7)

    def test_env_var_path(self):
        config = _valid_config()
        config['orchestrator']['settle_delay'] = 0.0
        os.environ[CONFIG_ENV_VAR] = str(self._write(config))
        self.assertEqual(load_harness_settings().settle_delay, 0.0)

    def test_missing_explicit_file(self):
        with self.assertRaises(ConfigValidationError):
            load_harness_settings(str(Path(self.tmpdir.name) / "missing.yaml"))

    def test_invalid_yaml(self):
        path = Path(self.tmpdir.name) / "bad.yaml"
        path.write_text("orchestrator: [unclosed\n", encoding='utf-8')
        with self.assertRaises(ConfigValidationError):
            load_yaml_config(path)

    def test_invalid_settings_rejected(self):
        config = _valid_config()
        config['isolated_environment']['ALPACA_API_KEY'] = 'live-key'
        with self.assertRaises(ConfigValidationError):
            HarnessSettings.from_dict(config)

    def test_builtin_defaults_match_shipped_file(self):
        self.assertEqual(HarnessSettings.from_dict(_valid_config()), HarnessSettings())


if __name__ == '__main__':
    unittest.main()
