"""
Test suite for the .env configuration loader in config.py
"""

import os
import sys
import tempfile
import unittest
from dataclasses import FrozenInstanceError
from pathlib import Path

# Add the repository root to Python path for importing the package
sys.path.insert(0, str(Path(__file__).parent.parent))

from led_sign_mqtt.config import DEFAULTS, DeviceConfig, load_config, parse_env_lines


class TestParseEnvLines(unittest.TestCase):
    """Test cases for parse_env_lines"""

    def test_basic_pairs(self):
        """Key/value pairs are trimmed"""
        values = parse_env_lines(["MQTT_HOST = mqtt://broker:1883 ", "  DEVICE_ID=ABC"])
        self.assertEqual(values, {'MQTT_HOST': 'mqtt://broker:1883', 'DEVICE_ID': 'ABC'})

    def test_comments_and_blank_lines_skipped(self):
        values = parse_env_lines(["# DEVICE_NAME=hidden", "", "   ", "  # indented comment", "DEVICE_NAME=sign"])
        self.assertEqual(values, {'DEVICE_NAME': 'sign'})

    def test_value_keeps_later_equals(self):
        """Only the first '=' splits key from value"""
        self.assertEqual(parse_env_lines(["FOO=bar=baz"]), {'FOO': 'bar=baz'})

    def test_later_duplicates_win(self):
        values = parse_env_lines(["DEVICE_ID=first", "DEVICE_ID=second"])
        self.assertEqual(values['DEVICE_ID'], 'second')

    def test_lines_without_key_or_separator_ignored(self):
        self.assertEqual(parse_env_lines(["JUSTAKEY", "=value", "EMPTY="]), {'EMPTY': ''})


class TestLoadConfig(unittest.TestCase):
    """Test cases for load_config"""

    def setUp(self):
        """Create a temporary .env file for each test"""
        self.temp_env = tempfile.NamedTemporaryFile(mode='w', delete=False, suffix='.env', encoding='utf-8')
        self.env_path = Path(self.temp_env.name)

    def tearDown(self):
        self.temp_env.close()
        if os.path.exists(self.env_path):
            os.unlink(self.env_path)

    def write_env(self, text):
        self.temp_env.write(text)
        self.temp_env.close()

    def test_file_overrides_defaults(self):
        self.write_env("# sign settings\nDEVICE_NAME=kitchen-sign\nDEVICE_ID=ABC123\nEXTRA=1\n")
        config = load_config(self.env_path)

        self.assertEqual(config.mqtt_host, DEFAULTS['MQTT_HOST'])
        self.assertEqual(config.device_name, 'kitchen-sign')
        self.assertEqual(config.device_id, 'ABC123')
        self.assertEqual(config.get('EXTRA'), '1')

    def test_missing_file_uses_defaults_with_warning(self):
        self.temp_env.close()
        os.unlink(self.env_path)

        with self.assertLogs('led_sign_mqtt.config', level='WARNING') as logs:
            config = load_config(self.env_path)

        self.assertEqual(dict(config.values), DEFAULTS)
        self.assertIn("Could not load .env file, using defaults", logs.output[0])

    def test_directory_instead_of_file_uses_defaults(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with self.assertLogs('led_sign_mqtt.config', level='WARNING'):
                config = load_config(Path(tmpdir))
        self.assertEqual(dict(config.values), DEFAULTS)


class TestDeviceConfig(unittest.TestCase):
    """Test cases for DeviceConfig"""

    def test_defaults(self):
        config = DeviceConfig()
        self.assertEqual(config.mqtt_host, 'mqtt://localhost:1883')
        self.assertEqual(config.device_name, 'led-sign')
        self.assertEqual(config.device_id, '2FE598')

    def test_topic_for(self):
        config = DeviceConfig.from_entries({'DEVICE_NAME': 'porch', 'DEVICE_ID': '01'})
        self.assertEqual(config.topic_for('power'), 'porch/01/power')

    def test_is_read_only(self):
        config = DeviceConfig()
        with self.assertRaises(FrozenInstanceError):
            config.values = {}
        with self.assertRaises(TypeError):
            config.values['DEVICE_ID'] = 'changed'

    def test_source_dict_changes_do_not_leak(self):
        entries = {'DEVICE_ID': 'ABC'}
        config = DeviceConfig.from_entries(entries)
        entries['DEVICE_ID'] = 'XYZ'
        self.assertEqual(config.device_id, 'ABC')

    def test_keepalive(self):
        self.assertEqual(DeviceConfig().keepalive, 60)
        self.assertEqual(DeviceConfig.from_entries({'MQTT_KEEPALIVE': '30'}).keepalive, 30)
        with self.assertLogs('led_sign_mqtt.config', level='WARNING'):
            self.assertEqual(DeviceConfig.from_entries({'MQTT_KEEPALIVE': 'soon'}).keepalive, 60)


if __name__ == '__main__':
    unittest.main()
