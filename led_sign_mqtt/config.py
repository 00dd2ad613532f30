"""Load device and broker settings from an optional .env file."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional

logger = logging.getLogger(__name__)

# .env lives next to the executable module
ENV_PATH = Path(__file__).resolve().parent / ".env"

DEFAULTS = {
    'MQTT_HOST': 'mqtt://localhost:1883',
    'DEVICE_NAME': 'led-sign',
    'DEVICE_ID': '2FE598',
}

DEFAULT_KEEPALIVE = 60


def parse_env_lines(lines: Iterable[str]) -> Dict[str, str]:
    """Parse key=value lines, later duplicates win.

    Blank lines and lines starting with '#' are skipped. Only the first '='
    separates key from value, so values may contain '=' themselves.
    """
    values = {}
    for line in lines:
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        key = key.strip()
        if not key:
            continue
        values[key] = value.strip()
    return values


@dataclass(frozen=True)
class DeviceConfig:
    """Read-only view over the merged settings"""

    values: Mapping[str, str] = field(default_factory=lambda: MappingProxyType(dict(DEFAULTS)))

    def __post_init__(self):
        # Copy so later changes to the caller's dict don't leak in
        object.__setattr__(self, 'values', MappingProxyType(dict(self.values)))

    @classmethod
    def from_entries(cls, entries: Mapping[str, str]) -> 'DeviceConfig':
        merged = dict(DEFAULTS)
        merged.update(entries)
        return cls(merged)

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self.values.get(key, default)

    @property
    def mqtt_host(self) -> str:
        return self.values['MQTT_HOST']

    @property
    def device_name(self) -> str:
        return self.values['DEVICE_NAME']

    @property
    def device_id(self) -> str:
        return self.values['DEVICE_ID']

    @property
    def keepalive(self) -> int:
        raw = self.values.get('MQTT_KEEPALIVE')
        if not raw:
            return DEFAULT_KEEPALIVE
        try:
            return int(raw)
        except ValueError:
            logger.warning(f"Invalid MQTT_KEEPALIVE {raw!r}, using {DEFAULT_KEEPALIVE}s")
            return DEFAULT_KEEPALIVE

    def topic_for(self, subject: str) -> str:
        return f"{self.device_name}/{self.device_id}/{subject}"


def load_config(env_path: Path = ENV_PATH) -> DeviceConfig:
    """Load configuration from a .env file

    Args:
        env_path: Path to the .env file

    Returns:
        DeviceConfig with defaults overridden by the file entries, or plain
        defaults if the file could not be read
    """
    try:
        text = Path(env_path).read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError) as e:
        logger.debug(f"Failed to read {env_path}: {e}")
        logger.warning("Could not load .env file, using defaults")
        return DeviceConfig.from_entries({})

    entries = parse_env_lines(text.splitlines())
    logger.debug(f"Loaded {len(entries)} setting(s) from {env_path}")
    return DeviceConfig.from_entries(entries)
