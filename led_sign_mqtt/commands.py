"""Turn command line flags into a topic/payload pair for the sign."""

import re
from dataclasses import dataclass
from typing import List, Sequence

from .config import DeviceConfig
from .errors import InvalidBrightnessValue, InvalidPowerValue, MissingDirective

MESSAGE = 'message'
POWER = 'power'
BRIGHTNESS = 'brightness'

POWER_STATES = ('on', 'off')
BRIGHTNESS_MIN = 0
BRIGHTNESS_MAX = 15
# Leading integer, as parseInt reads it: optional sign, then hex (0x..) or decimal digits
BRIGHTNESS_PATTERN = re.compile(r"([+-]?)(?:0[xX]([0-9a-fA-F]+)|([0-9]+))")

QOS = 1


@dataclass(frozen=True)
class Directive:
    subject: str
    payload: str

    @classmethod
    def message(cls, text: str) -> 'Directive':
        return cls(MESSAGE, text)

    @classmethod
    def power(cls, state: str) -> 'Directive':
        normalized = state.lower()
        if normalized not in POWER_STATES:
            raise InvalidPowerValue(state)
        return cls(POWER, normalized)

    @classmethod
    def brightness(cls, level: str) -> 'Directive':
        match = BRIGHTNESS_PATTERN.match(level.lstrip())
        if match is None:
            raise InvalidBrightnessValue(level)
        sign, hex_digits, digits = match.groups()
        value = int(hex_digits, 16) if hex_digits else int(digits)
        if sign == '-':
            value = -value
        if not BRIGHTNESS_MIN <= value <= BRIGHTNESS_MAX:
            raise InvalidBrightnessValue(level)
        return cls(BRIGHTNESS, str(value))


@dataclass(frozen=True)
class PublishRequest:
    topic: str
    payload: str
    qos: int = QOS


FLAGS = {
    '-m': Directive.message,
    '-p': Directive.power,
    '-b': Directive.brightness,
}


def parse_directive(args: Sequence[str]) -> Directive:
    """Resolve the directive from the arguments, program name excluded.

    A flag only counts when it is followed by a non-empty value, which it
    consumes. Anything else is skipped. If several flags are given the last
    one wins, but an invalid value fails straight away.
    """
    directive = None
    i = 0
    while i < len(args):
        arg = args[i]
        build = FLAGS.get(arg)
        if build is not None and i + 1 < len(args) and args[i + 1]:
            directive = build(args[i + 1])
            i += 1
        i += 1

    if directive is None or not directive.payload:
        raise MissingDirective("no option given")
    return directive


def build_request(config: DeviceConfig, directive: Directive) -> PublishRequest:
    return PublishRequest(topic=config.topic_for(directive.subject), payload=directive.payload)


def usage_text(config: DeviceConfig, prog: str = 'led-sign-mqtt') -> str:
    lines: List[str] = [
        "",
        f"Usage: {prog} [OPTION]",
        "",
        "Configuration is loaded from .env file:",
        f"  MQTT_HOST     - MQTT broker URL (current: {config.mqtt_host})",
        f"  DEVICE_NAME   - Device name (current: {config.device_name})",
        f"  DEVICE_ID     - Device ID (current: {config.device_id})",
        "",
        "Options (use one):",
        f"  -m <message>    Send message (topic: {config.topic_for(MESSAGE)})",
        f"  -p <on|off>     Set power state (topic: {config.topic_for(POWER)})",
        f"  -b <0-15>       Set brightness level (topic: {config.topic_for(BRIGHTNESS)})",
        "",
        "Examples:",
        f'  {prog} -m "Hello World"',
        f"  {prog} -p on",
        f"  {prog} -b 10",
        "",
    ]
    return "\n".join(lines)
