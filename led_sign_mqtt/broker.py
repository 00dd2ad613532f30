import logging
from dataclasses import dataclass, replace
from typing import Optional
from urllib.parse import unquote, urlsplit

from .config import DeviceConfig
from .errors import BrokerUrlError

logger = logging.getLogger(__name__)

# scheme -> (transport, tls, default port)
SCHEMES = {
    'mqtt': ('tcp', False, 1883),
    'tcp': ('tcp', False, 1883),
    'mqtts': ('tcp', True, 8883),
    'ssl': ('tcp', True, 8883),
    'tls': ('tcp', True, 8883),
    'ws': ('websockets', False, 80),
    'wss': ('websockets', True, 443),
}


@dataclass(frozen=True)
class BrokerAddress:
    url: str
    host: str
    port: int
    transport: str = 'tcp'
    tls: bool = False
    path: str = '/mqtt'
    username: Optional[str] = None
    password: Optional[str] = None


def parse_broker_url(url: str) -> BrokerAddress:
    """Turn an MQTT_HOST value such as mqtt://host:1883 into a BrokerAddress.

    A value without a scheme is treated as mqtt://.
    """
    raw = url.strip()
    if not raw:
        raise BrokerUrlError("MQTT_HOST is empty")
    if "://" not in raw:
        raw = f"mqtt://{raw}"

    parts = urlsplit(raw)
    scheme = parts.scheme.lower()
    if scheme not in SCHEMES:
        raise BrokerUrlError(f"Unsupported protocol {parts.scheme!r} in {url}")
    transport, tls, default_port = SCHEMES[scheme]

    try:
        port = parts.port
    except ValueError as e:
        raise BrokerUrlError(f"Invalid port in {url}: {e}") from e
    if not parts.hostname:
        raise BrokerUrlError(f"No host in {url}")

    path = parts.path or '/mqtt'
    if parts.query:
        path = f"{path}?{parts.query}"

    return BrokerAddress(
        url=url,
        host=parts.hostname,
        port=port or default_port,
        transport=transport,
        tls=tls,
        path=path,
        username=unquote(parts.username) if parts.username else None,
        password=unquote(parts.password) if parts.password else None,
    )


def broker_from_config(config: DeviceConfig) -> BrokerAddress:
    """Broker address from MQTT_HOST, credentials from MQTT_USERNAME/MQTT_PASSWORD as fallback"""
    broker = parse_broker_url(config.mqtt_host)
    if broker.username is None and config.get('MQTT_USERNAME'):
        broker = replace(
            broker,
            username=config.get('MQTT_USERNAME'),
            password=config.get('MQTT_PASSWORD') or None,
        )
    if broker.username:
        logger.debug(f"Authenticating to {broker.host} as {broker.username}")
    return broker
