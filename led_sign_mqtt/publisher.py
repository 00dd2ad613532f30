"""One-shot MQTT publish with a hard end-to-end timeout.

The session moves through CONNECTING -> CONNECTED -> PUBLISHING -> DONE, or
ends in ERROR / TIMED_OUT from any non-terminal state. paho-mqtt callbacks
run on the network thread and the timeout runs on a timer thread, so every
transition goes through one lock and only the first terminal state sticks.
"""

import logging
import threading
import time
from enum import Enum
from typing import Callable, Optional

import paho.mqtt.client as mqtt

from .broker import BrokerAddress
from .commands import PublishRequest
from .config import DEFAULT_KEEPALIVE

logger = logging.getLogger(__name__)

TIMEOUT_SECONDS = 10.0
# how often run() checks for an abort requested by a signal handler
POLL_INTERVAL = 0.1


class PublishState(Enum):
    CONNECTING = 'connecting'
    CONNECTED = 'connected'
    PUBLISHING = 'publishing'
    DONE = 'done'
    ERROR = 'error'
    TIMED_OUT = 'timed_out'


TERMINAL_STATES = frozenset({PublishState.DONE, PublishState.ERROR, PublishState.TIMED_OUT})


class PublishSession:
    def __init__(self, request: PublishRequest, broker: BrokerAddress,
                 timeout: Optional[float] = None, keepalive: int = DEFAULT_KEEPALIVE,
                 client_factory: Optional[Callable[..., mqtt.Client]] = None,
                 started_at: Optional[float] = None):
        self.request = request
        self.broker = broker
        self.timeout = TIMEOUT_SECONDS if timeout is None else timeout
        self.keepalive = keepalive
        # time.monotonic() at launch; the timeout counts from here
        self.started_at = time.monotonic() if started_at is None else started_at

        self.state = PublishState.CONNECTING
        self.exit_code: Optional[int] = None
        self._lock = threading.Lock()
        self._finished = threading.Event()
        self._timer: Optional[threading.Timer] = None
        self._loop_started = False
        self._abort_reason: Optional[str] = None

        # MQTT client setup
        factory = client_factory or mqtt.Client
        self.mqtt_client = factory(mqtt.CallbackAPIVersion.VERSION2, transport=broker.transport)
        if broker.username:
            self.mqtt_client.username_pw_set(broker.username, broker.password)
        if broker.tls:
            self.mqtt_client.tls_set()
        if broker.transport == 'websockets':
            self.mqtt_client.ws_set_options(path=broker.path)

        self.mqtt_client.on_connect = self._on_mqtt_connect
        self.mqtt_client.on_connect_fail = self._on_mqtt_connect_fail
        self.mqtt_client.on_publish = self._on_mqtt_publish
        self.mqtt_client.on_disconnect = self._on_mqtt_disconnect

    @property
    def finished(self) -> bool:
        return self._finished.is_set()

    def run(self) -> int:
        """Connect, publish once and wait for a terminal state.

        Returns:
            0 once the broker acknowledged the message, 1 otherwise
        """
        remaining = max(0.0, self.timeout - (time.monotonic() - self.started_at))
        self._timer = threading.Timer(remaining, self._on_timeout)
        self._timer.daemon = True
        self._timer.start()

        logger.info(f"Connecting to {self.broker.url}...")
        try:
            self.mqtt_client.connect(self.broker.host, self.broker.port, self.keepalive)
        except (OSError, ValueError) as e:
            self._finish(PublishState.ERROR, f"✗ Connection error: {e}")
        else:
            self.mqtt_client.loop_start()
            self._loop_started = True

        while not self._finished.wait(POLL_INTERVAL):
            if self._abort_reason is not None:
                self._finish(PublishState.ERROR, f"✗ {self._abort_reason}")
        self._shutdown()
        return self.exit_code

    def abort(self, reason: str):
        """Ask run() to fail the session, e.g. on SIGINT.

        Only records the request so it is safe to call from a signal handler;
        run() picks it up on its next poll.
        """
        self._abort_reason = reason

    def _shutdown(self):
        if self._timer is not None:
            self._timer.cancel()
        if self._loop_started:
            self.mqtt_client.disconnect()
            self.mqtt_client.loop_stop()
            self._loop_started = False

    def _advance(self, expected: PublishState, new: PublishState) -> bool:
        with self._lock:
            if self.state is not expected:
                return False
            self.state = new
            return True

    def _finish(self, state: PublishState, message: str) -> bool:
        """Enter a terminal state. Only the first call has any effect."""
        with self._lock:
            current = self.state
            if current not in TERMINAL_STATES:
                self.state = state
                self.exit_code = 0 if state is PublishState.DONE else 1
        if current in TERMINAL_STATES:
            logger.debug(f"Ignoring {state.value} after {current.value}: {message}")
            return False

        if self._timer is not None:
            self._timer.cancel()
        if state is PublishState.DONE:
            logger.info(message)
        else:
            logger.error(message)
        self._finished.set()
        return True

    def _on_mqtt_connect(self, client, userdata, flags, reason_code, properties=None):
        """MQTT connection callback"""
        if reason_code.is_failure:
            self._finish(PublishState.ERROR, f"✗ Connection error: {reason_code}")
            return

        # Reconnects after the first CONNACK resend in-flight messages on their own
        if not self._advance(PublishState.CONNECTING, PublishState.CONNECTED):
            logger.debug(f"Reconnected to MQTT broker while {self.state.value}")
            return

        logger.info("✓ Connected to MQTT broker")
        logger.info(f"Publishing to topic: {self.request.topic}")
        logger.info(f"Payload: {self.request.payload}")

        if not self._advance(PublishState.CONNECTED, PublishState.PUBLISHING):
            return
        try:
            result = client.publish(self.request.topic, self.request.payload, qos=self.request.qos)
        except ValueError as e:
            self._finish(PublishState.ERROR, f"✗ Publish error: {e}")
            return
        if result.rc != mqtt.MQTT_ERR_SUCCESS:
            self._finish(PublishState.ERROR, f"✗ Publish error: {mqtt.error_string(result.rc)}")

    def _on_mqtt_connect_fail(self, client, userdata):
        self._finish(
            PublishState.ERROR,
            f"✗ Connection error: could not connect to {self.broker.host}:{self.broker.port}",
        )

    def _on_mqtt_publish(self, client, userdata, mid, reason_code, properties=None):
        if reason_code.is_failure:
            self._finish(PublishState.ERROR, f"✗ Publish error: {reason_code}")
        else:
            self._finish(PublishState.DONE, "✓ Message published successfully")

    def _on_mqtt_disconnect(self, client, userdata, flags, reason_code, properties=None):
        """MQTT disconnection callback"""
        logger.info("Connection closed")

    def _on_timeout(self):
        self._finish(PublishState.TIMED_OUT, "✗ Connection timeout")

