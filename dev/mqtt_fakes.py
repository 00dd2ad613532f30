"""
Scripted stand-in for paho.mqtt.client.Client.

A ScriptedBroker is passed wherever a client factory is expected (or patched
over paho.mqtt.client.Client). Each client it creates replays the scripted
broker behaviour synchronously from loop_start()/publish().
"""

from types import SimpleNamespace

import paho.mqtt.client as mqtt
from paho.mqtt.packettypes import PacketTypes
from paho.mqtt.reasoncodes import ReasonCode

CONNACK_SUCCESS = ReasonCode(PacketTypes.CONNACK, "Success")
CONNACK_NOT_AUTHORIZED = ReasonCode(PacketTypes.CONNACK, "Not authorized")
PUBACK_SUCCESS = ReasonCode(PacketTypes.PUBACK, "Success")
PUBACK_NOT_AUTHORIZED = ReasonCode(PacketTypes.PUBACK, "Not authorized")
DISCONNECT_NORMAL = ReasonCode(PacketTypes.DISCONNECT, "Normal disconnection")


class ScriptedBroker:
    """How the fake broker answers.

    connack=None means the broker never answers CONNECT, puback=None means
    it never acknowledges the publish.
    """

    def __init__(self, connect_error=None, connack=CONNACK_SUCCESS, puback=PUBACK_SUCCESS,
                 publish_rc=mqtt.MQTT_ERR_SUCCESS):
        self.connect_error = connect_error
        self.connack = connack
        self.puback = puback
        self.publish_rc = publish_rc
        self.clients = []

    def __call__(self, callback_api_version=None, transport='tcp', **kwargs):
        client = FakeMQTTClient(self, callback_api_version, transport)
        self.clients.append(client)
        return client

    @property
    def client(self):
        return self.clients[-1]


class FakeMQTTClient:
    def __init__(self, broker, callback_api_version, transport):
        self.broker = broker
        self.callback_api_version = callback_api_version
        self.transport = transport

        self.credentials = None
        self.tls = False
        self.ws_path = None
        self.connected_to = None
        self.loop_running = False
        self.loop_started = False
        self.published = []
        self.disconnect_calls = 0

        self.on_connect = None
        self.on_connect_fail = None
        self.on_publish = None
        self.on_disconnect = None

    def username_pw_set(self, username, password=None):
        self.credentials = (username, password)

    def tls_set(self, *args, **kwargs):
        self.tls = True

    def ws_set_options(self, path="/mqtt", headers=None):
        self.ws_path = path

    def connect(self, host, port=1883, keepalive=60):
        self.connected_to = (host, port, keepalive)
        if self.broker.connect_error is not None:
            raise self.broker.connect_error
        return mqtt.MQTT_ERR_SUCCESS

    def loop_start(self):
        self.loop_running = True
        self.loop_started = True
        if self.broker.connack is not None:
            self.on_connect(self, None, {}, self.broker.connack, None)

    def publish(self, topic, payload=None, qos=0, retain=False, properties=None):
        self.published.append((topic, payload, qos))
        info = SimpleNamespace(rc=self.broker.publish_rc, mid=len(self.published))
        if info.rc == mqtt.MQTT_ERR_SUCCESS and self.broker.puback is not None:
            self.on_publish(self, None, info.mid, self.broker.puback, None)
        return info

    def disconnect(self, reasoncode=None, properties=None):
        self.disconnect_calls += 1
        if self.loop_running:
            self.on_disconnect(self, None, {}, DISCONNECT_NORMAL, None)
        return mqtt.MQTT_ERR_SUCCESS

    def loop_stop(self):
        self.loop_running = False
        return mqtt.MQTT_ERR_SUCCESS
