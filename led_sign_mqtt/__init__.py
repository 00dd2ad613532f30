"""Publish one control message to an MQTT-connected LED sign."""

__version__ = "1.0.0"
