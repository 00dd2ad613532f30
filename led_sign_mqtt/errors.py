class LedSignError(Exception):
    """Base class for errors raised by led_sign_mqtt"""


class DirectiveError(LedSignError):
    """The command line did not produce a usable directive"""


class MissingDirective(DirectiveError):
    pass


class InvalidPowerValue(DirectiveError):
    def __init__(self, value):
        self.value = value
        super().__init__('power must be "on" or "off"')


class InvalidBrightnessValue(DirectiveError):
    def __init__(self, value):
        self.value = value
        super().__init__("brightness must be a number between 0 and 15")


class BrokerUrlError(LedSignError):
    """MQTT_HOST could not be turned into a broker address"""
