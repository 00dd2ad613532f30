from .mqtt_send import run

run()
