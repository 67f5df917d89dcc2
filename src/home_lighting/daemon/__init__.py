"""
MQTT daemon wrapper around the lighting engine.

This package contains:
- config: environment and command line configuration
- log_setup: root logger configuration
- transport: paho-mqtt bridge
- main: the `home-lighting` console script
"""
