"""
Connection Enumerations
=======================

Lifecycle states of the MQTT session owned by the connection manager.
"""

from enum import Enum


class ConnectionState(str, Enum):
    """State of the telemetry transport session"""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"

    def __str__(self):
        return self.value
