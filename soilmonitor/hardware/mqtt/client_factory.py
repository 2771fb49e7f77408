"""
Helpers for constructing MQTT clients that work across paho-mqtt 1.x and 2.x.

The 2.x releases add a callback API version flag; we pin the legacy v1
callback signatures (``on_connect(client, userdata, flags, rc)``,
``on_disconnect(client, userdata, rc)``) that the connection manager is
written against, while remaining compatible with 1.x installations that do
not expose the enum.
"""
from __future__ import annotations

import secrets
from typing import Any, Dict

import paho.mqtt.client as mqtt


def generate_client_id(prefix: str = "soilmonitor") -> str:
    """Return a fresh random client id so rapid restarts never collide on the broker."""
    return f"{prefix}_{secrets.token_hex(4)}"


def create_mqtt_client(client_id: str = "", *, clean_session: bool = True, **kwargs: Any) -> mqtt.Client:
    """
    Build an MQTT client that is forward-compatible with paho-mqtt 2.x and
    gracefully degrades when running with 1.x.

    Args:
        client_id: Client identifier; use ``generate_client_id()`` for a fresh one.
        clean_session: Start without broker-side session state.
        kwargs: Extra keyword arguments forwarded to the client constructor.
    """
    client_kwargs: Dict[str, Any] = {"client_id": client_id or "", "clean_session": clean_session}

    # Keep MQTT v3.1.1 protocol by default for broker compatibility.
    client_kwargs["protocol"] = kwargs.pop("protocol", getattr(mqtt, "MQTTv311", 4))
    client_kwargs.update(kwargs)

    callback_api_version = getattr(mqtt, "CallbackAPIVersion", None)
    if callback_api_version is not None:
        client_kwargs["callback_api_version"] = callback_api_version.VERSION1

    try:
        return mqtt.Client(**client_kwargs)
    except TypeError:
        # Older paho versions do not support callback_api_version; retry with basics.
        client_kwargs.pop("callback_api_version", None)
        return mqtt.Client(**client_kwargs)
