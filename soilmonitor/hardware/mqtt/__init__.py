from .client_factory import create_mqtt_client, generate_client_id
from .connection_manager import ConnectionManager, HealthStatus, backoff_delay, decode_soil_payload

__all__ = [
    "ConnectionManager",
    "HealthStatus",
    "backoff_delay",
    "create_mqtt_client",
    "decode_soil_payload",
    "generate_client_id",
]
