"""
Realtime sub-package.

Contains the live driver tracking client (Socket.IO).
"""

from manos_gateway.services.realtime.driver_positions import (
    ConnectionState,
    DriverPositionClient,
    ErrorKind,
    get_real_status,
    is_driver_offline,
)

__all__ = [
    "ConnectionState",
    "DriverPositionClient",
    "ErrorKind",
    "get_real_status",
    "is_driver_offline",
]
