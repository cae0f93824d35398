"""
comstat - COM port status for Windows
Lists serial ports, probes whether each one is free, and resolves USB VID/PID
"""
from comstat.device_finder import DeviceRecord, find_devices
from comstat.registry_reader import RegistryReader, RegistryUnavailable
from comstat.port_prober import PortProber

__version__ = "1.0.0"

__all__ = [
    "DeviceRecord",
    "find_devices",
    "RegistryReader",
    "RegistryUnavailable",
    "PortProber",
]
