"""
Device Correlator
Joins the serial port map with the USB device tree into one record per port
"""
from typing import Dict, Optional, Tuple

from comstat.debug import debug_log
from comstat.port_prober import PortProber
from comstat.registry_reader import RegistryReader

USB_MARKER = "VID_"


class DeviceRecord:
    """Status of one COM port at enumeration time"""

    def __init__(self, port_name: str, ready: bool = False, vid: str = "", pid: str = "",
                 is_usb: bool = False):
        self.port_name = port_name
        self.vid = vid
        self.pid = pid
        self.ready = ready
        self.is_usb = is_usb

    def to_dict(self) -> dict:
        return {
            'port': self.port_name,
            'vid': self.vid,
            'pid': self.pid,
            'ready': self.ready,
            'is_usb': self.is_usb
        }

    def __eq__(self, other):
        if not isinstance(other, DeviceRecord):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return (f"DeviceRecord({self.port_name!r}, ready={self.ready}, vid={self.vid!r}, "
                f"pid={self.pid!r}, is_usb={self.is_usb})")


def extract_com_port(friendly_name: str) -> str:
    """
    Pull the port label out of a device friendly name

    "USB Serial Device (COM7)" -> "COM7"; "" when there is no "(COM...)" fragment.
    """
    start = friendly_name.find("(COM")
    if start == -1:
        return ""
    end = friendly_name.find(")", start)
    if end == -1:
        return ""
    return friendly_name[start + 1:end]


def extract_vid_pid(identifier: str) -> Tuple[str, str]:
    """
    Pull the 4-digit vendor and product ids out of a USB identifier

    "VID_2E8A&PID_0005" -> ("2E8A", "0005"). A missing or truncated token
    leaves that field empty.
    """
    identifier = identifier.upper()
    return _token_value(identifier, "VID_"), _token_value(identifier, "PID_")


def _token_value(identifier: str, token: str) -> str:
    index = identifier.find(token)
    if index == -1 or len(identifier) < index + len(token) + 4:
        return ""
    start = index + len(token)
    return identifier[start:start + 4]


def find_devices(reader: Optional[RegistryReader] = None,
                 prober: Optional[PortProber] = None) -> Dict[str, DeviceRecord]:
    """
    Build the device table for this host

    Every port in the serial map gets exactly one record, probed as it is
    discovered. USB entries only enrich records that already exist.

    Args:
        reader: Registry source (default: live Windows registry)
        prober: Readiness prober (default: live Win32 prober)

    Returns:
        Mapping of port name -> DeviceRecord, in no particular order

    Raises:
        RegistryUnavailable: If either root table cannot be opened
    """
    if reader is None:
        reader = RegistryReader()
    if prober is None:
        prober = PortProber()

    # fail before any port is opened
    reader.check_roots()

    devices: Dict[str, DeviceRecord] = {}
    _discover_serial_ports(reader, prober, devices)
    _correlate_usb(reader, devices)

    debug_log("DEVICES", f"Found {len(devices)} port(s), "
                         f"{sum(1 for d in devices.values() if d.is_usb)} USB")
    return devices


def _discover_serial_ports(reader: RegistryReader, prober: PortProber,
                           devices: Dict[str, DeviceRecord]):
    for _, port_name in reader.list_serial_ports():
        ready = prober.probe(port_name)
        devices[port_name] = DeviceRecord(port_name, ready=ready)


def _correlate_usb(reader: RegistryReader, devices: Dict[str, DeviceRecord]):
    for identifier in reader.list_usb_devices():
        if USB_MARKER not in identifier:
            continue

        for instance in reader.list_usb_instances(identifier):
            port_name = _instance_port(instance.friendly_name)
            if not port_name:
                continue

            device = devices.get(port_name)
            if device is None:
                debug_log("DEVICES", f"{identifier}: {port_name} not in serial map, ignored")
                continue

            device.vid, device.pid = extract_vid_pid(identifier)
            device.is_usb = True
            debug_log("DEVICES", f"{port_name} <- {identifier} ({instance.instance_id})")


def _instance_port(friendly_name: Optional[str]) -> str:
    if not friendly_name or "COM" not in friendly_name:
        return ""
    return extract_com_port(friendly_name)
