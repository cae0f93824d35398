"""
Presentation helpers for the device table
"""
import json
import re
from types import MappingProxyType
from typing import Dict, List

from comstat.device_finder import DeviceRecord

KNOWN_VENDORS = MappingProxyType({
    "2E8A": "Raspberry Pi Foundation",
})


def get_vendor_info(vid: str) -> str:
    """VID followed by the vendor name when known, else the VID unchanged"""
    vendor = KNOWN_VENDORS.get(vid)
    if vendor:
        return f"{vid} {vendor}"
    return vid


def get_device_status(ready: bool) -> str:
    return "ready" if ready else "busy"


def format_device(device: DeviceRecord) -> str:
    status = get_device_status(device.ready)
    if device.is_usb:
        return f"{device.port_name} [VID:{get_vendor_info(device.vid)} PID:{device.pid}] : {status}"
    return f"{device.port_name} : {status}"


def _port_sort_key(port_name: str):
    # COM2 before COM10; names without a number go last
    match = re.match(r"(.*?)(\d+)$", port_name)
    if match is None:
        return (1, port_name, 0)
    return (0, match.group(1), int(match.group(2)))


def sort_devices(devices: Dict[str, DeviceRecord]) -> List[DeviceRecord]:
    return sorted(devices.values(), key=lambda d: _port_sort_key(d.port_name))


def select_devices(devices: Dict[str, DeviceRecord], ready_only: bool = False) -> List[DeviceRecord]:
    """Sorted records, optionally limited to ready ports"""
    return [d for d in sort_devices(devices) if d.ready or not ready_only]


def format_devices(devices: Dict[str, DeviceRecord], ready_only: bool = False) -> str:
    """
    Render the table as text, one port per line

    Args:
        devices: Mapping from find_devices()
        ready_only: If True, leave out busy ports

    Returns:
        Text block, or a notice when nothing is listed
    """
    selected = select_devices(devices, ready_only)
    if not selected:
        return "No COM ports found."
    return "\n".join(format_device(d) for d in selected)


def devices_to_json(devices: Dict[str, DeviceRecord], ready_only: bool = False) -> str:
    selected = select_devices(devices, ready_only)
    return json.dumps({
        'success': True,
        'count': len(selected),
        'ports': [d.to_dict() for d in selected]
    }, indent=2)
