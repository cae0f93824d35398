"""
Registry Reader
Read-only views over the Windows serial port map and the USB device tree
"""
from typing import Iterator, List, Optional, Tuple

from comstat.debug import debug_log

SERIAL_COMM_PATH = r"HARDWARE\DEVICEMAP\SERIALCOMM"
USB_ENUM_PATH = r"SYSTEM\CurrentControlSet\Enum\USB"
FRIENDLY_NAME_VALUE = "FriendlyName"


class RegistryUnavailable(Exception):
    """A root enumeration table could not be opened"""


class UsbInstance:
    """One instance-path child of a USB device node"""

    def __init__(self, instance_id: str, friendly_name: Optional[str] = None):
        self.instance_id = instance_id
        self.friendly_name = friendly_name

    def __repr__(self):
        return f"UsbInstance({self.instance_id!r}, {self.friendly_name!r})"


class RegistryReader:
    """Walks HKLM serial and USB enumeration keys, releasing every key it opens"""

    def __init__(self, winreg=None, serial_path: str = SERIAL_COMM_PATH,
                 usb_path: str = USB_ENUM_PATH):
        """
        Initialize registry reader

        Args:
            winreg: Module implementing the winreg API (default: stdlib winreg,
                imported on first use since it only exists on Windows)
            serial_path: Serial port map under HKEY_LOCAL_MACHINE
            usb_path: USB enumeration root under HKEY_LOCAL_MACHINE
        """
        self._winreg = winreg
        self.serial_path = serial_path
        self.usb_path = usb_path

    @property
    def winreg(self):
        if self._winreg is None:
            import winreg
            self._winreg = winreg
        return self._winreg

    def _open_root(self, path: str, label: str):
        try:
            return self.winreg.OpenKey(self.winreg.HKEY_LOCAL_MACHINE, path, 0,
                                       self.winreg.KEY_READ)
        except OSError as e:
            debug_log("REGISTRY", f"Cannot open {path}: {e}", "ERROR")
            raise RegistryUnavailable(f"failed to open {label} registry: {e}") from e

    def check_roots(self):
        """
        Open and release both root tables

        Raises:
            RegistryUnavailable: If SERIALCOMM or the USB enumeration key cannot be opened
        """
        with self._open_root(self.serial_path, "SERIALCOMM"):
            pass
        with self._open_root(self.usb_path, "USB"):
            pass

    def list_serial_ports(self) -> Iterator[Tuple[str, str]]:
        """
        Enumerate the serial port map

        Yields:
            (value_name, port_name) pairs, e.g. ("\\Device\\Serial0", "COM3")

        Raises:
            RegistryUnavailable: If the SERIALCOMM key cannot be opened
        """
        with self._open_root(self.serial_path, "SERIALCOMM") as key:
            value_count = self._value_count(key)
            if value_count is None:
                return

            for index in range(value_count):
                try:
                    name, data, _ = self.winreg.EnumValue(key, index)
                except OSError as e:
                    debug_log("REGISTRY", f"Cannot read serial value #{index}: {e}", "WARN")
                    continue

                if not isinstance(data, str):
                    debug_log("REGISTRY", f"Skipping non-string serial value {name!r}", "WARN")
                    continue

                debug_log("REGISTRY", f"Serial map: {name} -> {data}")
                yield name, data

    def list_usb_devices(self) -> Iterator[str]:
        """
        Enumerate top-level USB device identifiers

        Yields:
            Identifier strings such as "VID_2E8A&PID_0005"

        Raises:
            RegistryUnavailable: If the USB enumeration key cannot be opened
        """
        with self._open_root(self.usb_path, "USB") as key:
            names = self._subkey_names(key)
            if names is None:
                return
            yield from names

    def list_usb_instances(self, identifier: str) -> Iterator[UsbInstance]:
        """
        Enumerate instance children of one USB device

        Nodes that cannot be opened or read are skipped.

        Args:
            identifier: Top-level USB identifier from list_usb_devices()

        Yields:
            UsbInstance per child, friendly_name None when absent
        """
        device_path = f"{self.usb_path}\\{identifier}"
        try:
            device_key = self.winreg.OpenKey(self.winreg.HKEY_LOCAL_MACHINE, device_path,
                                             0, self.winreg.KEY_READ)
        except OSError as e:
            debug_log("REGISTRY", f"Skipping {device_path}: {e}", "WARN")
            return

        with device_key:
            instance_ids = self._subkey_names(device_key)
            if instance_ids is None:
                return

            for instance_id in instance_ids:
                yield UsbInstance(instance_id, self._read_friendly_name(device_key, instance_id))

    def _value_count(self, key) -> Optional[int]:
        try:
            _, value_count, _ = self.winreg.QueryInfoKey(key)
        except OSError as e:
            debug_log("REGISTRY", f"Cannot query key info: {e}", "WARN")
            return None
        return value_count

    def _subkey_names(self, key) -> Optional[List[str]]:
        """Names of all subkeys of an open key, or None if the key cannot be queried"""
        try:
            subkey_count, _, _ = self.winreg.QueryInfoKey(key)
        except OSError as e:
            debug_log("REGISTRY", f"Cannot query key info: {e}", "WARN")
            return None

        names = []
        for index in range(subkey_count):
            try:
                names.append(self.winreg.EnumKey(key, index))
            except OSError as e:
                debug_log("REGISTRY", f"Cannot read subkey #{index}: {e}", "WARN")
        return names

    def _read_friendly_name(self, parent_key, instance_id: str) -> Optional[str]:
        try:
            instance_key = self.winreg.OpenKey(parent_key, instance_id, 0, self.winreg.KEY_READ)
        except OSError as e:
            debug_log("REGISTRY", f"Skipping instance {instance_id}: {e}", "WARN")
            return None

        with instance_key:
            try:
                value, _ = self.winreg.QueryValueEx(instance_key, FRIENDLY_NAME_VALUE)
            except OSError:
                return None

        if not isinstance(value, str):
            return None
        return value
