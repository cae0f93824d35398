"""
Fake Windows APIs for tests
Stand-ins for the winreg module and pyserial's serial.win32 bindings
"""
import ctypes
from typing import Dict, Optional

HKLM = "HKLM"


class FakeKey:
    """Open registry key handle"""

    def __init__(self, registry: "FakeWinreg", path: str):
        self.registry = registry
        self.path = path
        self.closed = False

    def Close(self):
        if not self.closed:
            self.closed = True
            self.registry.closed_count += 1

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.Close()
        return False


class FakeWinreg:
    """
    In-memory registry under HKEY_LOCAL_MACHINE

    Args:
        keys: Mapping of key path -> {value name: data}; parent keys are implied
        fail_open: Key paths whose OpenKey raises
        fail_query: Key paths whose QueryInfoKey raises
        fail_enum: (key path, index) pairs whose EnumKey/EnumValue raises
    """
    HKEY_LOCAL_MACHINE = HKLM
    KEY_READ = 0x20019
    REG_SZ = 1
    REG_DWORD = 4

    def __init__(self, keys: Dict[str, Dict[str, object]], fail_open=(), fail_query=(),
                 fail_enum=()):
        self.keys = {}
        for path, values in keys.items():
            self._add(path, values)
        self.fail_open = {p.upper() for p in fail_open}
        self.fail_query = {p.upper() for p in fail_query}
        self.fail_enum = {(p.upper(), i) for p, i in fail_enum}
        self.opened = []
        self.closed_count = 0

    def _add(self, path: str, values: Dict[str, object]):
        parts = path.split("\\")
        for i in range(1, len(parts)):
            self.keys.setdefault("\\".join(parts[:i]).upper(), ({}, "\\".join(parts[:i])))
        existing, _ = self.keys.get(path.upper(), ({}, path))
        existing.update(values)
        self.keys[path.upper()] = (existing, path)

    def _children(self, path: str):
        prefix = path.upper() + "\\"
        names = []
        for key, (_, original) in self.keys.items():
            if key.startswith(prefix) and "\\" not in key[len(prefix):]:
                names.append(original.split("\\")[-1])
        return names

    @property
    def open_count(self) -> int:
        return len(self.opened) - self.closed_count

    def OpenKey(self, key, sub_key, reserved=0, access=KEY_READ):
        path = sub_key if key == HKLM else f"{key.path}\\{sub_key}"
        if path.upper() in self.fail_open or path.upper() not in self.keys:
            raise FileNotFoundError(2, "The system cannot find the file specified", path)
        handle = FakeKey(self, path)
        self.opened.append(handle)
        return handle

    def QueryInfoKey(self, key):
        if key.path.upper() in self.fail_query:
            raise PermissionError(5, "Access is denied", key.path)
        values, _ = self.keys[key.path.upper()]
        return len(self._children(key.path)), len(values), 0

    def _check_enum(self, key, index):
        if (key.path.upper(), index) in self.fail_enum:
            raise OSError(1018, "Illegal operation attempted on a registry key", key.path)

    def EnumKey(self, key, index):
        self._check_enum(key, index)
        children = self._children(key.path)
        if index >= len(children):
            raise OSError(259, "No more data is available")
        return children[index]

    def EnumValue(self, key, index):
        self._check_enum(key, index)
        values, _ = self.keys[key.path.upper()]
        items = list(values.items())
        if index >= len(items):
            raise OSError(259, "No more data is available")
        name, data = items[index]
        return name, data, self.REG_SZ if isinstance(data, str) else self.REG_DWORD

    def QueryValueEx(self, key, name):
        values, _ = self.keys[key.path.upper()]
        if name not in values:
            raise FileNotFoundError(2, "The system cannot find the file specified", name)
        data = values[name]
        return data, self.REG_SZ if isinstance(data, str) else self.REG_DWORD


def make_registry(serial_ports: Optional[Dict[str, str]] = None,
                  usb: Optional[Dict[str, Dict[str, Optional[str]]]] = None,
                  **kwargs) -> FakeWinreg:
    """
    Build a FakeWinreg with SERIALCOMM and Enum\\USB populated

    Args:
        serial_ports: {value name: port label}
        usb: {device identifier: {instance id: friendly name or None}}
    """
    keys = {r"HARDWARE\DEVICEMAP\SERIALCOMM": dict(serial_ports or {}),
            r"SYSTEM\CurrentControlSet\Enum\USB": {}}
    for identifier, instances in (usb or {}).items():
        keys[f"SYSTEM\\CurrentControlSet\\Enum\\USB\\{identifier}"] = {}
        for instance_id, friendly_name in instances.items():
            values = {"DeviceDesc": "USB device"}
            if friendly_name is not None:
                values["FriendlyName"] = friendly_name
            keys[f"SYSTEM\\CurrentControlSet\\Enum\\USB\\{identifier}\\{instance_id}"] = values
    return FakeWinreg(keys, **kwargs)


class FakeWin32:
    """
    Win32 serial API double

    Args:
        ports: {port name: "ready" | "busy" | "no_state"}; unknown ports are absent
    """
    GENERIC_READ = 0x80000000
    GENERIC_WRITE = 0x40000000
    OPEN_EXISTING = 3
    FILE_ATTRIBUTE_NORMAL = 0x80
    INVALID_HANDLE_VALUE = -1

    class DCB(ctypes.Structure):
        _fields_ = [("DCBlength", ctypes.c_ulong), ("BaudRate", ctypes.c_ulong)]

    def __init__(self, ports: Optional[Dict[str, str]] = None, raise_on_open: bool = False):
        self.ports = dict(ports or {})
        self.raise_on_open = raise_on_open
        self.handles = {}
        self.next_handle = 100
        self.open_calls = []
        self.closed = []

    def CreateFile(self, path, access, share_mode, security, disposition, flags, template):
        self.open_calls.append((path, access, share_mode, disposition, flags))
        if self.raise_on_open:
            raise OSError(5, "Access is denied")
        name = path[len("\\\\.\\"):] if path.startswith("\\\\.\\") else path
        state = self.ports.get(name)
        if state is None or state == "busy":
            return self.INVALID_HANDLE_VALUE
        handle = self.next_handle
        self.next_handle += 1
        self.handles[handle] = state
        return handle

    def GetCommState(self, handle, dcb_ref):
        return 1 if self.handles.get(handle) == "ready" else 0

    def CloseHandle(self, handle):
        self.closed.append(handle)
        return 1

    @property
    def leaked(self):
        return [h for h in self.handles if h not in self.closed]


class StaticProber:
    """Prober returning fixed answers, recording every port asked about"""

    def __init__(self, ready_ports=()):
        self.ready_ports = set(ready_ports)
        self.calls = []

    def probe(self, port_name: str) -> bool:
        self.calls.append(port_name)
        return port_name in self.ready_ports
