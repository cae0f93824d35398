"""
Port Prober
Classifies a COM port as ready (exclusively openable) or busy
"""
import ctypes

from comstat.debug import debug_log


def device_path(port_name: str) -> str:
    """Win32 device namespace path for a port, e.g. COM3 -> \\\\.\\COM3"""
    return "\\\\.\\" + port_name


class PortProber:
    """Opens a port without sharing, reads its DCB and closes it again"""

    def __init__(self, win32=None):
        """
        Initialize prober

        Args:
            win32: Module exposing the Win32 serial API (default: serial.win32
                from pyserial, imported on first use since it needs Windows)
        """
        self._win32 = win32

    @property
    def win32(self):
        if self._win32 is None:
            from serial import win32
            self._win32 = win32
        return self._win32

    def probe(self, port_name: str) -> bool:
        """
        Check whether a port can be opened for exclusive use right now

        No data is sent or received; a single attempt decides.

        Args:
            port_name: Port label (e.g., "COM3")

        Returns:
            True if the port opened and its comm state could be queried,
            False if it is held elsewhere, missing or not a serial device
        """
        api = self.win32
        try:
            handle = api.CreateFile(
                device_path(port_name),
                api.GENERIC_READ | api.GENERIC_WRITE,
                0,  # no sharing
                None,
                api.OPEN_EXISTING,
                api.FILE_ATTRIBUTE_NORMAL,
                0)
        except OSError as e:
            debug_log("PROBE", f"{port_name}: open raised {e}")
            return False

        if handle is None or handle == api.INVALID_HANDLE_VALUE:
            debug_log("PROBE", f"{port_name}: open failed, reporting busy")
            return False

        try:
            dcb = api.DCB()
            ready = bool(api.GetCommState(handle, ctypes.byref(dcb)))
        except OSError as e:
            debug_log("PROBE", f"{port_name}: GetCommState raised {e}", "WARN")
            ready = False
        finally:
            api.CloseHandle(handle)

        debug_log("PROBE", f"{port_name}: {'ready' if ready else 'busy (no comm state)'}")
        return ready
