"""
Debug tracing shared by all comstat modules
Enabled by COMSTAT_DEBUG=1 or the --debug flag
"""
import os
import sys
from datetime import datetime

# === DEBUG LOGGING ===
DEBUG = os.environ.get('COMSTAT_DEBUG', '').lower() in ('1', 'true', 'yes')


def set_debug(enabled: bool):
    """Turn debug tracing on or off at runtime"""
    global DEBUG
    DEBUG = enabled


def debug_log(component: str, message: str, level: str = "INFO"):
    """Centralized debug logging (only when DEBUG enabled)"""
    if DEBUG:
        timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
        print(f"[{timestamp}] [{level}] [{component}] {message}", file=sys.stderr, flush=True)
