"""
comstat command line
Display the status of COM ports
"""
import argparse
import sys
from typing import List, Optional

from comstat.debug import debug_log, set_debug
from comstat.device_finder import find_devices
from comstat.display import devices_to_json, format_devices
from comstat.registry_reader import RegistryUnavailable


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="comstat", description="Display the status of COM ports.")
    parser.add_argument("-n", "--no-pause", action="store_true",
                        help="Exit without waiting for key press.")
    parser.add_argument("-r", "--ready-only", action="store_true",
                        help="Only list ports that are ready")
    parser.add_argument("--json", action="store_true", help="Print results as JSON")
    parser.add_argument("--debug", action="store_true",
                        help="Trace registry reads and probes to stderr (same as COMSTAT_DEBUG=1)")
    return parser


def wait_for_key():
    print("\nPress Enter to exit...")
    try:
        input()
    except EOFError:
        pass


def run(args: argparse.Namespace, reader=None, prober=None) -> int:
    """
    Enumerate ports and print them

    Args:
        args: Parsed command line
        reader: Registry source (default: live registry)
        prober: Readiness prober (default: live Win32 prober)

    Returns:
        Process exit code (0 success, 1 registry unavailable)
    """
    try:
        devices = find_devices(reader=reader, prober=prober)
    except RegistryUnavailable as e:
        debug_log("CLI", f"Enumeration aborted: {e}", "ERROR")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(devices_to_json(devices, ready_only=args.ready_only))
    else:
        print(format_devices(devices, ready_only=args.ready_only))

    if not args.no_pause:
        wait_for_key()
    return 0


def main(argv: Optional[List[str]] = None):
    """Main entry point"""
    args = build_parser().parse_args(argv)
    if args.debug:
        set_debug(True)

    if sys.platform != 'win32':
        print(f"comstat only supports Windows (running on {sys.platform})", file=sys.stderr)
        sys.exit(2)

    sys.exit(run(args))


if __name__ == "__main__":
    main()
