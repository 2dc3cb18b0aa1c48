#!/usr/bin/env python3
"""
Interactive box controller console.

Connects to the paired HC-05 module, prints every log entry as it arrives
and sends the commands typed on stdin:

    on 1 | off 2 | open 3 | close 1    box shortcuts
    Box1_LED_ON                        any raw command token
    connect | disconnect | state | quit
"""

import argparse
import logging
import queue
import sys
import threading
from pathlib import Path

# Add package to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from hclink import (
    BluezPeerRegistry,
    ConnectionManager,
    LinkConfig,
    PeerDescriptor,
    RfcommTransport,
    SerialPortPeerRegistry,
    SerialTransport,
    StaticPeerRegistry,
)
from hclink.commands import BoxAction, box_command
from hclink.errors import InvalidCommandError, PreconditionError
from hclink.preconditions import preflight

SHORTCUTS = {
    "on": BoxAction.LED_ON,
    "off": BoxAction.LED_OFF,
    "open": BoxAction.OPEN,
    "close": BoxAction.CLOSE,
}


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Send box commands to an HC-05 module.")
    parser.add_argument("--name", default="HC-05", help="paired device name")
    parser.add_argument("--address", help="MAC address; skips the bluetoothctl lookup")
    parser.add_argument("--port", help="use a bound serial port (e.g. /dev/rfcomm0, COM5) instead of RFCOMM sockets")
    parser.add_argument("--channel", type=int, default=1, help="RFCOMM channel")
    parser.add_argument("--baudrate", type=int, default=9600)
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


def build_manager(args) -> ConnectionManager:
    config = LinkConfig(device_name=args.name, rfcomm_channel=args.channel, baudrate=args.baudrate)

    if args.port:
        registry = SerialPortPeerRegistry(aliases={args.name: args.port})
        return ConnectionManager(
            registry=registry,
            transport_factory=lambda: SerialTransport(baudrate=config.baudrate,
                                                      timeout=config.serial_read_timeout),
            config=config,
        )

    if args.address:
        registry = StaticPeerRegistry([PeerDescriptor(name=args.name, address=args.address)])
    else:
        registry = BluezPeerRegistry()
    return ConnectionManager(
        registry=registry,
        transport_factory=lambda: RfcommTransport(connect_timeout=config.connect_timeout),
        config=config,
    )


def print_entries(entries: queue.Queue, stop: threading.Event):
    while not stop.is_set():
        try:
            entry = entries.get(timeout=0.2)
        except queue.Empty:
            continue
        print(entry.format())


def to_command(line: str) -> str:
    parts = line.split()
    if len(parts) == 2 and parts[0].lower() in SHORTCUTS and parts[1].isdigit():
        return box_command(int(parts[1]), SHORTCUTS[parts[0].lower()])
    return line


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    try:
        preflight(use_rfcomm=not args.port)
    except PreconditionError as e:
        print(f"Cannot connect: {e}")
        return 1

    manager = build_manager(args)
    stop = threading.Event()
    printer = threading.Thread(
        target=print_entries,
        args=(manager.event_log.listen(), stop),
        daemon=True,
        name="LogPrinter",
    )
    printer.start()
    manager.event_log.info("Awaiting connection...")

    try:
        result = manager.connect().result()
        if not result.ok:
            print(f"Unable to connect ({result.value})")

        for raw in sys.stdin:
            line = raw.strip()
            if not line:
                continue
            if line == "quit":
                break
            if line == "connect":
                manager.connect()
            elif line == "disconnect":
                manager.disconnect()
            elif line == "state":
                print(manager.current_state().value)
            else:
                try:
                    outcome = manager.send(to_command(line)).result()
                except InvalidCommandError as e:
                    print(e)
                    continue
                if not outcome.ok:
                    print(f"Send failed ({outcome.value})")
    except KeyboardInterrupt:
        print("\nInterrupted by user.")
    finally:
        manager.close()
        stop.set()
        printer.join(timeout=1.0)
    return 0


if __name__ == "__main__":
    sys.exit(main())
