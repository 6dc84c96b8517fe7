"""FastCS InputExpander EPICS server entry point.

Launches a FastCS server that exposes InputExpander registers via EPICS PVs.

Usage:
    python -m harp_inputexpander --port sim://inputexpander --pv-prefix BL99I-EA-IE-01:
"""

import logging
from argparse import ArgumentParser
from collections.abc import Sequence
from pathlib import Path

from . import __version__
from .controller import InputExpanderController
from .registers import DEFAULT_REVISION, SchemaRevision

__all__ = ["main"]


def main(args: Sequence[str] | None = None) -> None:
    """Launch the FastCS InputExpander EPICS server."""
    parser = ArgumentParser(description="FastCS Harp InputExpander EPICS Server")
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=__version__,
    )
    parser.add_argument(
        "--port",
        type=str,
        default="sim://inputexpander",
        help="Device name; sim://<name> runs the built-in simulator "
        "(default: sim://inputexpander)",
    )
    parser.add_argument(
        "--revision",
        type=str,
        default=DEFAULT_REVISION.value,
        choices=[revision.value for revision in SchemaRevision],
        help=f"Register map schema revision (default: {DEFAULT_REVISION.value})",
    )
    parser.add_argument(
        "--pv-prefix",
        type=str,
        default="INPUTEXPANDER",
        help="EPICS PV prefix (default: INPUTEXPANDER)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--gui",
        type=str,
        default=None,
        help="Generate Phoebus screen file (e.g., inputexpander.bob)",
    )
    parser.add_argument(
        "--no-interactive",
        action="store_true",
        help="Run without the interactive shell",
    )

    parsed_args = parser.parse_args(args)

    # Setup logging
    logging.basicConfig(
        level=getattr(logging, parsed_args.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    # Import FastCS components (optional dependency for EPICS)
    try:
        from fastcs.launch import FastCS
        from fastcs.transports.epics.ca import EpicsCATransport
        from fastcs.transports.epics.options import (
            EpicsGUIOptions,
            EpicsIOCOptions,
        )
    except ImportError as e:
        print(f"Error: FastCS EPICS transport not available: {e}")
        print("Please install with: pip install 'fastcs[ca]'")
        return

    controller = InputExpanderController(
        port=parsed_args.port, revision=SchemaRevision(parsed_args.revision)
    )

    # Setup GUI options if requested
    gui_options = None
    if parsed_args.gui:
        gui_options = EpicsGUIOptions(
            output_path=Path(parsed_args.gui),
            title="Harp InputExpander",
        )

    transport = EpicsCATransport(
        gui=gui_options,
        epicsca=EpicsIOCOptions(pv_prefix=parsed_args.pv_prefix),
    )

    fastcs = FastCS(controller, [transport])
    fastcs.run(interactive=not parsed_args.no_interactive)


if __name__ == "__main__":
    main()
