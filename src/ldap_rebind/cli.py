# # Copyright (c) 2024 LDAP Rebind
# # SPDX-License-Identifier: MIT
# #
# # LDAP Rebind
# # Re-authenticates LDAP connections while chasing referrals

"""Command line tool for LDAP Rebind configuration files."""

import argparse
import sys

from .config.loader import PRESETS, create_sample_config, load_config, validate_config
from .core.logging import get_logger, setup_logging
from .core.registry import RebindRegistry

logger = get_logger("cli")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(prog="ldap-rebind", description="LDAP Rebind configuration")
    subparsers = parser.add_subparsers(dest="command", required=True)

    sample = subparsers.add_parser("sample-config", help="Write a sample configuration file")
    sample.add_argument("path", help="Where to write the configuration")
    sample.add_argument("--preset", choices=sorted(PRESETS), default="openldap")

    check = subparsers.add_parser("check-config", help="Load and validate a configuration file")
    check.add_argument(
        "path", nargs="?", default=None, help="Configuration file (default: $LDAP_REBIND_CONFIG)"
    )
    check.add_argument("--preset", choices=sorted(PRESETS), default=None)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the command line tool."""
    args = build_parser().parse_args(argv)

    if args.command == "sample-config":
        create_sample_config(args.path, args.preset)
        print(f"Wrote {args.preset} configuration to {args.path}")
        return 0

    try:
        config = load_config(args.path, preset=args.preset)
        setup_logging(config.logging)
        validate_config(config)
    except Exception as e:
        logger.error(f"Failed to load configuration: {e}")
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1

    registry = RebindRegistry.from_config(config.rebind)
    print(
        f"Configuration OK: callback style {config.rebind.callback_style!r} "
        f"uses {type(registry.adapter).__name__}"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
