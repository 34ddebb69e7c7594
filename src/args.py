"""Argument parsing functionality for peerfix."""

import argparse


def build_parser():
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="peerfix",
        description=(
            "peerfix - Resolve conflicting npm peer dependency versions"
        ),
        add_help=True,
    )

    parser.add_argument("install",
                        metavar="PACKAGE",
                        help="Packages to install, as name or name@range; they become pinned versions",
                        nargs="*",
                        default=[])
    parser.add_argument("-p", "--path",
                        dest="PATH",
                        help="Directory holding package.json (default: current directory)",
                        action="store",
                        type=str,
                        default=".")
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML, YML, or JSON)",
                        action="store",
                        type=str)
    parser.add_argument("--major-versions",
                        dest="MAJOR_VERSIONS",
                        help="Number of major versions below the newest one to explore",
                        action="store",
                        type=int)
    parser.add_argument("--minor-versions",
                        dest="MINOR_VERSIONS",
                        help="Number of minor and patch versions per major version to explore",
                        action="store",
                        type=int)
    parser.add_argument("--pre-release",
                        dest="PRE_RELEASE",
                        help="Allow pre-release versions of transitive packages",
                        action="store_true",
                        default=None)
    parser.add_argument("--pin-versions",
                        dest="PIN_VERSIONS",
                        help="Treat versions declared in package.json as pinned",
                        action="store_true",
                        default=None)
    parser.add_argument("--force",
                        dest="FORCE",
                        help="Explore every candidate version without conflict-set shortcuts",
                        action="store_true",
                        default=None)
    parser.add_argument("--force-regeneration",
                        dest="FORCE_REGENERATION",
                        help="Ignore the persisted registry cache",
                        action="store_true")
    parser.add_argument("--cache-dir",
                        dest="CACHE_DIR",
                        help="Directory for the persisted registry cache",
                        action="store",
                        type=str)
    parser.add_argument("-e", "--exclude",
                        dest="EXCLUDE",
                        help="Package name or pattern (e.g. @types/*) to leave out; repeatable",
                        action="append",
                        type=str,
                        default=[])
    parser.add_argument("-i", "--include",
                        dest="INCLUDE",
                        help="Only resolve packages matching this name or pattern; repeatable",
                        action="append",
                        type=str,
                        default=[])
    parser.add_argument("--modify-json",
                        dest="MODIFY_JSON",
                        help="Write resolved versions back into package.json",
                        action="store_true")
    parser.add_argument("-o", "--output",
                        dest="OUTPUT",
                        help="Path to JSON output file with result and metrics",
                        action="store",
                        type=str)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level (defaults to $PEERFIX_LOG_LEVEL, then INFO)",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default=None)
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("-q", "--quiet",
                        dest="QUIET",
                        help="Do not print the result to the console.",
                        action="store_true")

    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)
