"""CLI Argument Parsing"""

import argparse
import sys

import argcomplete

from acm import __version__

PASSTHROUGH_SEPARATOR = '--'


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='acm',
        description='Commit staged changes with an AI-generated message',
        epilog='Unknown options, and anything after --, are passed to git commit. '
               'Example: acm --signoff -- --no-verify'
    )

    parser.add_argument('-v', '--version', action='version', version=f'%(prog)s {__version__}')

    # Commit options
    parser.add_argument('-y', '--yes', action='store_true', help='Commit without reviewing the message')
    parser.add_argument('--dry-run', action='store_true', help='Print the generated message, do not commit')

    # LLM options
    parser.add_argument('-m', '--model', type=str, metavar='MODEL', help='Model name (overrides config)')

    # Output options
    parser.add_argument('--verbose', action='store_true', help='Show debug info (requests, prompt size, tokens used)')

    # Setup/config
    parser.add_argument('--config', type=str, metavar='PATH', help='Configuration file (default: ~/.acm/config.toml)')
    parser.add_argument('--setup', action='store_true', help='Create or edit the configuration')
    parser.add_argument('--display-config', action='store_true', help='Show current configuration')
    parser.add_argument('--install-completion', action='store_true', help='Install shell tab completion')

    return parser


def parse_args(argv: list[str] | None = None) -> tuple[argparse.Namespace, list[str]]:
    """Parse acm's own options. Returns (args, arguments for git commit)."""
    argv = list(sys.argv[1:] if argv is None else argv)
    passthrough = []
    if PASSTHROUGH_SEPARATOR in argv:
        idx = argv.index(PASSTHROUGH_SEPARATOR)
        argv, passthrough = argv[:idx], argv[idx + 1:]

    parser = build_parser()
    argcomplete.autocomplete(parser)
    args, unknown = parser.parse_known_args(argv)
    return args, unknown + passthrough
