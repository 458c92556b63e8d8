"""Server CLI commands."""

import argparse


def subcommand_serve(args: argparse.Namespace) -> None:
    # Imported here so the CLI starts without loading the server stack
    from folderhub.server.app import run

    run(args)


def add_parser(subparsers):
    parser_serve = subparsers.add_parser("serve", help="run the folderhub server")
    parser_serve.add_argument(
        "--config",
        type=str,
        default=None,
        help="YAML config file (default: $FOLDERHUB_CONFIG or config/config.yaml)",
    )
    parser_serve.set_defaults(func=subcommand_serve)
