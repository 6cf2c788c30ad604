"""Command line entry point for devops-tool."""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Callable, Sequence
from typing import Any

from devopstool.inventory import get_persistent_volume_info, get_storage_class_info
from devopstool.kubeclient import KubeError, new_client

VERSION = "V1.0.0"

logger = logging.getLogger(__name__)


def _report(report: Callable[[Any, str | None], None]) -> Callable[[argparse.Namespace], int]:
    def handler(args: argparse.Namespace) -> int:
        try:
            client = new_client(args.kubeconfig)
        except KubeError as exc:
            logger.error("Error: %s", exc)
            return 1
        try:
            report(client, args.file or None)
        except (KubeError, OSError, ValueError) as exc:
            logger.error("Error: %s", exc)
        return 0

    return handler


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="devops-tool", description="devops-tool is a CLI tool")
    parser.add_argument("-v", "--version", action="version", version=f"devops-tool version {VERSION}")
    parser.add_argument("--kubeconfig", default=None, help="kubeconfig path (default ~/.kube/config)")
    commands = parser.add_subparsers(dest="command")

    cluster = commands.add_parser("cluster", help="cluster commands", description="cluster commands")
    cluster.set_defaults(print_help=cluster.print_help)
    cluster_commands = cluster.add_subparsers(dest="cluster_command")

    get_sc = cluster_commands.add_parser("get-sc", help="Get storageclass resource")
    get_sc.add_argument("-f", "--file", default="", help="file path")
    get_sc.set_defaults(handler=_report(get_storage_class_info))

    get_pv = cluster_commands.add_parser("get-pv", help="Get pv resource")
    get_pv.add_argument("-f", "--file", default="", help="file path")
    get_pv.set_defaults(handler=_report(get_persistent_volume_info))
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    logging.basicConfig(format="%(asctime)s %(message)s", datefmt="%Y/%m/%d %H:%M:%S")
    args = build_parser().parse_args(argv)
    handler = getattr(args, "handler", None)
    if handler is not None:
        return handler(args)
    print_help = getattr(args, "print_help", None)
    if print_help is not None:
        print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())