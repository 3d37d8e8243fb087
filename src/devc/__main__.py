"""Entry point for `python -m devc` / `devc`.

Subcommands:
    devc up                   Create or start the dev container, run lifecycle hooks
    devc build                Build the image from the build configuration
    devc exec <cmd...>        Run a command in the running container
    devc shell                Open an interactive login shell
    devc stop                 Stop the container
    devc down                 Stop and remove the container
    devc list                 List containers managed by devc
    devc run-user-commands    Re-run lifecycle hooks on the running container
    devc read-configuration   Print the parsed devcontainer.json
    devc init [dir]           Scaffold .devcontainer/devcontainer.json
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Sequence
from importlib.metadata import PackageNotFoundError, version


def _version() -> str:
    try:
        return version("devc")
    except PackageNotFoundError:
        return "unknown"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="devc",
        description="Create, start, and attach to development containers",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {_version()}")
    parser.add_argument(
        "--workspace-folder", help="Host workspace folder (default: the project holding the config)"
    )
    parser.add_argument("--config", help="Path to devcontainer.json (default: search upwards)")
    parser.add_argument("--name", help="Container name override")
    parser.add_argument("--image-name", help="Image tag for build (default: devc-<name>:latest)")
    parser.add_argument("--session", help="Session label (default: 'default')")
    parser.add_argument("--pull", action="store_true", help="Always pull the image")
    parser.add_argument("--push", action="store_true", help="Push the image after building")
    parser.add_argument(
        "--force-build", action="store_true", help="Rebuild even if the image exists"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command", metavar="<command>")
    sub.add_parser("up", help="Create or start the dev container and run lifecycle hooks")
    sub.add_parser("build", help="Build the image from the build configuration")
    exec_parser = sub.add_parser("exec", help="Run a command in the running container")
    exec_parser.add_argument("argv", nargs=argparse.REMAINDER, help="Command and arguments")
    sub.add_parser("shell", help="Open an interactive login shell")
    sub.add_parser("stop", help="Stop the container")
    sub.add_parser("down", help="Stop and remove the container")
    sub.add_parser("list", help="List containers managed by devc")
    sub.add_parser("run-user-commands", help="Re-run lifecycle hooks on the running container")
    sub.add_parser("read-configuration", help="Print the parsed devcontainer.json")
    init_parser = sub.add_parser("init", help="Scaffold .devcontainer/devcontainer.json")
    init_parser.add_argument("directory", nargs="?", help="Target directory")
    return parser


def _dispatch(args: argparse.Namespace) -> int:
    from devc.commands import build, manage, scaffold, up, user_commands
    from devc.commands import exec as exec_commands
    from devc.commands._context import CliOptions

    options = CliOptions(
        workspace_folder=args.workspace_folder,
        config=args.config,
        name=args.name,
        image_name=args.image_name,
        session=args.session,
        pull=args.pull,
        push=args.push,
        force_build=args.force_build,
        verbose=args.verbose,
    )

    match args.command:
        case "up":
            return asyncio.run(up.up(options))
        case "build":
            return asyncio.run(build.build(options))
        case "exec":
            argv = args.argv[1:] if args.argv[:1] == ["--"] else args.argv
            if not argv:
                print("Error: exec requires a command to run", file=sys.stderr)
                return 2
            return asyncio.run(exec_commands.exec_command(options, argv))
        case "shell":
            return asyncio.run(exec_commands.shell(options))
        case "stop":
            return asyncio.run(manage.stop(options))
        case "down":
            return asyncio.run(manage.down(options))
        case "list":
            return asyncio.run(manage.list_containers(options))
        case "run-user-commands":
            return asyncio.run(user_commands.run_user_commands(options))
        case "read-configuration":
            return scaffold.read_configuration(options)
        case "init":
            return scaffold.init(args.directory)
        case _:
            raise AssertionError(f"unhandled command {args.command!r}")


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 2

    from devc.config import get_settings
    from devc.errors import DevcError
    from devc.logger import set_level, set_verbose

    try:
        level = get_settings().logging.level
        if level:
            set_level(level)
        set_verbose(args.verbose)
        return _dispatch(args)
    except DevcError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
