import argparse
import os
import shutil
import sys

from functions import (
    Consts,
    Functions,
    LabEnv,
    LabError,
    logger_docker,
    logger_hooks,
    logger_ovs,
    logger_ovslab,
)

from .lifecycle import Lab

REQUIRED_COMMANDS = ["docker", "ovs-vsctl", "ovs-ofctl", "ovs-docker"]


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ovslab",
        description="Open vSwitch lab manager: a bridge, a set of containers and declarative flows per playground.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    log_levels = ["TRACE", "DEBUG", "INFO", "WARN", "ERROR", "FATAL"]
    parser.add_argument("--log-level", metavar="LEVEL", choices=log_levels,
                        help="Log level for every ovslab logger. Also set by LOG_LEVEL.")
    parser.add_argument("--base-path", metavar="PATH",
                        help="Directory holding playgrounds/ and ovslab.yml. Also set by OVSLAB_BASE_PATH.")
    parser.add_argument("--bridge", metavar="NAME",
                        help="Bridge name when the playground does not set one. Also set by OVSLAB_BRIDGE.")
    parser.add_argument("--image", metavar="IMAGE",
                        help="Default endpoint container image. Also set by OVSLAB_IMAGE.")

    commands = parser.add_subparsers(dest="command", metavar="COMMAND")

    setup = commands.add_parser("setup", help="Set up (or reset) the lab, optionally with a playground")
    setup.add_argument("playground", nargs="?", help="Playground name; the default topology when omitted")

    destroy = commands.add_parser("destroy", help="Remove the lab's containers and flows")
    destroy.add_argument("--yes", action="store_true", help="Do not ask for confirmation")
    destroy.add_argument("--remove-bridge", action="store_true", help="Also delete the bridge without asking")

    commands.add_parser("status", help="Show bridge, container, port and flow status")
    commands.add_parser("list", help="List available playgrounds")

    flows = commands.add_parser("flows", help="Flush and re-apply a playground's flow rules")
    flows.add_argument("playground", nargs="?", help="Playground name; the active one when omitted")

    commands.add_parser("show-flows", help="Dump the bridge's current flow table")
    commands.add_parser("flush", help="Remove every flow rule from the bridge")
    commands.add_parser("learn", help="Add a flood-everything rule so the bridge forwards like a hub")
    commands.add_parser("example-flows", help="Replace the flow table with the fixed-ofport demo rules")
    commands.add_parser("containers", help="List the playground's containers and their status")
    commands.add_parser("test", help="Ping between every pair of running endpoints")

    exec_parser = commands.add_parser("exec", help="Run a command inside an endpoint container")
    exec_parser.add_argument("endpoint")
    exec_parser.add_argument("cmd", nargs=argparse.REMAINDER)

    help_parser = commands.add_parser("help", help="Show a playground's help text")
    help_parser.add_argument("playground", nargs="?")

    return parser


def _apply_args_to_env(args: argparse.Namespace) -> None:
    """Write non-None CLI arguments into os.environ so the rest of the code reads them."""
    mapping = {
        "log_level": "LOG_LEVEL",
        "base_path": "OVSLAB_BASE_PATH",
        "bridge":    "OVSLAB_BRIDGE",
        "image":     "OVSLAB_IMAGE",
    }
    for arg_name, env_name in mapping.items():
        value = getattr(args, arg_name, None)
        if value is not None:
            os.environ[env_name] = str(value)


def _missing_dependencies():
    return [command for command in REQUIRED_COMMANDS if shutil.which(command) is None]


def _check_dependencies():
    missing = _missing_dependencies()
    if missing:
        logger_ovslab.error("Missing required dependencies: %s" % ", ".join(missing))
        return False
    return True


def print_status(status):
    state = status.state
    print("\n==================== Lab Status ====================")
    if not status.bridge_exists:
        print(f"✗ Bridge: {state.bridge} (not found)")
        return
    print(f"✓ Bridge: {state.bridge} (active)")
    print(f"  Playground: {status.active_playground or 'none'}"
          + (f" ({status.metadata.get('playground_name')})" if status.metadata.get("playground_name") else ""))

    print("\nContainer Status:")
    for endpoint in state.playground.endpoints:
        status_value = state.endpoints.get(endpoint.name)
        label = status_value.value if status_value is not None else "absent"
        mark = "✓" if label == "running" else "✗"
        print(f"{mark} {endpoint.name} ({label}) - IP: {endpoint.network.cidr}")

    print("\nOVS Port Information:")
    for name, number in status.ports.items():
        print(f"  {name}: ofport={number}" if number is not None else f"  {name}: not connected")
    if status.drift:
        print(f"  Fixed port drift: {status.drift}")

    print(f"\nActive flows: {status.flow_count}")
    print("====================================================\n")


def run(args) -> int:
    if args.command == "list":
        lab = Lab(None, None, env=LabEnv.read_file())
        found = False
        print("Available Playgrounds:")
        for name, display_name, description in lab.list_playgrounds():
            found = True
            print(f"  {name}: {display_name}")
            print(f"    {description}")
        if not found:
            print("No valid playgrounds found")
            return 1
        return 0

    if args.command == "help" and (args.playground or _missing_dependencies()):
        # help for a named playground, or for the default one, needs neither ovs nor docker
        print(Lab(None, None, env=LabEnv.read_file()).registry.help_text(args.playground))
        return 0

    if not _check_dependencies():
        return 1
    lab = Lab.from_env()

    if args.command == "setup":
        lab.setup(args.playground)
        print_status(lab.status())
    elif args.command == "destroy":
        print("WARNING: This will destroy the entire lab environment!")
        lab.destroy(
            confirm=(lambda: "yes") if args.yes else (lambda: input("Are you sure? Type 'yes' to confirm: ")),
            confirm_bridge=(lambda: "y") if args.remove_bridge else
            (lambda: input("Remove bridge? [y/N]: ")),
        )
    elif args.command == "status":
        print_status(lab.status())
    elif args.command == "flows":
        result = lab.reload_flows(args.playground)
        print(f"Applied {result.applied} flow(s), {result.failed} failed")
    elif args.command == "show-flows":
        for line in lab.show_flows():
            print(line)
    elif args.command == "flush":
        lab.flush_flows()
    elif args.command in ("learn", "example-flows"):
        result = lab.add_learning_flows() if args.command == "learn" else lab.add_example_flows()
        print(f"Added {result.applied} flow(s), {result.failed} failed")
        if result.failed:
            return 1
    elif args.command == "containers":
        containers = lab.list_containers()
        for container in containers:
            mark = "✓" if container["status"] == "running" else "✗"
            print(f"{mark} {container['name']} ({container['status']})")
        if not containers:
            return 1
    elif args.command == "test":
        results = lab.test_connectivity()
        for source, target, address, reachable in results:
            print(f"{'✓' if reachable else '✗'} {source} -> {target} ({address})")
        if not results:
            return 1
    elif args.command == "exec":
        if not args.cmd:
            logger_ovslab.warning("No command provided")
            return 1
        return_code, output = lab.exec(args.endpoint, " ".join(args.cmd))
        print(output, end="" if output.endswith("\n") else "\n")
        return return_code
    elif args.command == "help":
        print(lab.help(args.playground))
    return 0


def main():
    parser = _build_parser()
    args = parser.parse_args()
    _apply_args_to_env(args)

    # Re-evaluate paths and levels now that --base-path/--log-level may have been applied
    Consts.reset()
    for logger in (logger_ovslab, logger_ovs, logger_docker, logger_hooks):
        Functions.setup_log(logger)

    if args.command is None:
        parser.print_help()
        return

    try:
        sys.exit(run(args))
    except LabError as e:
        logger_ovslab.error(str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted")
        sys.exit(130)


if __name__ == '__main__':
    main()
