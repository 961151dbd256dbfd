"""CLI entry point for the weather and image feed."""

import argparse
import json
import logging
import threading

import yaml

from wxfeed.config.loader import (
    DEFAULT_CONFIG_PATH,
    export_config,
    get_config_value,
    import_config,
)
from wxfeed.config.store import ConfigError, ConfigStore
from wxfeed.daemon import LOG_FORMAT, PollDaemon, daemon_status, stop_daemon
from wxfeed.models.reporting import CycleKind
from wxfeed.reporting.formatters import format_outcome_text

DEFAULT_PORT = 3005


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="wxfeed",
        description="Poll NWS weather and images into XML files for graphics",
    )
    parser.add_argument(
        "--config", default=DEFAULT_CONFIG_PATH, help="Config YAML path"
    )

    sub = parser.add_subparsers(dest="command")

    # run / once / status / stop
    run_p = sub.add_parser("run", help="Run the polling daemon")
    run_p.add_argument("--serve", action="store_true", help="Also serve the config API")
    run_p.add_argument("--host", default="127.0.0.1")
    run_p.add_argument("--port", type=int, default=DEFAULT_PORT)

    once_p = sub.add_parser("once", help="Run one cycle and exit")
    once_p.add_argument(
        "--only", choices=[k.value for k in CycleKind], help="Run just one cycle kind"
    )

    sub.add_parser("status", help="Show daemon status")
    sub.add_parser("stop", help="Stop a running daemon")

    # config show / set / export / import
    config_p = sub.add_parser("config", help="Config operations")
    config_sub = config_p.add_subparsers(dest="config_command")
    config_sub.add_parser("show", help="Display current config")
    set_p = config_sub.add_parser("set", help="Set a config value")
    set_p.add_argument("keyvalue", help="key=value to set")
    export_p = config_sub.add_parser("export", help="Write config as JSON")
    export_p.add_argument("path")
    import_p = config_sub.add_parser("import", help="Replace config from a JSON/YAML file")
    import_p.add_argument("path")

    # location add / remove / list
    loc_p = sub.add_parser("location", help="Manage polled locations")
    loc_sub = loc_p.add_subparsers(dest="location_command")
    loc_add = loc_sub.add_parser("add")
    loc_add.add_argument("name")
    loc_add.add_argument("latitude", type=float)
    loc_add.add_argument("longitude", type=float)
    loc_rm = loc_sub.add_parser("remove")
    loc_rm.add_argument("name")
    loc_sub.add_parser("list")

    # image add / remove
    img_p = sub.add_parser("image", help="Manage polled images")
    img_sub = img_p.add_subparsers(dest="image_command")
    img_add = img_sub.add_parser("add")
    img_add.add_argument("name")
    img_add.add_argument("url")
    img_rm = img_sub.add_parser("remove")
    img_rm.add_argument("name")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    logging.basicConfig(
        level=logging.INFO,
        format=LOG_FORMAT,
    )

    if args.command == "status":
        return daemon_status()
    if args.command == "stop":
        return stop_daemon()

    store = ConfigStore.load(args.config)

    if args.command == "run":
        return _cmd_run(store, args)
    elif args.command == "once":
        return _cmd_once(store, args)
    elif args.command == "config":
        return _cmd_config(store, args)
    elif args.command == "location":
        return _cmd_location(store, args)
    elif args.command == "image":
        return _cmd_image(store, args)
    else:
        parser.print_help()
        return 1


def _cmd_run(store: ConfigStore, args) -> int:
    daemon = PollDaemon(store)
    if args.serve:
        import uvicorn

        from wxfeed.api import create_app

        server = uvicorn.Server(
            uvicorn.Config(create_app(store, daemon), host=args.host, port=args.port)
        )
        threading.Thread(target=server.run, name="config-api", daemon=True).start()
        print(f"   Config API: http://{args.host}:{args.port}/api/config")
    daemon.start()
    return 0


def _cmd_once(store: ConfigStore, args) -> int:
    daemon = PollDaemon(store)
    kinds = [CycleKind(args.only)] if args.only else list(CycleKind)
    failed = False
    for kind in kinds:
        outcome = daemon.run_cycle(kind)
        print(format_outcome_text(outcome))
        failed = failed or not outcome.ok
    return 1 if failed else 0


def _cmd_config(store: ConfigStore, args) -> int:
    config = store.snapshot()
    if args.config_command == "show":
        print(config.model_dump_json(indent=2))
        return 0
    elif args.config_command == "set":
        key, sep, value = args.keyvalue.partition("=")
        if not sep:
            print("Error: expected KEY=VALUE")
            return 1
        key = key.strip()
        try:
            updated = store.set_value(key, value.strip())
        except (KeyError, ValueError) as e:
            print(f"Error: {e}")
            return 1
        print(f"Set {key} = {get_config_value(updated, key)}")
        return 0
    elif args.config_command == "export":
        with open(args.path, "w") as f:
            json.dump(export_config(config), f, indent=2)
        print(f"Exported config to {args.path}")
        return 0
    elif args.config_command == "import":
        try:
            with open(args.path) as f:
                store.replace(import_config(f.read()))
        except (OSError, TypeError, ValueError, yaml.YAMLError) as e:
            print(f"Error: {e}")
            return 1
        print(f"Imported config from {args.path}")
        return 0
    else:
        print("Use: config show | config set key=value | config export PATH | config import PATH")
        return 1


def _cmd_location(store: ConfigStore, args) -> int:
    try:
        if args.location_command == "add":
            store.add_location(args.name, args.latitude, args.longitude)
            print(f"Added location {args.name}")
        elif args.location_command == "remove":
            store.remove_location(args.name)
            print(f"Removed location {args.name}")
        elif args.location_command == "list":
            for loc in store.snapshot().locations:
                print(f"  {loc.name}: {loc.latitude}, {loc.longitude}")
        else:
            print("Use: location add NAME LAT LON | location remove NAME | location list")
            return 1
    except (ConfigError, ValueError) as e:
        print(f"Error: {e}")
        return 1
    return 0


def _cmd_image(store: ConfigStore, args) -> int:
    try:
        if args.image_command == "add":
            store.add_image(args.name, args.url)
            print(f"Added image {args.name}")
        elif args.image_command == "remove":
            store.remove_image(args.name)
            print(f"Removed image {args.name}")
        else:
            print("Use: image add NAME URL | image remove NAME")
            return 1
    except (ConfigError, ValueError) as e:
        print(f"Error: {e}")
        return 1
    return 0
