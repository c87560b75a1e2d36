#!/usr/bin/env python3
"""A CLI for the openwebnet library."""

from __future__ import annotations

import asyncio
import logging
import sys
from datetime import datetime as dt
from typing import Any, Final, TextIO

import click
import voluptuous as vol
import yaml
from colorama import Fore, Style, init as colorama_init

from openwebnet_gw import GatewayListener, GracefulExit, gateway_factory
from openwebnet_gw import exceptions as exc
from openwebnet_gw.helpers import deep_merge
from openwebnet_gw.schemas import (
    SCH_GLOBAL_CONFIG,
    SZ_AUTO_RECONNECT,
    SZ_CONFIG,
    SZ_DISABLE_DISCOVERY,
)
from openwebnet_tx import DeviceType, OpenMessage, Response, Where, parse as parse_frame
from openwebnet_tx.const import DEFAULT_BUS_PASSWORD
from openwebnet_tx.logger import CONSOLE_COLS, DEFAULT_DATEFMT, DEFAULT_FMT
from openwebnet_tx.schemas import SZ_FRAME_LOG, SZ_PASSWORD

SZ_DBG_MODE: Final = "debug_mode"
SZ_GATEWAY: Final = "gateway"
SZ_INPUT_FILE: Final = "input_file"
SZ_LONG_FORMAT: Final = "long_format"

DEBUG_ADDR: Final = "0.0.0.0"
DEBUG_PORT: Final = 5678

# this is called after import colorlog to ensure its handlers wrap the correct streams
logging.basicConfig(level=logging.WARNING, format=DEFAULT_FMT, datefmt=DEFAULT_DATEFMT)


DISCOVER: Final = "discover"
EXECUTE: Final = "execute"
MONITOR: Final = "monitor"
PARSE: Final = "parse"

CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])

LIB_KEYS = tuple(SCH_GLOBAL_CONFIG({}).keys())
LIB_CFG_KEYS = tuple(SCH_GLOBAL_CONFIG({})[SZ_CONFIG].keys())


def start_debugging(wait_for_client: bool) -> None:
    """Listen for a (remote) debugpy client, optionally waiting for it to attach."""

    import debugpy  # type: ignore[import-untyped]

    debugpy.listen(address=(DEBUG_ADDR, DEBUG_PORT))
    print(f" - debugging is enabled, listening on: {DEBUG_ADDR}:{DEBUG_PORT}")

    if wait_for_client:
        print("   - execution paused, waiting for debugger to attach...")
        debugpy.wait_for_client()


def split_kwargs(obj: tuple[dict, dict], kwargs: dict) -> tuple[dict, dict]:
    """Split kwargs into cli/library kwargs (unset library options are dropped)."""
    cli_kwargs, lib_kwargs = obj

    cli_kwargs.update(
        {k: v for k, v in kwargs.items() if k not in LIB_KEYS + LIB_CFG_KEYS}
    )
    lib_kwargs.update({k: v for k, v in kwargs.items() if k in LIB_KEYS and v})
    lib_kwargs[SZ_CONFIG].update(
        {k: v for k, v in kwargs.items() if k in LIB_CFG_KEYS and v is not None}
    )

    return cli_kwargs, lib_kwargs


def load_config_file(config_file: TextIO) -> dict[str, Any]:
    """Return the (YAML) config file as a dict, or raise a click.BadParameter."""

    try:
        config = yaml.safe_load(config_file) or {}
    except yaml.YAMLError as err:
        raise click.BadParameter(f"Invalid YAML: {err}") from err

    if not isinstance(config, dict):
        raise click.BadParameter("The config file is not a dict")
    return config


# Args/Params for all commands
@click.group(context_settings=CONTEXT_SETTINGS)
@click.option("-z", "--debug-mode", count=True, help="enable debugger")
@click.option("-c", "--config-file", type=click.File("r"), help="a YAML config file")
@click.option("-lf", "--long-format", is_flag=True, help="dont truncate STDOUT")
@click.pass_context
def cli(ctx: click.Context, config_file: TextIO | None = None, **kwargs: Any) -> None:
    """A CLI for the openwebnet library."""

    if kwargs[SZ_DBG_MODE] > 0:  # Do first
        start_debugging(kwargs[SZ_DBG_MODE] == 1)

    kwargs, lib_kwargs = split_kwargs(({}, {SZ_CONFIG: {}}), kwargs)

    if config_file:  # CLI takes precedence
        lib_kwargs = deep_merge(lib_kwargs, load_config_file(config_file))

    ctx.obj = kwargs, lib_kwargs


# Args/Params for a file of frames only
class FileCommand(click.Command):  # client.py parse <file>
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.params.insert(  # input_file
            0, click.Argument(("input-file",), type=click.File("r"), default=sys.stdin)
        )


# Args/Params for a gateway only
class GatewayCommand(click.Command):  # client.py <command> <gateway> --password xxx
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.params.insert(0, click.Argument((SZ_GATEWAY,)))
        self.params.insert(  # --password
            1,
            click.Option(
                ("-P", "--password"),
                type=click.STRING,
                help="the gateway password (BUS gateways only)",
            ),
        )
        self.params.insert(  # --frame-log
            2,
            click.Option(
                ("-o", "--frame-log"),
                type=click.Path(),
                help="Log all frames to this file",
            ),
        )
        self.params.insert(  # --auto-reconnect
            3,
            click.Option(
                ("-r/-nr", "--auto-reconnect/--no-auto-reconnect"),
                default=None,
                help="reconnect if the connection is lost",
            ),
        )


#
# 1/4: PARSE (a file of frames)
@click.command(cls=FileCommand)
@click.pass_obj
def parse(obj: tuple[dict, dict], **kwargs: Any) -> tuple[str, dict, dict]:
    """Parse a file of frames (one per line), and print their decoding."""
    config, lib_config = split_kwargs(obj, kwargs)
    return PARSE, lib_config, config


#
# 2/4: MONITOR (print the events, +/- discovery)
@click.command(cls=GatewayCommand)
@click.option("-d/-nd", "--discover/--no-discover", default=False)
@click.pass_obj
def monitor(obj: tuple[dict, dict], **kwargs: Any) -> tuple[str, dict, dict]:
    """Monitor a gateway for events (until Ctrl-C)."""
    config, lib_config = split_kwargs(obj, kwargs)

    if not config["discover"]:
        lib_config[SZ_CONFIG][SZ_DISABLE_DISCOVERY] = True

    return MONITOR, lib_config, config


#
# 3/4: EXECUTE (send frames, print the responses, then quit)
@click.command(cls=GatewayCommand)
@click.option(  # --exec-cmd '*1*1*0311#4#01##'
    "-x",
    "--exec-cmd",
    type=click.STRING,
    multiple=True,
    required=True,
    help="e.g. '*1*1*0311#4#01##'",
)
@click.pass_obj
def execute(obj: tuple[dict, dict], **kwargs: Any) -> tuple[str, dict, dict]:
    """Send each frame to a gateway, print its response, then quit."""
    config, lib_config = split_kwargs(obj, kwargs)

    lib_config[SZ_CONFIG][SZ_AUTO_RECONNECT] = False
    lib_config[SZ_CONFIG][SZ_DISABLE_DISCOVERY] = True

    return EXECUTE, lib_config, config


#
# 4/4: DISCOVER (the devices of a gateway, then quit)
@click.command(cls=GatewayCommand)
@click.pass_obj
def discover(obj: tuple[dict, dict], **kwargs: Any) -> tuple[str, dict, dict]:
    """Discover the devices of a gateway, print them, then quit."""
    config, lib_config = split_kwargs(obj, kwargs)

    lib_config[SZ_CONFIG][SZ_AUTO_RECONNECT] = False
    lib_config[SZ_CONFIG][SZ_DISABLE_DISCOVERY] = False

    return DISCOVER, lib_config, config


class PrintingListener(GatewayListener):
    """Print the events of a gateway to STDOUT."""

    def __init__(self, long_format: bool = False) -> None:
        self._con_cols = None if long_format else CONSOLE_COLS

    def _print(self, text: str, colour: str = "") -> None:
        print(f"{colour}{dt.now():%H:%M:%S.%f}"[:-3] + f" {text}"[: self._con_cols])

    def on_connected(self) -> None:
        self._print("Connected", Fore.GREEN)

    def on_connection_error(self, err: exc.OwnException) -> None:
        self._print(f"Connection error: {err}", Fore.RED)

    def on_connection_closed(self) -> None:
        self._print("Connection closed", Fore.YELLOW)

    def on_disconnected(self, err: exc.OwnException | None) -> None:
        self._print(f"Disconnected: {err}", Style.BRIGHT + Fore.RED)

    def on_reconnected(self) -> None:
        self._print("Reconnected", Fore.GREEN)

    def on_event_message(self, msg: OpenMessage) -> None:
        colour = Fore.CYAN if msg.is_command else Fore.YELLOW
        self._print(msg.to_string_verbose(), colour)

    def on_new_device(
        self, where: Where | None, device_type: DeviceType, msg: OpenMessage
    ) -> None:
        where_ = where.value if where else None
        self._print(
            f"Found: {device_type.description} at WHERE={where_} ({msg})",
            Style.BRIGHT + Fore.MAGENTA,
        )

    def on_discovery_completed(self) -> None:
        self._print("Discovery completed", Style.BRIGHT + Fore.MAGENTA)


def print_response(frame: str, response: Response) -> None:
    colour = Fore.GREEN if response.is_success else Fore.RED
    print(f"{colour}{frame} --> {[str(m) for m in response.messages]}")
    for msg in response.messages[:-1]:
        print(f"    {msg.to_string_verbose()}")


def parse_file(input_file: TextIO, long_format: bool = False) -> None:
    """Print the decoding of each frame in a file (blank & '#' lines are skipped)."""

    con_cols = None if long_format else CONSOLE_COLS

    for line in input_file:
        if not (frame := line.strip()) or frame.startswith("#"):
            continue

        try:
            msg = parse_frame(frame)
        except exc.FrameUnsupported as err:
            print(f"{Fore.YELLOW}{frame} < Unsupported: {err}"[:con_cols])
        except exc.FrameError as err:
            print(f"{Fore.RED}{frame} < Invalid: {err}"[:con_cols])
        else:
            print(f"{Fore.GREEN}{msg.to_string_verbose()}"[:con_cols])


async def async_main(command: str, lib_kwargs: dict, **kwargs: Any) -> None:
    """Run the command (other than parse)."""

    try:
        lib_kwargs = SCH_GLOBAL_CONFIG(lib_kwargs)
    except vol.Invalid as err:
        print(f"\r\nclient.py: Invalid config: {err}")
        return

    gwy = gateway_factory(
        kwargs[SZ_GATEWAY],
        password=kwargs.get(SZ_PASSWORD) or DEFAULT_BUS_PASSWORD,
        config=lib_kwargs[SZ_CONFIG],
        frame_log=lib_kwargs[SZ_FRAME_LOG],
    )
    listener = PrintingListener(kwargs[SZ_LONG_FORMAT])
    gwy.subscribe(listener)

    print(f"\r\nclient.py: Connecting to {gwy}...")

    try:  # main code here
        await gwy.connect()

        if command == EXECUTE:
            for frame in kwargs["exec_cmd"]:
                print_response(frame, await gwy.send(parse_frame(frame)))

        elif command == DISCOVER:
            await gwy.discover_devices()
            await gwy.wait_for_listeners()

        elif command == MONITOR:
            if kwargs["discover"]:
                await gwy.discover_devices()
            await asyncio.Event().wait()  # until Ctrl-C

    except asyncio.CancelledError:
        msg = "ended via: CancelledError (e.g. SIGINT)"
    except GracefulExit:
        msg = "ended via: GracefulExit"
    except exc.OwnException as err:
        msg = f"ended via: {err.__class__.__name__}: {err}"
    else:
        msg = "ended without error"
    finally:
        await gwy.close_connection()

    print(f"\r\nclient.py: Gateway closed: {msg}")


cli.add_command(parse)
cli.add_command(monitor)
cli.add_command(execute)
cli.add_command(discover)


def main() -> None:
    print("\r\nclient.py: Starting openwebnet...")

    try:
        result = cli(standalone_mode=False)
    except click.ClickException as err:
        print(f"Error: {err}")
        sys.exit(-1)

    if isinstance(result, int):
        sys.exit(result)

    (command, lib_kwargs, kwargs) = result

    colorama_init(autoreset=True)

    if command == PARSE:
        parse_file(kwargs[SZ_INPUT_FILE], kwargs[SZ_LONG_FORMAT])
        return

    if sys.platform == "win32":
        print(" - event_loop_policy set for win32")  # do before asyncio.run()
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

    try:
        asyncio.run(async_main(command, lib_kwargs, **kwargs))
    except KeyboardInterrupt:
        print("\r\nclient.py: Gateway closed: ended via: KeyboardInterrupt")

    print(" - finished openwebnet.\r\n")


if __name__ == "__main__":
    main()
