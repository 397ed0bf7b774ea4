import sys
import logging
import argparse
from pathlib import Path
from urllib.parse import urlparse
from typing import Union

import validators
from rich.console import Console
from rich.logging import RichHandler
from art import text2art

from . import outputln, passln, failln, warnln, infoln
from .. import constants, exceptions, util, __version__
from ..config import load_config, get_config, DEFAULT_CONFIG
from ..store import PinStore, PublicKeyPins
from ..transport import PinnedTransport
from ..validator import Validator

__module__ = "tlspin.cli"

APP_BANNER = text2art("tlspin", font="tarty4")

assert sys.version_info >= (3, 9), "Requires Python 3.9 or newer"
console = Console()
logger = logging.getLogger(__name__)
cli = argparse.ArgumentParser(
    prog="tlspin",
    description=f"Release {__version__} certificate and public key pinning",
    add_help=False,
)


class _HelpAction(argparse._HelpAction):
    def __call__(self, parser, namespace, values, option_string=None):
        parser.print_help()
        parser.exit()


def _arguments():
    cli.add_argument("--version", dest="show_version", action="store_true")
    cli.add_argument(
        "-q",
        "--quiet",
        help="show no stdout, only the exit code reports the result",
        dest="quiet",
        action="store_true",
    )
    cli.add_argument("--no-banner", dest="hide_banner", action="store_true")
    cli.add_argument(
        "-c",
        "--config-file",
        help="pinning configuration file",
        dest="config_file",
        default=DEFAULT_CONFIG,
    )
    cli.add_argument(
        "-p",
        "--pins",
        help="pinned certificate or public key files, or directories containing them",
        dest="pins",
        nargs="*",
        default=None,
    )
    cli.add_argument(
        "--public-keys",
        help="match on the public keys of the pinned certificates",
        dest="use_public_keys",
        action="store_true",
    )
    group = cli.add_mutually_exclusive_group()
    group.add_argument(
        "-v",
        "--errors-only",
        help="set logging level to ERROR (default CRITICAL)",
        dest="log_level_error",
        action="store_true",
    )
    group.add_argument(
        "-vv",
        "--warning",
        help="set logging level to WARNING (default CRITICAL)",
        dest="log_level_warning",
        action="store_true",
    )
    group.add_argument(
        "-vvv",
        "--info",
        help="set logging level to INFO (default CRITICAL)",
        dest="log_level_info",
        action="store_true",
    )
    group.add_argument(
        "-vvvv",
        "--debug",
        help="set logging level to DEBUG (default CRITICAL)",
        dest="log_level_debug",
        action="store_true",
    )
    sub_parsers = cli.add_subparsers()
    check_parser = sub_parsers.add_parser(
        "check",
        prog="tlspin check",
        description=cli.description,
        add_help=False,
        help="Connect to each target and verify its certificate chain against the pins",
        parents=[cli],
    )
    check_parser.set_defaults(subcommand="check")
    check_parser.add_argument("-h", "--help", action=_HelpAction)
    check_parser.add_argument(
        "-t",
        "--targets",
        dest="targets",
        nargs="*",
        help="hosts (and ports) targets to test. ~$ tlspin check -t google.com:443 github.io",
    )
    check_parser.add_argument(
        "--no-domain-validation",
        help="evaluate the chain without binding it to the target hostname",
        dest="no_domain_validation",
        action="store_true",
    )
    check_parser.add_argument(
        "--disable-sni",
        help="Do not negotiate SNI using IDNA encoded host",
        dest="disable_sni",
        action="store_true",
    )
    pins_parser = sub_parsers.add_parser(
        "pins",
        prog="tlspin pins",
        description=cli.description,
        add_help=False,
        help="List the pinned certificates and public keys that were loaded",
        parents=[cli],
    )
    pins_parser.set_defaults(subcommand="pins")
    pins_parser.add_argument("-h", "--help", action=_HelpAction)


def _log_level(args: argparse.Namespace) -> int:
    log_level = logging.CRITICAL
    if args.log_level_error:
        log_level = logging.ERROR
    if args.log_level_warning:
        log_level = logging.WARNING
    if args.log_level_info:
        log_level = logging.INFO
    if args.log_level_debug:
        log_level = logging.DEBUG
    return log_level


def _pin_config(cli_args: dict, filename: Union[str, None]) -> dict:
    custom = load_config(filename)
    config = get_config(custom_values=custom)
    if cli_args.get("pins"):
        config["pinning"]["certificates"] = cli_args["pins"]
    if cli_args.get("use_public_keys"):
        config["pinning"]["mode"] = constants.MODE_PUBLIC_KEY
    if cli_args.get("no_domain_validation"):
        config["pinning"]["validate_domain"] = False
    if cli_args.get("disable_sni"):
        config["defaults"]["use_sni"] = False
    targets = []
    for hostname in cli_args.get("targets", []) or []:
        if not hostname.startswith("http"):
            hostname = f"https://{hostname}"
        parsed = urlparse(hostname)
        if validators.domain(parsed.hostname) is not True:
            raise AttributeError(
                f"URL {hostname} hostname {parsed.hostname} is invalid"
            )
        targets.append(
            {
                "hostname": parsed.hostname,
                "port": 443 if not parsed.port else parsed.port,
            }
        )
    if targets:
        config["targets"] = targets
    return config


def check(config: dict, con: Union[Console, None] = None) -> bool:
    use_icons = any(
        n.get("type") == "console" and n.get("use_icons")
        for n in config.get("outputs", [])
    )
    validator = Validator.from_config(config)
    # give key derivation the connect timeout before the first handshake
    if validator.store.wait_ready(1, config["defaults"].get("timeout", 3)):
        if validator.store.dropped:
            warnln(
                f"{validator.store.dropped} pinned entries could not be parsed",
                con=con,
                use_icons=use_icons,
            )
    results = []
    for target in config["targets"]:
        transport = PinnedTransport(
            target["hostname"], validator=validator, port=target["port"]
        )
        try:
            transport.connect(
                use_sni=config["defaults"].get("use_sni", True),
                timeout=config["defaults"].get("timeout", 3),
            )
            passln(
                f"trusted {len(transport.certificate_chain)} certificate chain over {transport.negotiated_protocol} from {transport.peer_address}",
                hostname=transport.hostname,
                port=transport.port,
                con=con,
                use_icons=use_icons,
            )
            results.append(True)
        except exceptions.ValidationError as err:
            failln(
                str(err),
                hostname=transport.hostname,
                port=transport.port,
                con=con,
                use_icons=use_icons,
            )
            results.append(False)
        except exceptions.TransportError as err:
            logger.debug(err, exc_info=True)
            failln(
                str(err),
                result_text="ERROR",
                hostname=transport.hostname,
                port=transport.port,
                con=con,
                use_icons=use_icons,
            )
            results.append(False)
    return all(results)


def pins(config: dict, con: Union[Console, None] = None) -> bool:
    store = PinStore.from_config(config)
    snapshot = store.wait_ready(1, config["defaults"].get("timeout", 3))
    if snapshot is None:
        failln("pinned public keys could not be derived in time", con=con)
        return False
    label = "SPKI" if isinstance(snapshot, PublicKeyPins) else "SHA256"
    values = (
        snapshot.keys
        if isinstance(snapshot, PublicKeyPins)
        else snapshot.certificates
    )
    for value in sorted(values):
        infoln(
            util.str_n_split(util.sha256_fingerprint(value), delimiter=":"),
            result_text=label,
            con=con,
        )
    if store.dropped:
        warnln(f"{store.dropped} pinned entries could not be parsed", con=con)
    if not values:
        failln(exceptions.VALIDATION_ERROR_NO_PINS, con=con)
        return False
    return True


def main():
    _arguments()
    args = cli.parse_args()
    if args.show_version:
        if args.hide_banner:
            console.print(f"tlspin=={__version__}")
        else:
            console.print(
                f"[bold][{constants.CLI_COLOR_PRIMARY}]{APP_BANNER}[/{constants.CLI_COLOR_PRIMARY}][/bold]\ntlspin=={__version__}"
            )
        sys.exit(0)

    try:
        logger.info(f"subcommand {args.subcommand}")
    except AttributeError:
        cli.print_help()
        sys.exit(0)

    handlers = []
    log_format = "%(asctime)s - %(name)s - [%(levelname)s] %(message)s"
    if not args.quiet and sys.stdout.isatty():
        log_format = "%(message)s"
        handlers.append(RichHandler(rich_tracebacks=True))
    logging.basicConfig(format=log_format, level=_log_level(args), handlers=handlers)

    config = _pin_config(vars(args), args.config_file)
    con = None if args.quiet else console
    if con and not args.hide_banner:
        console.print(
            f"[bold][{constants.CLI_COLOR_PRIMARY}]{APP_BANNER}[/{constants.CLI_COLOR_PRIMARY}][/bold]"
        )
    if Path(args.config_file).is_file():
        outputln(
            args.config_file,
            aside="core",
            result_text="CONFIG",
            result_icon=":file_folder:",
            con=con,
        )
    if args.subcommand == "pins":
        sys.exit(0 if pins(config, con=con) else 1)
    if args.subcommand == "check":
        if not config.get("targets"):
            raise RuntimeError("No targets defined")
        sys.exit(0 if check(config, con=con) else 1)


if __name__ == "__main__":
    main()
