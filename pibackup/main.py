import argparse
import os
import sys
from pathlib import Path

from pibackup.__version__ import __version__
from pibackup.backup.operations import run_backup
from pibackup.config import settings
from pibackup.domain.models import BackupConfig, Compression, default_image_name
from pibackup.logging import LoggerFactory, setup_logging
from pibackup.storage.exceptions import BackupError, MissingParameterError, UsageError

PROG = "pibackup"


class BackupArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that raises UsageError instead of exiting with status 2."""

    def error(self, message):
        raise UsageError(message)


def positive_int(value):
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise argparse.ArgumentTypeError(f"invalid positive integer: {value!r}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"invalid positive integer: {value!r}")
    return number


def local_node_name():
    """Hostname as ``uname -n`` reports it."""
    return os.uname().nodename


def build_parser(defaults=None):
    defaults = defaults or settings.DEFAULT_SETTINGS
    parser = BackupArgumentParser(
        prog=PROG,
        usage=f"{PROG} -o <output> [options]",
        description=f"{PROG} {__version__}: back up and rotate a Raspberry Pi boot drive image.",
        allow_abbrev=False,
    )
    required = parser.add_argument_group("Required parameters")
    required.add_argument(
        "-o", "--output-dir", metavar="DIRECTORY",
        help="Where backup will be saved and rotated.",
    )
    optional = parser.add_argument_group("Optional parameters")
    optional.add_argument(
        "-d", "--drive", default=defaults["drive"],
        help=f"Set path of drive or device on raspberry pi. Default: {defaults['drive']}",
    )
    optional.add_argument(
        "-g", "--group", default=defaults["group"],
        help=f"Override local group owner of backup image. Default: {defaults['group']}",
    )
    optional.add_argument(
        "-n", "--image-name", metavar="NAME",
        help="Rename the backup file as '<NAME>.x'. Default: <target>.img",
    )
    optional.add_argument(
        "-r", "--rotation-count", metavar="COUNT", type=positive_int,
        default=defaults["rotation_count"],
        help=f"Quantity of files to be kept. Default: {defaults['rotation_count']}",
    )
    optional.add_argument(
        "-t", "--tmp-dir", metavar="DIRECTORY", default=defaults["tmp_dir"],
        help=f"Temporary directory for the image being built. Default: {defaults['tmp_dir']}",
    )
    optional.add_argument(
        "-T", "--target", metavar="HOSTNAME",
        help="Name of the host to backup. Default: self ($ uname -n)",
    )
    optional.add_argument(
        "-u", "--user", default=defaults["user"],
        help=f"Override local user owner of backup image. Default: {defaults['user']}",
    )
    optional.add_argument(
        "-q", "--quiet", action="store_true", help="Silent mode.",
    )
    optional.add_argument(
        "-z", "--gzip", dest="compression", action="store_const",
        const=Compression.GZIP, help="Compress image using gzip.",
    )
    optional.add_argument(
        "-Z", "--xz", dest="compression", action="store_const",
        const=Compression.XZ, help="Compress image using xz.",
    )
    optional.add_argument(
        "--debug", action="store_true", help="Enable verbose debug output.",
    )
    parser.set_defaults(compression=Compression.NONE)
    return parser


def parse_config(argv=None, *, defaults=None, node_name=None):
    """Turn command line arguments into a BackupConfig.

    Raises UsageError for anything the parser rejects. ``-h`` prints the help
    and raises SystemExit(0) before any other validation.
    """
    args = build_parser(defaults).parse_args(argv)
    if not args.output_dir:
        raise MissingParameterError("-o, --output-dir")

    node_name = node_name or local_node_name()
    target = args.target or node_name
    # Values from the settings file never went through argparse type checks.
    for option, value in (
        ("-d/--drive", args.drive),
        ("-T/--target", target),
        ("-u/--user", args.user),
        ("-g/--group", args.group),
        ("-t/--tmp-dir", args.tmp_dir),
    ):
        if value is None or not str(value).strip():
            raise UsageError(f"argument {option}: value must not be empty")
    if args.image_name is not None and not args.image_name.strip():
        raise UsageError("argument -n/--image-name: value must not be empty")
    try:
        rotation_count = positive_int(args.rotation_count)
    except argparse.ArgumentTypeError as error:
        raise UsageError(f"argument -r/--rotation-count: {error}")

    return BackupConfig(
        output_dir=Path(args.output_dir),
        node_name=node_name,
        target=target,
        image_name=args.image_name or default_image_name(target),
        drive=args.drive,
        group=args.group,
        user=args.user,
        rotation_count=rotation_count,
        tmp_dir=Path(args.tmp_dir),
        quiet=args.quiet,
        compression=args.compression,
        debug=args.debug,
    )


def main(argv=None):
    defaults = settings.load_settings()
    try:
        config = parse_config(argv, defaults=defaults)
    except UsageError as error:
        print(f"{PROG}: {error}", file=sys.stderr)
        build_parser(defaults).print_help(sys.stderr)
        return 1

    log_dir = settings.get_setting("log_dir")
    setup_logging(
        quiet=config.quiet,
        debug=config.debug,
        log_dir=Path(log_dir).expanduser() if log_dir else None,
    )
    log = LoggerFactory.for_system()
    log.debug(f"{PROG} {__version__} with {config}")

    try:
        run_backup(
            config,
            ssh_command=settings.get_setting("ssh_command") or settings.DEFAULT_SSH_COMMAND,
        )
    except BackupError as error:
        log.error(str(error))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
