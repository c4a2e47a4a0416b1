#
# config.py - command line flags and the optional yaml config file
#
import argparse
import re

import yaml
from logging import getLogger

log = getLogger(__name__)

DURATION_UNITS = {"ns": 1e-9, "us": 1e-6, "µs": 1e-6, "ms": 1e-3, "s": 1, "m": 60, "h": 3600}
DURATION_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


class Option(object):
    """ a collector specific flag, added as --collector.<name>.<option> """
    def __init__(self, name, default, help, type=str):
        self.name = name
        self.default = default
        self.help = help
        self.type = type

    def add_to(self, parser, collector):
        flag = f"collector.{collector}.{self.name}"
        if self.type is bool:
            parser.add_argument(f"--{flag}", dest=flag, default=self.default, action=argparse.BooleanOptionalAction,
                                help=self.help)
        else:
            parser.add_argument(f"--{flag}", dest=flag, default=self.default, type=self.type, help=self.help)


def parse_duration(value):
    """ '90s', '1m', '1h30m', '1.5s' -> seconds """
    value = value.strip()
    if value in ("0", ""):
        return 0.0
    pos = 0
    seconds = 0.0
    for match in DURATION_RE.finditer(value):
        if match.start() != pos:
            break
        seconds += float(match.group(1)) * DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos == 0 or pos != len(value):
        raise ValueError(f"'{value}' is not a valid duration")
    return seconds


def duration_buckets(value):
    """ argparse type for histogram buckets written as durations: '1s,5s,1m' """
    if not isinstance(value, str):
        return sorted(float(bucket) for bucket in value)
    try:
        return sorted(parse_duration(bucket) for bucket in value.split(","))
    except ValueError:
        raise argparse.ArgumentTypeError(f"'{value}' is not a valid bucket duration")


def split_list(value):
    """ comma separated flag value -> list, ignoring blanks """
    if not value:
        return []
    if not isinstance(value, str):
        return [str(item) for item in value]
    return [item.strip() for item in value.split(",") if item.strip()]


# load the config file
def load_config(inputfile):
    with open(inputfile) as f:
        try:
            config = yaml.load(f, Loader=yaml.FullLoader)
        except yaml.YAMLError as exc:
            log.error(f"Error reading config file: {exc}")
            raise
    if config is None:
        return dict()
    if not isinstance(config, dict):
        raise ValueError(f"{inputfile}: expected a mapping of flag names to values")
    return config


def build_parser(description, registry):
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument("-c", "--configfile", dest="configfile", default=None,
                        help="yaml file of flag defaults, ie: 'collector.mmdf: true'")
    parser.add_argument("--no_syslog", action="store_true", default=False, help="Disable syslog logging")
    parser.add_argument("-v", "--verbosity", action="count", default=0, help="increase output verbosity")
    parser.add_argument("--version", dest="version", default=False, action="store_true",
                        help="Display version number")
    parser.add_argument("--exporter.use-cache", dest="exporter.use-cache", default=False,
                        action=argparse.BooleanOptionalAction,
                        help="Serve the last good results of a collector when it fails")
    parser.add_argument("--exporter.sudo-command", dest="exporter.sudo-command", default="sudo",
                        help="Command used to run the GPFS binaries with privileges, empty to disable")
    parser.add_argument("--config.mmlsfs.timeout", dest="config.mmlsfs.timeout", default=5, type=int,
                        help="Timeout for mmlsfs execution")
    registry.add_arguments(parser)
    return parser


def parse_config(parser, argv=None):
    """
    Parse the command line, with the yaml file named by --configfile supplying
    defaults.  Returns a dict keyed by flag name, ie: config['collector.mmdf.timeout']
    """
    args, _ = parser.parse_known_args(argv)
    if args.configfile is not None:
        known = vars(args)
        defaults = dict()
        for key, value in load_config(args.configfile).items():
            if key not in known:
                log.warning(f"Unknown setting '{key}' in {args.configfile}, ignored")
                continue
            defaults[key] = value
        parser.set_defaults(**defaults)
    return vars(parser.parse_args(argv))
