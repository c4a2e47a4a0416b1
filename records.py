#
# records.py - parser for the colon delimited "-Y" output of the mm* commands
#
# Every line is  <command>:<section>:<HEADER|version>:...  and the HEADER line of
# a section names the columns of the value lines that follow it.
#
import datetime
from logging import getLogger
from urllib.parse import unquote

from dateutil import tz

log = getLogger(__name__)

# value kinds
STRING = "string"
QUOTED = "quoted"   # percent-escaped string
FLOAT = "float"
KB = "kb"           # number in KiB, exposed in bytes
TIME = "time"       # percent-escaped ANSI C date, exposed as unix seconds

ANSIC = "%a %b %d %H:%M:%S %Y"


class ParseError(ValueError):
    pass


def now_location():
    """ the zone used to interpret dates printed by the mm* commands; tests replace this """
    return tz.tzlocal()


def parse_number(value, scale=1):
    if value.strip().lower() in ("nan", "-nan"):
        return 0
    try:
        number = int(value)
    except ValueError:
        try:
            number = float(value)
        except ValueError:
            raise ParseError(f"unable to parse number {value!r}")
    return number * scale


def parse_time(value):
    text = unquote(value)
    try:
        when = datetime.datetime.strptime(text, ANSIC)
    except ValueError:
        raise ParseError(f"unable to parse time {text!r}")
    return int(when.replace(tzinfo=now_location()).timestamp())


class Field(object):
    """ where a column goes in a Record and how its text is converted """
    def __init__(self, target, kind=STRING, required=True):
        self.target = target
        self.kind = kind
        self.required = required

    @property
    def default(self):
        return "" if self.kind in (STRING, QUOTED) else 0

    def convert(self, value):
        if self.kind == STRING:
            return value
        if self.kind == QUOTED:
            return unquote(value)
        try:
            if self.kind == TIME:
                return parse_time(value)
            return parse_number(value, 1024 if self.kind == KB else 1)
        except ParseError as exc:
            if self.required:
                raise
            log.error(f"{self.target}: {exc}")
            return self.default


class Record(dict):
    """ one value line; keys are the Field targets """
    def __init__(self, section, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.section = section
        self.columns = set()


def parse(out, prefix, fields, sections=None, strip=False, exact=False):
    """
    Turn command output into a list of Records.

    fields maps column names to Field.  Lines not starting with prefix, or with
    fewer than 3 fields, are ignored.  Unknown columns are ignored.  A value line
    shorter than its header (or of a different length, when exact) is logged and
    skipped.  A required field that fails to convert raises ParseError.
    """
    headers = dict()
    records = list()
    for line in out.splitlines():
        if strip:
            line = line.strip()
        if not line.startswith(prefix):
            continue
        items = line.split(":")
        if len(items) < 3:
            continue
        section = items[1]
        if sections is not None and section not in sections:
            continue
        if items[2] == "HEADER":
            headers[section] = items
            continue
        header = headers.get(section)
        if header is None:
            log.debug(f"no header for section '{section}', skipping: {line}")
            continue
        if len(items) < len(header) or (exact and len(items) != len(header)):
            log.error(f"header/value mismatch ({len(header)} != {len(items)}), skipping: {line}")
            continue

        record = Record(section, ((field.target, field.default) for field in fields.values()))
        for name, value in zip(header, items):
            field = fields.get(name)
            if field is not None:
                record[field.target] = field.convert(value)
                record.columns.add(field.target)
        records.append(record)
    return records
