#
# batch.py - run one collector once and write its output for the node_exporter
#            textfile collector
#
# The slow collectors (mmdf, mmlssnapshot) run from cron instead of on every
# scrape.  When a filesystem fails, its samples from the previous run are kept
# in the file along with an error flag.
#
import fcntl
import os
import sys
import tempfile
from logging import getLogger

from prometheus_client import CollectorRegistry, generate_latest
from prometheus_client.metrics_core import Metric
from prometheus_client.parser import text_string_to_metric_families

# local imports
import gpfs_collectors
from collector import NAMESPACE, fqname
from config import build_parser
from gpfs_exporter import load
from runner import CommandRunner

log = getLogger(__name__)

ERROR = fqname("exporter", "collect_error")
TIMEOUT = fqname("exporter", "collect_timeout")
ENUMERATE = "enumerate"


class LockHeld(Exception):
    pass


class FileLock(object):
    """ advisory lock held for the life of the run """
    def __init__(self, path):
        self.path = path
        self.file = None

    def __enter__(self):
        self.file = open(self.path, "a")
        try:
            fcntl.flock(self.file.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            self.file.close()
            raise LockHeld(f"Lock file {self.path} is locked")
        return self

    def __exit__(self, exc_type, exc_value, tb):
        fcntl.flock(self.file.fileno(), fcntl.LOCK_UN)
        self.file.close()


class FamilyList(object):
    """ already collected families, registered for rendering """
    def __init__(self, families):
        self.families = families

    def collect(self):
        return self.families


def failed_units(families, name):
    """ the filesystems (or 'enumerate') whose unit reported an error or timeout """
    prefix = f"{name}-"
    failed = set()
    for family in families:
        if family.name not in (ERROR, TIMEOUT):
            continue
        for sample in family.samples:
            label = sample.labels.get("collector", "")
            if sample.value == 1 and label.startswith(prefix):
                failed.add(label[len(prefix):])
    return failed


def sample_fs(sample, name):
    """ the filesystem a sample belongs to, None if it belongs to none """
    if "fs" in sample.labels:
        return sample.labels["fs"]
    label = sample.labels.get("collector", "")
    if label.startswith(f"{name}-"):
        return label[len(name) + 1:]
    return None


def merge(fresh, previous, failed, name):
    """
    Fresh families, plus from the previous output: the gpfs samples of failed
    filesystems (all of them when enumeration failed, flagged as errors) and
    every family outside the gpfs namespace.
    """
    merged = {family.name: family for family in fresh}
    fresh_fs = {sample_fs(sample, name) for family in fresh for sample in family.samples}
    for family in previous:
        if not family.name.startswith(f"{NAMESPACE}_"):
            # other producers writing into the same file, last writer wins
            merged[family.name] = family
            continue
        for sample in family.samples:
            fs = sample_fs(sample, name)
            if fs is None or fs == ENUMERATE:
                continue
            if fs not in failed and (ENUMERATE not in failed or fs in fresh_fs):
                continue
            if family.name not in merged:
                merged[family.name] = Metric(family.name, family.documentation, family.type)
            target = merged[family.name]
            if family.name == ERROR:
                sample = sample._replace(value=1)
            if any(s.name == sample.name and s.labels == sample.labels for s in target.samples):
                continue
            log.debug(f"Keeping previous sample {sample.name}{sample.labels}")
            target.samples.append(sample)
    return list(merged.values())


def read_previous(output):
    """ families of the existing output, none if it is missing or unreadable """
    if not os.path.exists(output):
        return []
    with open(output) as f:
        text = f.read()
    try:
        return list(text_string_to_metric_families(text))
    except ValueError as exc:
        log.error(f"Unable to parse previous output {output}, not keeping its samples: {exc}")
        return []


def write_atomic(output, content):
    """ tempfile in the output directory, then rename over the output """
    directory = os.path.dirname(os.path.abspath(output))
    tmp = tempfile.NamedTemporaryFile("wb", dir=directory, prefix=os.path.basename(output), delete=False)
    try:
        with tmp:
            tmp.write(content)
            tmp.flush()
            os.fchmod(tmp.fileno(), 0o644)
        os.replace(tmp.name, output)
    except OSError:
        os.unlink(tmp.name)
        raise


def collect(collector_class, config, output, runner):
    """ gather one collector and write the output file; returns False if any unit failed """
    registry = CollectorRegistry()
    registry.register(collector_class(config, runner))
    families = list(registry.collect())

    failed = failed_units(families, collector_class.name)
    if failed:
        log.error(f"Error detected with scrape: {', '.join(sorted(failed))}")
        families = merge(families, read_previous(output), failed, collector_class.name)

    log.debug(f"Writing {output}")
    rendered = CollectorRegistry()
    rendered.register(FamilyList(families))
    write_atomic(output, generate_latest(rendered))
    return not failed


def main(collector_class, description):
    """ command line entry point shared by the batch exporters """
    registry = gpfs_collectors.default_registry()
    parser = build_parser(description, registry)
    parser.add_argument("--output", dest="output", required=True, help="Path to node exporter collected file")
    parser.add_argument("--lockfile", dest="lockfile", default=f"/tmp/gpfs_{collector_class.name}_exporter.lock",
                        help="Lock file path")
    config = load(parser)

    runner = CommandRunner(sudo=config["exporter.sudo-command"])
    try:
        with FileLock(config["lockfile"]):
            ok = collect(collector_class, config, config["output"], runner)
    except LockHeld as exc:
        log.error(str(exc))
        sys.exit(1)
    except (OSError, ValueError) as exc:
        log.error(f"Unable to write {config['output']}: {exc}")
        sys.exit(1)

    if not ok:
        sys.exit(1)
