#
# collector module - the contract every GPFS collector follows
#
# A collector runs one mm* command per unit of work (the whole node, or one
# filesystem), parses it, and projects the result into prometheus_client metric
# families.  Every unit also reports gpfs_exporter_{collect_error,collect_timeout,
# collector_duration_seconds,last_execution}{collector=<label>}.
#
import copy
import time
from collections import namedtuple
from concurrent.futures import ThreadPoolExecutor
from logging import getLogger
from threading import Lock
from urllib.parse import unquote

from prometheus_client.core import GaugeMetricFamily

from config import Option, split_list
from runner import DeadlineExceeded

log = getLogger(__name__)

NAMESPACE = "gpfs"

Filesystem = namedtuple("Filesystem", ["name", "mountpoint"])


def fqname(subsystem, name):
    return "_".join(part for part in (NAMESPACE, subsystem, name) if part)


def add_states(family, labelvalues, observed, states, unknown="unknown"):
    """
    Emit one 0/1 sample per known state plus the synthetic unknown state.
    Returns False if the observed value is not one of the known states.
    """
    for state in states:
        family.add_metric(labelvalues + [state], 1 if state == observed else 0)
    known = observed in states
    family.add_metric(labelvalues + [unknown], 0 if known else 1)
    return known


def merge_families(families):
    """ combine families with the same name (the exporter metrics of every collector) """
    merged = dict()
    for family in families:
        if family.name in merged:
            merged[family.name].samples.extend(family.samples)
        else:
            merged[family.name] = family
    return list(merged.values())


def parse_mmlsfs(out):
    filesystems = list()
    names = set()
    for line in out.splitlines():
        items = line.split(":")
        if len(items) < 7 or items[2] == "HEADER":
            continue
        name = items[6]
        if name in names:
            continue
        names.add(name)
        mountpoint = unquote(items[8]) if len(items) > 8 else ""
        filesystems.append(Filesystem(name, mountpoint))
    return filesystems


def mmlsfs(runner, timeout):
    """ the filesystems of the cluster """
    out = runner.run("mmlsfs", ["all", "-Y", "-T"], timeout)
    return parse_mmlsfs(out)


class Observation(object):
    """ outcome of one unit of work """
    def __init__(self, label):
        self.label = label
        self.result = None
        self.error = 0
        self.timeout = 0
        self.duration = 0.0
        self.finished = 0.0


class ExporterMetrics(object):
    def __init__(self):
        labels = ["collector"]
        self.error = GaugeMetricFamily(fqname("exporter", "collect_error"),
                                       "Indicates if error has occurred during collection", labels=labels)
        self.timeout = GaugeMetricFamily(fqname("exporter", "collect_timeout"),
                                         "Indicates the collector timed out", labels=labels)
        self.duration = GaugeMetricFamily(fqname("exporter", "collector_duration_seconds"),
                                          "Collector time duration.", labels=labels)
        self.last_execution = GaugeMetricFamily(fqname("exporter", "last_execution"),
                                                "Last execution time of collector", labels=labels)

    def add(self, observation):
        label = [observation.label]
        self.error.add_metric(label, observation.error)
        self.timeout.add_metric(label, observation.timeout)
        self.duration.add_metric(label, observation.duration)
        self.last_execution.add_metric(label, int(observation.finished))

    def families(self):
        return [self.error, self.timeout, self.duration, self.last_execution]


class Collector(object):
    """
    Base class of the GPFS collectors.

    Subclasses set name, default_enabled, default_timeout and options, and
    implement metrics() (fresh, empty families), gather() (run + parse, the
    result must survive copy.deepcopy) and project() (result -> families).
    """
    name = None
    default_enabled = False
    default_timeout = 5
    options = ()

    def __init__(self, config, runner):
        self.config = config
        self.runner = runner
        self.timeout = config.get(f"collector.{self.name}.timeout", self.default_timeout)
        self.use_cache = config.get("exporter.use-cache", False)
        self._cache_lock = Lock()
        self._cache = dict()

    def option(self, key):
        flag = f"collector.{self.name}.{key}"
        if flag in self.config:
            return self.config[flag]
        for option in self.options:
            if option.name == key:
                return option.default
        raise KeyError(flag)

    def metrics(self):
        raise NotImplementedError

    def gather(self, *args):
        raise NotImplementedError

    def project(self, families, result, *args):
        raise NotImplementedError

    def describe(self):
        return list(self.metrics().values())

    def collect(self):
        log.debug(f"Collecting {self.name} metrics")
        families = self.metrics()
        status = ExporterMetrics()
        self.update(families, status)
        return list(families.values()) + status.families()

    def update(self, families, status):
        observation = self.observe(self.name, self.gather)
        status.add(observation)
        if observation.result is not None:
            self.project(families, observation.result)

    def observe(self, label, work, *args, key=None, cache=True):
        """ run work(*args), classifying the outcome; falls back to the last good result when caching """
        observation = Observation(label)
        start_time = time.time()
        try:
            observation.result = work(*args)
        except DeadlineExceeded as exc:
            log.error(f"{label}: {exc}")
            observation.timeout = 1
        except Exception as exc:
            log.error(f"{label}: error collecting: {exc}")
            observation.error = 1

        if cache and self.use_cache:
            key = label if key is None else key
            with self._cache_lock:
                if observation.result is not None:
                    self._cache[key] = copy.deepcopy(observation.result)
                elif key in self._cache:
                    log.info(f"{label}: serving cached results")
                    observation.result = copy.deepcopy(self._cache[key])

        observation.finished = time.time()
        observation.duration = observation.finished - start_time
        return observation


class FilesystemCollector(Collector):
    """ a collector that runs its command once per filesystem, in parallel """
    options = (
        Option("filesystems", "", "Filesystems to query, comma separated. Defaults to all filesystems."),
    )

    def filesystems(self, status):
        configured = split_list(self.option("filesystems"))
        if configured:
            return configured
        timeout = self.config.get("config.mmlsfs.timeout", 5)
        observation = self.observe(f"{self.name}-enumerate", mmlsfs, self.runner, timeout, cache=False)
        status.add(observation)
        if observation.result is None:
            return []
        return [filesystem.name for filesystem in observation.result]

    def update(self, families, status):
        filesystems = self.filesystems(status)
        if not filesystems:
            return
        with ThreadPoolExecutor(max_workers=len(filesystems)) as executor:
            futures = [executor.submit(self.observe, f"{self.name}-{fs}", self.gather, fs) for fs in filesystems]
        # leaving the executor waits for every filesystem
        for fs, future in zip(filesystems, futures):
            observation = future.result()
            status.add(observation)
            if observation.result is not None:
                self.project(families, observation.result, fs)
