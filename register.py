#
# register.py - the registry of known collectors, and the per-scrape orchestrator
#               that runs the enabled ones in parallel.
#
import argparse
from concurrent.futures import ThreadPoolExecutor
from threading import Lock

from logging import getLogger

from collector import merge_families

log = getLogger(__name__)


class Registry(object):
    """ name -> (factory, default enabled), built at startup """
    def __init__(self):
        self._lock = Lock()
        self.factories = dict()
        self.default_enabled = dict()

    def register(self, name, factory, default_enabled=False):
        with self._lock:
            self.factories[name] = factory
            self.default_enabled[name] = default_enabled

    def names(self):
        with self._lock:
            return sorted(self.factories)

    def add_arguments(self, parser):
        """ --collector.<name>, --collector.<name>.timeout and each collector's own options """
        for name in self.names():
            factory = self.factories[name]
            state = "enabled" if self.default_enabled[name] else "disabled"
            parser.add_argument(f"--collector.{name}", dest=f"collector.{name}", default=self.default_enabled[name],
                                action=argparse.BooleanOptionalAction,
                                help=f"Enable the {name} collector (default: {state}).")
            parser.add_argument(f"--collector.{name}.timeout", dest=f"collector.{name}.timeout", type=int,
                                default=factory.default_timeout, help=f"Timeout for {name} execution")
            for option in factory.options:
                option.add_to(parser, name)

    def enabled(self, config):
        return [name for name in self.names() if config.get(f"collector.{name}", self.default_enabled[name])]

    def build(self, config, runner):
        """ instantiate the enabled collectors """
        collectors = dict()
        for name in self.enabled(config):
            log.debug(f"Enabled collector {name}")
            collectors[name] = self.factories[name](config, runner)
        return GPFSCollector(collectors)


class GPFSCollector(object):
    """ prometheus_client collector that runs every live collector in parallel and merges their output """
    def __init__(self, collectors):
        self.collectors = collectors

    def describe(self):
        families = list()
        for collector in self.collectors.values():
            families.extend(collector.describe())
        return families

    def collect(self):
        if not self.collectors:
            return []
        with ThreadPoolExecutor(max_workers=len(self.collectors)) as executor:
            futures = [executor.submit(collector.collect) for collector in self.collectors.values()]
        families = list()
        for future in futures:
            families.extend(future.result())
        return merge_families(families)
