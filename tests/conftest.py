"""Shared pytest fixtures: a fake command runner, a fixed time zone and the default config."""

import time

import pytest
from dateutil import tz
from prometheus_client import CollectorRegistry

import gpfs_collectors
import records
from config import build_parser, parse_config
from runner import CommandFailed, DeadlineExceeded

EST = tz.tzoffset("EST", -5 * 3600)

MMLSFS_STDOUT = """
fs::HEADER:version:reserved:reserved:deviceName:fieldName:data:remarks:
mmlsfs::0:1:::project:defaultMountPoint:%2Ffs%2Fproject::
mmlsfs::0:1:::scratch:defaultMountPoint:%2Ffs%2Fscratch::
mmlsfs::0:1:::ess:defaultMountPoint:%2Ffs%2Fess::
"""


class FakeRunner(object):
    """
    Stands in for runner.CommandRunner.  outputs maps (command, *args) to
    stdout, or to (stdout, exit_code, delay).
    """
    def __init__(self, outputs=None):
        self.outputs = dict(outputs or {})
        self.calls = list()

    def set(self, command, stdout="", exit_code=0, delay=0):
        self.outputs[tuple(command)] = (stdout, exit_code, delay)

    def run(self, command, args, timeout, stdin=None):
        key = (command,) + tuple(args)
        self.calls.append((key, timeout, stdin))
        if key not in self.outputs:
            raise CommandFailed(list(key), "no such command")
        output = self.outputs[key]
        if isinstance(output, str):
            output = (output, 0, 0)
        stdout, exit_code, delay = output
        if delay > timeout:
            raise DeadlineExceeded(list(key), timeout)
        if delay:
            time.sleep(delay)
        if exit_code != 0:
            raise CommandFailed(list(key), f"exit status {exit_code}", exit_code)
        return stdout


class Snapshot(object):
    """ the families of one collect(), so a scrape can be inspected with get_sample_value """
    def __init__(self, families):
        self.families = families

    def collect(self):
        return self.families


@pytest.fixture(autouse=True)
def est(monkeypatch):
    """Interpret mm* dates as EST, whatever zone the test host is in."""
    monkeypatch.setattr(records, "now_location", lambda: EST)
    return EST


@pytest.fixture
def runner():
    return FakeRunner({("mmlsfs", "all", "-Y", "-T"): MMLSFS_STDOUT})


@pytest.fixture
def make_config():
    """Default configuration of the scrape server, with overrides applied."""
    def make(overrides=None):
        parser = build_parser("test", gpfs_collectors.default_registry())
        config = parse_config(parser, [])
        config.update(overrides or {})
        return config
    return make


@pytest.fixture
def config(make_config):
    return make_config()


@pytest.fixture
def scrape():
    """Run collector.collect() once and return a registry holding the result."""
    def run(collector):
        registry = CollectorRegistry()
        registry.register(Snapshot(list(collector.collect())))
        return registry
    return run
