"""Tests for the collector registry and the per scrape orchestrator."""

import argparse

from prometheus_client import CollectorRegistry, generate_latest

import gpfs_collectors
from gpfs_collectors.mmgetstate import MmgetstateCollector
from gpfs_collectors.verbs import VerbsCollector
from register import GPFSCollector, Registry

MMGETSTATE_ACTIVE = """
mmgetstate::HEADER:version:reserved:reserved:nodeName:nodeNumber:state:quorum:nodesUp:totalNodes:remarks:cnfsState:
mmgetstate::0:1:::ib-proj-nsd05.domain:11:active:4:7:1122::(undefined):
"""


def test_default_registry_names():
    registry = gpfs_collectors.default_registry()
    assert registry.names() == sorted([
        "config", "mmces", "mmdf", "mmdiag", "mmgetstate", "mmhealth", "mmlsdisk", "mmlsfileset", "mmlspool",
        "mmlsqos", "mmlssnapshot", "mmpmon", "mmrepquota", "mount", "verbs", "waiter"])


def test_default_enabled(config):
    registry = gpfs_collectors.default_registry()
    assert registry.enabled(config) == ["config", "mmgetstate", "mmpmon", "mount"]


def test_add_arguments():
    registry = Registry()
    registry.register("verbs", VerbsCollector, default_enabled=False)
    parser = argparse.ArgumentParser()
    registry.add_arguments(parser)
    args = vars(parser.parse_args(["--collector.verbs", "--collector.verbs.timeout", "9"]))
    assert args == {"collector.verbs": True, "collector.verbs.timeout": 9}


def test_build_only_enabled(runner, config):
    registry = Registry()
    registry.register("mmgetstate", MmgetstateCollector, default_enabled=True)
    registry.register("verbs", VerbsCollector, default_enabled=False)
    gpfs = registry.build(config, runner)
    assert list(gpfs.collectors) == ["mmgetstate"]

    config["collector.verbs"] = True
    config["collector.mmgetstate"] = False
    gpfs = registry.build(config, runner)
    assert list(gpfs.collectors) == ["verbs"]


def test_build_matches_enabled(runner, make_config):
    registry = gpfs_collectors.default_registry()
    config = make_config({"collector.waiter": True, "collector.mount": False})
    gpfs = registry.build(config, runner)
    assert sorted(gpfs.collectors) == registry.enabled(config) == ["config", "mmgetstate", "mmpmon", "waiter"]


def test_collect_runs_every_collector(runner, make_config):
    runner.set(("mmgetstate", "-Y"), MMGETSTATE_ACTIVE)
    runner.set(("mmfsadm", "test", "verbs", "status"), "VERBS RDMA status: started\n")
    config = make_config({"collector.verbs": True})
    gpfs = GPFSCollector({"mmgetstate": MmgetstateCollector(config, runner), "verbs": VerbsCollector(config, runner)})

    families = gpfs.collect()
    names = [family.name for family in families]
    assert len(names) == len(set(names))

    registry = CollectorRegistry()
    registry.register(gpfs)
    assert registry.get_sample_value("gpfs_state", {"state": "active"}) == 1
    assert registry.get_sample_value("gpfs_verbs_status") == 1
    for collector in ("mmgetstate", "verbs"):
        assert registry.get_sample_value("gpfs_exporter_collect_error", {"collector": collector}) == 0


def test_timeout_does_not_affect_other_collectors(runner, make_config):
    runner.set(("mmgetstate", "-Y"), MMGETSTATE_ACTIVE, delay=10)
    runner.set(("mmfsadm", "test", "verbs", "status"), "VERBS RDMA status: started\n")
    config = make_config({"collector.verbs": True})
    gpfs = GPFSCollector({"mmgetstate": MmgetstateCollector(config, runner), "verbs": VerbsCollector(config, runner)})

    registry = CollectorRegistry()
    registry.register(gpfs)
    output = generate_latest(registry).decode()
    assert 'gpfs_exporter_collect_timeout{collector="mmgetstate"} 1.0' in output
    assert 'gpfs_exporter_collect_error{collector="mmgetstate"} 0.0' in output
    assert "gpfs_state{" not in output
    assert "gpfs_verbs_status 1.0" in output
    assert 'gpfs_exporter_collect_timeout{collector="verbs"} 0.0' in output
    assert output.count("# TYPE gpfs_exporter_collect_error gauge") == 1


def test_empty_collector_set():
    assert GPFSCollector({}).collect() == []
