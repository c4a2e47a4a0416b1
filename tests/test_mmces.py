"""Tests for the CES state collector."""

import re

from gpfs_collectors.mmces import MmcesCollector, parse_mmces_state_show

NODE = "ib-protocol01.domain"
MMCES_STDOUT = """
mmcesstate::HEADER:version:reserved:reserved:NODE:AUTH:BLOCK:NETWORK:AUTH_OBJ:NFS:OBJ:SMB:CES:
mmcesstate::0:1:::ib-protocol01.domain:HEALTHY:DISABLED:HEALTHY:DISABLED:HEALTHY:DISABLED:FOO:HEALTHY:

"""


def test_parse():
    states = parse_mmces_state_show(MMCES_STDOUT, re.compile("^$"))
    assert states == {
        "AUTH": "HEALTHY", "BLOCK": "DISABLED", "NETWORK": "HEALTHY", "AUTH_OBJ": "DISABLED",
        "NFS": "HEALTHY", "OBJ": "DISABLED", "SMB": "FOO", "CES": "HEALTHY",
    }


def test_parse_ignored_services():
    states = parse_mmces_state_show(MMCES_STDOUT, re.compile("^(OBJ|AUTH_OBJ)$"))
    assert "OBJ" not in states
    assert "AUTH_OBJ" not in states
    assert states["AUTH"] == "HEALTHY"


def test_collect(runner, make_config, scrape):
    runner.set(("mmces", "state", "show", "-N", NODE, "-Y"), MMCES_STDOUT)
    collector = MmcesCollector(make_config({"collector.mmces.nodename": NODE}), runner)
    registry = scrape(collector)

    def state(service, value):
        return registry.get_sample_value("gpfs_ces_state", {"service": service, "state": value})

    assert state("NFS", "HEALTHY") == 1
    assert state("NFS", "DEGRADED") == 0
    assert state("NFS", "UNKNOWN") == 0
    assert state("BLOCK", "DISABLED") == 1
    assert state("SMB", "UNKNOWN") == 1
    assert state("SMB", "HEALTHY") == 0
    assert registry.get_sample_value("gpfs_exporter_collect_error", {"collector": "mmces"}) == 0


def test_nodename_defaults_to_fqdn(runner, config, monkeypatch):
    monkeypatch.setattr("socket.getfqdn", lambda: "protocol02.domain")
    collector = MmcesCollector(config, runner)
    assert collector.nodename == "protocol02.domain"


def test_collect_error(runner, make_config, scrape):
    runner.set(("mmces", "state", "show", "-N", NODE, "-Y"), exit_code=1)
    registry = scrape(MmcesCollector(make_config({"collector.mmces.nodename": NODE}), runner))
    assert registry.get_sample_value("gpfs_ces_state", {"service": "NFS", "state": "HEALTHY"}) is None
    assert registry.get_sample_value("gpfs_exporter_collect_error", {"collector": "mmces"}) == 1
    assert registry.get_sample_value("gpfs_exporter_collect_timeout", {"collector": "mmces"}) == 0


def test_collect_timeout(runner, make_config, scrape):
    runner.set(("mmces", "state", "show", "-N", NODE, "-Y"), MMCES_STDOUT, delay=10)
    registry = scrape(MmcesCollector(make_config({"collector.mmces.nodename": NODE}), runner))
    assert registry.get_sample_value("gpfs_exporter_collect_timeout", {"collector": "mmces"}) == 1
    assert registry.get_sample_value("gpfs_exporter_collect_error", {"collector": "mmces"}) == 0
