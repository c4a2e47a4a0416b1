"""Tests for the verbs collector."""

from gpfs_collectors.verbs import VerbsCollector, parse_verbs

VERBS = ("mmfsadm", "test", "verbs", "status")


def test_parse_verbs():
    assert parse_verbs("\nVERBS RDMA status: started\n") == "started"
    assert parse_verbs("VERBS RDMA status: stopped\n") == "stopped"
    assert parse_verbs("nothing here\n") == ""


def test_collect_started(runner, config, scrape):
    runner.set(VERBS, "\nVERBS RDMA status: started\n")
    registry = scrape(VerbsCollector(config, runner))
    assert registry.get_sample_value("gpfs_verbs_status") == 1


def test_collect_stopped(runner, config, scrape):
    runner.set(VERBS, "VERBS RDMA status: stopped\n")
    registry = scrape(VerbsCollector(config, runner))
    assert registry.get_sample_value("gpfs_verbs_status") == 0
    assert registry.get_sample_value("gpfs_exporter_collect_error", {"collector": "verbs"}) == 0
