"""Tests for the mmrepquota collector."""

import pytest

from gpfs_collectors.mmrepquota import MmrepquotaCollector, parse_mmrepquota, quota_flag

HEADER = ("mmrepquota::HEADER:version:reserved:reserved:filesystemName:quotaType:id:name:blockUsage:blockQuota:"
          "blockLimit:blockInDoubt:blockGrace:filesUsage:filesQuota:filesLimit:filesInDoubt:filesGrace:remarks:quota:"
          "defQuota:fid:filesetname:")

FILESET_STDOUT = f"""
*** Report for FILESET quotas on project
{HEADER}
mmrepquota::0:1:::project:FILESET:0:root:337419744:0:0:163840:none:1395:0:0:400:none:i:on:off:::
mmrepquota::0:1:::project:FILESET:408:PZS1003:341467872:2147483648:2147483648:0:none:6286:2000000:2000000:0:none:e:on:off:::
*** Report for FILESET quotas on scratch
{HEADER}
mmrepquota::0:1:::scratch:FILESET:0:root:928235294208:0:0:5308909920:none:141909093:0:0:140497:none:i:on:off:::
"""  # noqa: E501

USER_STDOUT = f"""
*** Report for USR quotas on project
{HEADER}
mmrepquota::0:1:::project:USR:1000:alice:1024:2048:4096:0:none:10:100:200:0:none:e:on:off:::
"""  # noqa: E501


def test_quota_flag():
    assert quota_flag("fileset") == "-j"
    assert quota_flag("j") == "-j"
    assert quota_flag("user") == "-u"
    assert quota_flag(" group") == "-g"
    with pytest.raises(ValueError):
        quota_flag("foo")


def test_parse():
    quotas = parse_mmrepquota(FILESET_STDOUT)
    assert [(quota["fs"], quota["name"]) for quota in quotas] == [
        ("project", "root"), ("project", "PZS1003"), ("scratch", "root"),
    ]
    root = quotas[0]
    assert root["type"] == "FILESET"
    assert root["used_bytes"] == 345517817856
    assert root["in_doubt_bytes"] == 167772160
    assert root["used_files"] == 1395
    assert root["in_doubt_files"] == 400


def test_collect(runner, config, scrape):
    runner.set(("mmrepquota", "-j", "-Y", "-a"), FILESET_STDOUT)
    registry = scrape(MmrepquotaCollector(config, runner))
    root = {"fileset": "root", "fs": "project"}
    assert registry.get_sample_value("gpfs_fileset_used_bytes", root) == 345517817856
    assert registry.get_sample_value("gpfs_fileset_in_doubt_bytes", root) == 167772160
    assert registry.get_sample_value("gpfs_fileset_used_files", root) == 1395
    pzs = {"fileset": "PZS1003", "fs": "project"}
    assert registry.get_sample_value("gpfs_fileset_quota_bytes", pzs) == 2199023255552
    assert registry.get_sample_value("gpfs_fileset_limit_files", pzs) == 2000000
    assert registry.get_sample_value("gpfs_fileset_used_bytes", {"fileset": "root", "fs": "scratch"}) == \
        950512941268992
    assert registry.get_sample_value("gpfs_exporter_collect_error", {"collector": "mmrepquota"}) == 0


def test_collect_filesystems_and_types(runner, make_config, scrape):
    runner.set(("mmrepquota", "-j", "-Y", "project"), FILESET_STDOUT)
    runner.set(("mmrepquota", "-u", "-Y", "project"), USER_STDOUT)
    config = make_config({"collector.mmrepquota.filesystems": "project",
                          "collector.mmrepquota.quotatypes": "fileset,user"})
    registry = scrape(MmrepquotaCollector(config, runner))
    alice = {"user": "alice", "fs": "project"}
    assert registry.get_sample_value("gpfs_user_used_bytes", alice) == 1048576
    assert registry.get_sample_value("gpfs_user_limit_bytes", alice) == 4194304
    assert registry.get_sample_value("gpfs_user_quota_files", alice) == 100
    assert registry.get_sample_value("gpfs_fileset_used_files", {"fileset": "root", "fs": "project"}) == 1395


def test_collect_one_type_fails(runner, make_config, scrape):
    runner.set(("mmrepquota", "-j", "-Y", "-a"), FILESET_STDOUT)
    runner.set(("mmrepquota", "-g", "-Y", "-a"), exit_code=1)
    registry = scrape(MmrepquotaCollector(make_config({"collector.mmrepquota.quotatypes": "j,g"}), runner))
    assert registry.get_sample_value("gpfs_fileset_used_files", {"fileset": "root", "fs": "project"}) == 1395
    assert registry.get_sample_value("gpfs_exporter_collect_error", {"collector": "mmrepquota"}) == 1


def test_collect_cached(runner, make_config, scrape):
    runner.set(("mmrepquota", "-j", "-Y", "-a"), FILESET_STDOUT)
    collector = MmrepquotaCollector(make_config({"exporter.use-cache": True}), runner)
    scrape(collector)
    runner.set(("mmrepquota", "-j", "-Y", "-a"), exit_code=1)
    registry = scrape(collector)
    assert registry.get_sample_value("gpfs_fileset_used_files", {"fileset": "root", "fs": "project"}) == 1395
    assert registry.get_sample_value("gpfs_exporter_collect_error", {"collector": "mmrepquota"}) == 1
