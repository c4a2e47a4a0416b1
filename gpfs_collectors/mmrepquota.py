#
# mmrepquota - fileset, user and group quota usage
#
# One mmrepquota call per quota type, all filesystems at once, reported as a
# single "mmrepquota" unit.
#
import time
from logging import getLogger

from prometheus_client.core import GaugeMetricFamily

import records
from collector import Collector, Observation, fqname
from config import Option, split_list

log = getLogger(__name__)

QUOTA_TYPES = {"user": "u", "group": "g", "fileset": "j"}
# quotaType column -> subsystem and label name
KINDS = {"FILESET": "fileset", "USR": "user", "GRP": "group"}

QUOTA_METRICS = {
    "used_bytes": "{kind} quota used",
    "quota_bytes": "{kind} block quota",
    "limit_bytes": "{kind} quota block limit",
    "in_doubt_bytes": "{kind} quota block in doubt",
    "used_files": "{kind} quota files used",
    "quota_files": "{kind} files quota",
    "limit_files": "{kind} quota files limit",
    "in_doubt_files": "{kind} quota files in doubt",
}

FIELDS = {
    "name": records.Field("name"),
    "filesystemName": records.Field("fs"),
    "quotaType": records.Field("type"),
    "blockUsage": records.Field("used_bytes", records.KB, required=False),
    "blockQuota": records.Field("quota_bytes", records.KB, required=False),
    "blockLimit": records.Field("limit_bytes", records.KB, required=False),
    "blockInDoubt": records.Field("in_doubt_bytes", records.KB, required=False),
    "filesUsage": records.Field("used_files", records.FLOAT, required=False),
    "filesQuota": records.Field("quota_files", records.FLOAT, required=False),
    "filesLimit": records.Field("limit_files", records.FLOAT, required=False),
    "filesInDoubt": records.Field("in_doubt_files", records.FLOAT, required=False),
}


def quota_flag(quotatype):
    """ 'fileset' or 'j' -> '-j' """
    quotatype = quotatype.strip()
    flag = QUOTA_TYPES.get(quotatype, quotatype)
    if flag not in QUOTA_TYPES.values():
        raise ValueError(f"unknown quota type '{quotatype}'")
    return f"-{flag}"


class MmrepquotaCollector(Collector):
    name = "mmrepquota"
    default_timeout = 20
    options = (
        Option("filesystems", "", "Filesystems to query with mmrepquota, comma separated. "
                                  "Defaults to all filesystems."),
        Option("quotatypes", "j", "Quota Types to query with mmrepquota, Default to fileset only"),
    )

    def __init__(self, config, runner):
        super().__init__(config, runner)
        self.flags = [quota_flag(quotatype) for quotatype in split_list(self.option("quotatypes"))]
        self.filesystems = split_list(self.option("filesystems"))

    def metrics(self):
        families = dict()
        for kind in KINDS.values():
            for metric, help in QUOTA_METRICS.items():
                families[(kind, metric)] = GaugeMetricFamily(fqname(kind, metric), "GPFS " + help.format(kind=kind),
                                                             labels=[kind, "fs"])
        return families

    def gather(self, flag):
        args = [flag, "-Y"] + (self.filesystems or ["-a"])
        out = self.runner.run("mmrepquota", args, self.timeout)
        return parse_mmrepquota(out)

    def project(self, families, quotas):
        for quota in quotas:
            kind = KINDS.get(quota["type"])
            if kind is None:
                continue
            for metric in QUOTA_METRICS:
                families[(kind, metric)].add_metric([quota["name"], quota["fs"]], quota[metric])

    def update(self, families, status):
        combined = Observation(self.name)
        start_time = time.time()
        for flag in self.flags:
            observation = self.observe(self.name, self.gather, flag, key=flag)
            combined.error = max(combined.error, observation.error)
            combined.timeout = max(combined.timeout, observation.timeout)
            if observation.result is not None:
                self.project(families, observation.result)
        combined.finished = time.time()
        combined.duration = combined.finished - start_time
        status.add(combined)


def parse_mmrepquota(out):
    return records.parse(out, "mmrepquota", FIELDS, exact=True)
