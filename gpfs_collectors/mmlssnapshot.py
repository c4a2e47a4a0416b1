#
# mmlssnapshot - snapshot status, creation time and optionally size
#
from logging import getLogger

from prometheus_client.core import GaugeMetricFamily

import records
from collector import FilesystemCollector, fqname
from config import Option

log = getLogger(__name__)

LABELS = ["fs", "fileset", "snapshot", "id"]

FIELDS = {
    "filesystemName": records.Field("fs"),
    "directory": records.Field("snapshot"),
    "snapID": records.Field("id"),
    "status": records.Field("status"),
    "created": records.Field("created", records.TIME),
    "fileset": records.Field("fileset"),
    "data": records.Field("data", records.KB),
    "metadata": records.Field("metadata", records.KB),
}


class MmlssnapshotCollector(FilesystemCollector):
    name = "mmlssnapshot"
    default_timeout = 60
    options = FilesystemCollector.options + (
        Option("get-size", False, "Collect snapshot sizes, long running operation", type=bool),
    )

    def __init__(self, config, runner):
        super().__init__(config, runner)
        self.get_size = self.option("get-size")

    def metrics(self):
        families = {
            "status": GaugeMetricFamily(fqname("snapshot", "status_info"), "GPFS snapshot status",
                                        labels=LABELS + ["status"]),
            "created": GaugeMetricFamily(fqname("snapshot", "created_timestamp_seconds"),
                                         "GPFS snapshot creation timestamp", labels=LABELS),
        }
        if self.get_size:
            families["data"] = GaugeMetricFamily(fqname("snapshot", "data_size_bytes"),
                                                 "GPFS snapshot data size", labels=LABELS)
            families["metadata"] = GaugeMetricFamily(fqname("snapshot", "metadata_size_bytes"),
                                                     "GPFS snapshot metadata size", labels=LABELS)
        return families

    def gather(self, fs):
        args = [fs, "-s", "all", "-Y"]
        if self.get_size:
            args.append("-d")
        out = self.runner.run("mmlssnapshot", args, self.timeout)
        return parse_mmlssnapshot(out)

    def project(self, families, snapshots, fs):
        for snapshot in snapshots:
            labelvalues = [snapshot[label] for label in LABELS]
            families["status"].add_metric(labelvalues + [snapshot["status"]], 1)
            families["created"].add_metric(labelvalues, snapshot["created"])
            if self.get_size:
                families["data"].add_metric(labelvalues, snapshot["data"])
                families["metadata"].add_metric(labelvalues, snapshot["metadata"])


def parse_mmlssnapshot(out):
    return records.parse(out, "mmlssnapshot", FIELDS)
