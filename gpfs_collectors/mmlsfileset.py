#
# mmlsfileset - fileset status, path, creation time and inode usage
#
from prometheus_client.core import GaugeMetricFamily

import records
from collector import FilesystemCollector, fqname

FIELDS = {
    "filesystemName": records.Field("fs"),
    "filesetName": records.Field("fileset"),
    "status": records.Field("status"),
    "path": records.Field("path", records.QUOTED),
    "created": records.Field("created", records.TIME),
    "maxInodes": records.Field("max_inodes", records.FLOAT),
    "allocInodes": records.Field("alloc_inodes", records.FLOAT),
    "freeInodes": records.Field("free_inodes", records.FLOAT),
}
LABELS = ["fs", "fileset"]

GAUGES = {
    "created": ("created_timestamp_seconds", "GPFS fileset creation timestamp"),
    "max_inodes": ("max_inodes", "GPFS fileset max inodes"),
    "alloc_inodes": ("alloc_inodes", "GPFS fileset alloc inodes"),
    "free_inodes": ("free_inodes", "GPFS fileset free inodes"),
}


class MmlsfilesetCollector(FilesystemCollector):
    name = "mmlsfileset"
    default_timeout = 60

    def metrics(self):
        families = {
            "status": GaugeMetricFamily(fqname("fileset", "status_info"), "GPFS fileset status",
                                        labels=LABELS + ["status"]),
            "path": GaugeMetricFamily(fqname("fileset", "path_info"), "GPFS fileset path", labels=LABELS + ["path"]),
        }
        for key, (name, help) in GAUGES.items():
            families[key] = GaugeMetricFamily(fqname("fileset", name), help, labels=LABELS)
        return families

    def gather(self, fs):
        out = self.runner.run("mmlsfileset", [fs, "-Y"], self.timeout)
        return records.parse(out, "mmlsfileset", FIELDS)

    def project(self, families, filesets, fs):
        for fileset in filesets:
            labelvalues = [fileset["fs"], fileset["fileset"]]
            families["status"].add_metric(labelvalues + [fileset["status"]], 1)
            families["path"].add_metric(labelvalues + [fileset["path"]], 1)
            for key in GAUGES:
                families[key].add_metric(labelvalues, fileset[key])
