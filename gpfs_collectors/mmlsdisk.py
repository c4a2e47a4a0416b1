#
# mmlsdisk - status and availability of every disk of a filesystem
#
from logging import getLogger

from prometheus_client.core import GaugeMetricFamily

import records
from collector import FilesystemCollector, add_states, fqname

log = getLogger(__name__)

STATUSES = ["ready", "suspended", "to be emptied", "being emptied", "emptied", "replacing", "replacement"]
AVAILABILITIES = ["up", "down", "recovering", "unrecovered"]

FIELDS = {
    "nsdName": records.Field("name"),
    "metadata": records.Field("metadata"),
    "data": records.Field("data"),
    "status": records.Field("status"),
    "availability": records.Field("availability"),
    "diskID": records.Field("diskid"),
    "storagePool": records.Field("storagepool"),
}
LABELS = ["name", "fs", "metadata", "data", "diskid", "storagepool"]


class MmlsdiskCollector(FilesystemCollector):
    name = "mmlsdisk"
    default_timeout = 30

    def metrics(self):
        return {
            "status": GaugeMetricFamily(fqname("disk", "status"), "GPFS disk status", labels=LABELS + ["status"]),
            "availability": GaugeMetricFamily(fqname("disk", "availability"), "GPFS disk availability",
                                              labels=LABELS + ["availability"]),
        }

    def gather(self, fs):
        out = self.runner.run("mmlsdisk", [fs, "-Y"], self.timeout)
        return records.parse(out, "mmlsdisk", FIELDS)

    def project(self, families, disks, fs):
        for disk in disks:
            labelvalues = [disk["name"], fs, disk["metadata"], disk["data"], disk["diskid"], disk["storagepool"]]
            if not add_states(families["status"], labelvalues, disk["status"], STATUSES):
                log.warning(f"Unknown status encountered: fs={fs} disk={disk['name']} status={disk['status']}")
            if not add_states(families["availability"], labelvalues, disk["availability"], AVAILABILITIES):
                log.warning(f"Unknown availability encountered: fs={fs} disk={disk['name']} "
                            f"availability={disk['availability']}")
