#
# verbs - RDMA (verbs) status of the GPFS daemon
#
from prometheus_client.core import GaugeMetricFamily

from collector import Collector, fqname


class VerbsCollector(Collector):
    name = "verbs"
    default_timeout = 5

    def metrics(self):
        return {"status": GaugeMetricFamily(fqname("verbs", "status"), "GPFS verbs status, 1=started 0=not started")}

    def gather(self):
        out = self.runner.run("mmfsadm", ["test", "verbs", "status"], self.timeout)
        return parse_verbs(out)

    def project(self, families, status):
        families["status"].add_metric([], 1 if status == "started" else 0)


def parse_verbs(out):
    status = ""
    for line in out.splitlines():
        if not line.startswith("VERBS"):
            continue
        items = line.split(": ")
        if len(items) == 2:
            status = items[1].strip()
    return status
