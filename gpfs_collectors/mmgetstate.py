#
# mmgetstate - GPFS daemon state of this node
#
from logging import getLogger

from prometheus_client.core import GaugeMetricFamily

import records
from collector import Collector, add_states, fqname

log = getLogger(__name__)

STATES = ["active", "arbitrating", "down"]

FIELDS = {
    "state": records.Field("state"),
}


class MmgetstateCollector(Collector):
    name = "mmgetstate"
    default_enabled = True
    default_timeout = 5

    def metrics(self):
        return {"state": GaugeMetricFamily(fqname("", "state"), "GPFS state", labels=["state"])}

    def gather(self):
        out = self.runner.run("mmgetstate", ["-Y"], self.timeout)
        return parse_mmgetstate(out)

    def project(self, families, state):
        if not add_states(families["state"], [], state, STATES):
            log.warning(f"Unknown state encountered: '{state}'")


def parse_mmgetstate(out):
    state = ""
    for record in records.parse(out, "mmgetstate", FIELDS):
        state = record["state"]
    return state
