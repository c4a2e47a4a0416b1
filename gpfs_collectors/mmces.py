#
# mmces - CES (protocol node) service states of this node
#
import re
import socket
from logging import getLogger

from prometheus_client.core import GaugeMetricFamily

import records
from collector import Collector, add_states, fqname
from config import Option

log = getLogger(__name__)

SERVICES = ["AUTH", "BLOCK", "NETWORK", "AUTH_OBJ", "NFS", "OBJ", "SMB", "CES"]
STATES = ["DEGRADED", "DEPEND", "DISABLED", "FAILED", "HEALTHY", "STARTING", "STOPPED", "SUSPENDED"]

FIELDS = {service: records.Field(service) for service in SERVICES}


class MmcesCollector(Collector):
    name = "mmces"
    default_timeout = 5
    options = (
        Option("nodename", "", "CES node name to check, defaults to FQDN"),
        Option("ignored-services", "^$", "Regex of services to ignore"),
    )

    def __init__(self, config, runner):
        super().__init__(config, runner)
        self.nodename = self.option("nodename") or socket.getfqdn()
        self.ignored_services = re.compile(self.option("ignored-services"))

    def metrics(self):
        return {"state": GaugeMetricFamily(fqname("ces", "state"), "GPFS CES health status",
                                           labels=["service", "state"])}

    def gather(self):
        out = self.runner.run("mmces", ["state", "show", "-N", self.nodename, "-Y"], self.timeout)
        return parse_mmces_state_show(out, self.ignored_services)

    def project(self, families, states):
        for service, state in states.items():
            if not add_states(families["state"], [service], state, STATES, unknown="UNKNOWN"):
                log.warning(f"Unknown state encountered: service={service} state={state}")


def parse_mmces_state_show(out, ignored_services):
    states = dict()
    for record in records.parse(out, "mmcesstate", FIELDS):
        for service in SERVICES:
            if service not in record.columns or ignored_services.search(service):
                continue
            states[service] = record[service]
    return states
