#
# mmhealth - component states and active events from 'mmhealth node show -Y'
#
import re
from logging import getLogger

from prometheus_client.core import GaugeMetricFamily

import records
from collector import Collector, add_states, fqname
from config import Option

log = getLogger(__name__)

STATUSES = ["CHECKING", "DEGRADED", "DEPEND", "DISABLED", "FAILED", "HEALTHY", "STARTING", "STOPPED", "SUSPENDED",
            "TIPS"]

FIELDS = {
    "component": records.Field("component"),
    "entityname": records.Field("entityname"),
    "entitytype": records.Field("entitytype"),
    "status": records.Field("status"),
    "event": records.Field("event"),
}
LABELS = ["component", "entityname", "entitytype"]


class MmhealthCollector(Collector):
    name = "mmhealth"
    default_timeout = 5
    options = (
        Option("ignored-component", "^$", "Regex of components to ignore"),
        Option("ignored-entityname", "^$", "Regex of entity names to ignore"),
        Option("ignored-entitytype", "^$", "Regex of entity types to ignore"),
        Option("ignored-event", "", "Regex of events to ignore"),
    )

    def __init__(self, config, runner):
        super().__init__(config, runner)
        self.ignored = {label: re.compile(self.option(f"ignored-{label}")) for label in LABELS}
        event = self.option("ignored-event")
        self.ignored_event = re.compile(event) if event else None

    def metrics(self):
        return {
            "status": GaugeMetricFamily(fqname("health", "status"), "GPFS health status",
                                        labels=LABELS + ["status"]),
            "event": GaugeMetricFamily(fqname("health", "event"), "GPFS health event", labels=LABELS + ["event"]),
        }

    def gather(self):
        out = self.runner.run("mmhealth", ["node", "show", "-Y"], self.timeout)
        return parse_mmhealth(out, self.ignored, self.ignored_event)

    def project(self, families, entries):
        for entry in entries:
            labelvalues = [entry[label] for label in LABELS]
            if entry["type"] == "Event":
                families["event"].add_metric(labelvalues + [entry["event"]], 1)
                continue
            if not add_states(families["status"], labelvalues, entry["status"], STATUSES, unknown="UNKNOWN"):
                log.warning(f"Unknown status encountered: status={entry['status']} component={entry['component']} "
                            f"entityname={entry['entityname']} entitytype={entry['entitytype']}")


def parse_mmhealth(out, ignored, ignored_event=None):
    entries = list()
    seen_events = set()
    for record in records.parse(out, "mmhealth", FIELDS, sections=["State", "Event"], strip=True):
        skip = [label for label, pattern in ignored.items() if pattern.search(record[label])]
        if skip:
            log.debug(f"Skipping {skip[0]} '{record[skip[0]]}' due to ignored pattern")
            continue
        if record.section == "Event":
            if ignored_event is not None and ignored_event.search(record["event"]):
                log.debug(f"Skipping event '{record['event']}' due to ignored pattern")
                continue
            key = (record["component"], record["entityname"], record["entitytype"], record["event"])
            if key in seen_events:
                log.debug(f"Skipping event '{record['event']}' as already encountered")
                continue
            seen_events.add(key)
        entry = dict(record)
        entry["type"] = record.section
        entries.append(entry)
    return entries
