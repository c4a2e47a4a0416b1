#
# mmdiag - long running waiters from the plain text 'mmdiag --waiters' report
#
import re
from logging import getLogger

from prometheus_client.core import GaugeMetricFamily

from collector import Collector, fqname
from config import Option

log = getLogger(__name__)

DEFAULT_WAITER_EXCLUDE = "(EventsExporterSenderThread|Fsck)"

WAITER_RE = re.compile(r"^Waiting ([0-9.]+) sec.*thread ([0-9]+)")
WAITER_INFO_RE = re.compile(r"^Waiting ([0-9.]+) sec.*thread ([0-9]+) ([a-zA-Z0-9]+): (.+)")


class MmdiagCollector(Collector):
    name = "mmdiag"
    default_timeout = 5
    options = (
        Option("waiter-threshold", 30, "Threshold for collected waiters", type=int),
        Option("waiter-exclude", DEFAULT_WAITER_EXCLUDE, "Pattern to exclude for waiters"),
    )

    def __init__(self, config, runner):
        super().__init__(config, runner)
        self.threshold = self.option("waiter-threshold")
        self.exclude = re.compile(self.option("waiter-exclude"))

    def metrics(self):
        return {
            "waiter": GaugeMetricFamily(fqname("mmdiag", "waiter"), "GPFS max waiter in seconds", labels=["thread"]),
            "waiter_info": GaugeMetricFamily(fqname("mmdiag", "waiter_info"), "GPFS waiter info",
                                             labels=["thread", "waiter", "reason"]),
        }

    def gather(self):
        out = self.runner.run("mmdiag", ["--waiters"], self.timeout)
        return parse_mmdiag_waiters(out, self.threshold, self.exclude)

    def project(self, families, waiters):
        for waiter in waiters:
            families["waiter"].add_metric([waiter["thread"]], waiter["seconds"])
            if waiter["name"] or waiter["reason"]:
                families["waiter_info"].add_metric([waiter["thread"], waiter["name"], waiter["reason"]], 1)


def parse_mmdiag_waiters(out, threshold, exclude):
    waiters = list()
    for line in out.splitlines():
        if exclude.search(line):
            continue
        match = WAITER_RE.search(line)
        if match is None:
            continue
        try:
            seconds = float(match.group(1))
        except ValueError:
            log.error(f"Unable to convert {match.group(1)} to float")
            continue
        name = reason = ""
        info = WAITER_INFO_RE.search(line)
        if info is not None:
            name, reason = info.group(3), info.group(4)
        else:
            log.debug(f"Unable to extract waiter info: {line}")
        if seconds >= threshold:
            waiters.append({"seconds": seconds, "thread": match.group(2), "name": name, "reason": reason})
    return waiters
