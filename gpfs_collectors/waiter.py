#
# waiter - cumulative histogram of the waiters reported by 'mmdiag --waiters -Y'
#
import re
from collections import Counter
from logging import getLogger
from threading import Lock

from prometheus_client.core import GaugeMetricFamily, HistogramMetricFamily
from prometheus_client.utils import floatToGoString

import records
from collector import Collector, fqname
from config import Option, duration_buckets

log = getLogger(__name__)

DEFAULT_WAITER_EXCLUDE = "(EventsExporterSenderThread|Fsck)"
DEFAULT_WAITER_BUCKETS = "1s,5s,15s,1m,5m,60m"

FIELDS = {
    "threadName": records.Field("name"),
    "waitTime": records.Field("seconds", records.FLOAT, required=False),
    "auxReason": records.Field("reason"),
}


class WaiterCollector(Collector):
    name = "waiter"
    default_timeout = 5
    options = (
        Option("exclude", DEFAULT_WAITER_EXCLUDE, "Pattern to exclude for waiters"),
        Option("buckets", DEFAULT_WAITER_BUCKETS, "Buckets for waiter metrics", type=duration_buckets),
        Option("log-reason", False, "Log the waiter reason", type=bool),
    )

    def __init__(self, config, runner):
        super().__init__(config, runner)
        self.exclude = re.compile(self.option("exclude"))
        self.buckets = duration_buckets(self.option("buckets"))
        self.log_reason = self.option("log-reason")
        # histogram state lives for the process, like a client side Histogram
        self._histogram_lock = Lock()
        self._bucket_counts = [0] * len(self.buckets)
        self._count = 0
        self._sum = 0.0

    def metrics(self):
        return {
            "seconds": HistogramMetricFamily(fqname("waiter", "seconds"), "GPFS waiter in seconds"),
            "info_count": GaugeMetricFamily(fqname("waiter", "info_count"), "GPFS waiter info", labels=["waiter"]),
        }

    def gather(self):
        out = self.runner.run("mmdiag", ["--waiters", "-Y"], self.timeout)
        return parse_mmdiag_waiters(out, self.exclude)

    def update(self, families, status):
        # cached waiters would be observed twice
        observation = self.observe(self.name, self.gather, cache=False)
        status.add(observation)
        if observation.result is not None:
            self.project(families, observation.result)

    def observe_waiters(self, seconds):
        """ add one scrape's waiters to the histogram, returns the cumulative (buckets, sum) """
        with self._histogram_lock:
            for second in seconds:
                for i, bound in enumerate(self.buckets):
                    if second <= bound:
                        self._bucket_counts[i] += 1
                self._count += 1
                self._sum += second
            buckets = [(floatToGoString(bound), count) for bound, count in zip(self.buckets, self._bucket_counts)]
            buckets.append(("+Inf", self._count))
            return buckets, self._sum

    def project(self, families, waiters):
        buckets, total = self.observe_waiters([waiter["seconds"] for waiter in waiters])
        families["seconds"].add_metric([], buckets, total)

        counts = Counter()
        for waiter in waiters:
            if not waiter["name"] and not waiter["reason"]:
                continue
            if self.log_reason:
                log.info(f"Waiter reason information: waiter={waiter['name']} reason={waiter['reason']} "
                         f"seconds={waiter['seconds']}")
            counts[waiter["name"]] += 1
        for name, count in counts.items():
            families["info_count"].add_metric([name], count)


def parse_mmdiag_waiters(out, exclude):
    waiters = list()
    for record in records.parse(out, "mmdiag", FIELDS, sections=["waiters"]):
        if exclude.search(record["name"]):
            log.debug(f"Skipping waiter due to ignored pattern: {record['name']}")
            continue
        waiters.append(dict(record))
    return waiters
