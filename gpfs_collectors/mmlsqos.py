#
# mmlsqos - QoS class statistics per pool
#
from logging import getLogger

from prometheus_client.core import GaugeMetricFamily

import records
from collector import FilesystemCollector, fqname
from config import Option

log = getLogger(__name__)

# column -> (metric, help)
QOS_METRICS = {
    "iops": ("iops", "GPFS performance of the class in I/O operations per second"),
    "ioql": ("average_pending_requests",
             "GPFS average number of I/O requests in the class that are pending for reasons other than being "
             "queued by QoS"),
    "qsdl": ("average_queued_requests", "GPFS average number of I/O requests in the class that are queued by QoS"),
    "et": ("measurement_interval_seconds", "GPFS interval in seconds during which the measurement was made"),
    "MBs": ("bytes_per_second", "GPFS performance of the class in Bytes per second"),
}
LABELS = ["fs", "pool", "class", "measurement_period_seconds"]

FIELDS = {
    "pool": records.Field("pool"),
    "timeEpoch": records.Field("time", records.FLOAT),
    "class": records.Field("class"),
}


class MmlsqosCollector(FilesystemCollector):
    name = "mmlsqos"
    default_timeout = 60
    options = FilesystemCollector.options + (
        Option("seconds", 60, "Display the I/O performance values for the previous number of seconds. "
                              "The valid range of seconds is 1-999", type=int),
    )

    def metrics(self):
        return {column: GaugeMetricFamily(fqname("qos", name), help, labels=LABELS)
                for column, (name, help) in QOS_METRICS.items()}

    def gather(self, fs):
        args = [fs, "-Y", "--seconds", str(self.option("seconds"))]
        out = self.runner.run("mmlsqos", args, self.timeout)
        return parse_mmlsqos(out)

    def project(self, families, stats, fs):
        for stat in stats:
            labelvalues = [fs, stat["pool"], stat["class"], "%.f" % stat["time"]]
            for column in QOS_METRICS:
                families[column].add_metric(labelvalues, stat[column])


def parse_qos_value(column, value):
    # decimal commas depend on the locale of the node
    number = records.parse_number(value.replace(",", "."))
    if column == "MBs":
        number = number * 1024 * 1024
    return number


def parse_mmlsqos(out):
    stats = list()
    fields = dict(FIELDS)
    fields.update({column: records.Field(column) for column in QOS_METRICS})
    for record in records.parse(out, "mmlsqos", fields, sections=["stats"]):
        for column in QOS_METRICS:
            if column not in record.columns:
                record[column] = 0
                continue
            try:
                record[column] = parse_qos_value(column, record[column])
            except records.ParseError as exc:
                log.error(f"Error parsing {column} value {record[column]!r}: {exc}")
                raise
        stats.append(record)
    return stats
