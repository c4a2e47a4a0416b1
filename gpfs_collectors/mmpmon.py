#
# mmpmon - per filesystem I/O counters of this node, from 'mmpmon fs_io_s'
#
from logging import getLogger

from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily

from collector import Collector, fqname
from records import ParseError

log = getLogger(__name__)

KEYS = {
    "_fs_": "fs",
    "_nn_": "nodename",
    "_br_": "read_bytes",
    "_bw_": "write_bytes",
    "_rdc_": "reads",
    "_wc_": "writes",
    "_oc_": "opens",
    "_cc_": "closes",
    "_dir_": "read_dir",
    "_iu_": "inode_updates",
}
STRING_KEYS = ("fs", "nodename")
OPERATIONS = ["reads", "writes", "opens", "closes", "read_dir", "inode_updates"]


class MmpmonCollector(Collector):
    name = "mmpmon"
    default_enabled = True
    default_timeout = 5

    def metrics(self):
        return {
            "read_bytes": CounterMetricFamily(fqname("perf", "read_bytes_total"), "GPFS read bytes", labels=["fs"]),
            "write_bytes": CounterMetricFamily(fqname("perf", "write_bytes_total"), "GPFS write bytes",
                                               labels=["fs"]),
            "operations": CounterMetricFamily(fqname("perf", "operations_total"),
                                              "GPFS operations reported by mmpmon", labels=["fs", "operation"]),
            "info": GaugeMetricFamily(fqname("perf", "info"), "GPFS client information", labels=["fs", "nodename"]),
        }

    def gather(self):
        out = self.runner.run("mmpmon", ["-s", "-p"], self.timeout, stdin="fs_io_s\n")
        return parse_mmpmon(out)

    def project(self, families, perfs):
        for perf in perfs:
            fs = perf["fs"]
            families["read_bytes"].add_metric([fs], perf["read_bytes"])
            families["write_bytes"].add_metric([fs], perf["write_bytes"])
            for operation in OPERATIONS:
                families["operations"].add_metric([fs, operation], perf[operation])
            families["info"].add_metric([fs, perf["nodename"]], 1)


def parse_mmpmon(out):
    perfs = list()
    for line in out.splitlines():
        if not line.startswith("_"):
            continue
        perf = {key: 0 for key in KEYS.values()}
        perf.update({key: "" for key in STRING_KEYS})
        items = line.split()
        # _key_ value _key_ value ...
        for key, value in zip(items[1::2], items[2::2]):
            field = KEYS.get(key)
            if field is None:
                continue
            if field in STRING_KEYS:
                perf[field] = value
                continue
            try:
                perf[field] = int(value)
            except ValueError:
                raise ParseError(f"unable to parse {key} value {value!r}")
        perfs.append(perf)
    return perfs
