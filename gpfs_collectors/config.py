#
# config - selected values of the running GPFS configuration ('mmdiag --config')
#
from prometheus_client.core import GaugeMetricFamily

import records
from collector import Collector, fqname

# config name -> (metric, help)
CONFIGS = {
    "pagepool": ("page_pool_bytes", "GPFS configured page pool size"),
}

FIELDS = {
    "name": records.Field("name"),
    "value": records.Field("value"),
}


class ConfigCollector(Collector):
    name = "config"
    default_enabled = True
    default_timeout = 5

    def metrics(self):
        return {key: GaugeMetricFamily(fqname("config", metric), help) for key, (metric, help) in CONFIGS.items()}

    def gather(self):
        out = self.runner.run("mmdiag", ["--config", "-Y"], self.timeout)
        return parse_mmdiag_config(out)

    def project(self, families, values):
        for key, value in values.items():
            families[key].add_metric([], value)


def parse_mmdiag_config(out):
    values = dict()
    for record in records.parse(out, "mmdiag", FIELDS, sections=["config"]):
        if record["name"] in CONFIGS:
            values[record["name"]] = records.parse_number(record["value"])
    return values
