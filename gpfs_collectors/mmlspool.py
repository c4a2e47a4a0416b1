#
# mmlspool - storage pool capacity from the 'mmlspool <fs>' table
#
#   Name     Id   BlkSize Data Meta Total Data in (KB)   Free Data in (KB)   Total Meta in (KB)    Free Meta in (KB)
#   system    0      8 MB  yes  yes   783308292096   143079555072 ( 18%)   783308292096   205366984704 ( 26%)
#
from logging import getLogger

from prometheus_client.core import GaugeMetricFamily

from collector import FilesystemCollector, fqname
from records import ParseError, parse_number

log = getLogger(__name__)

# "<word> <Data|Meta> in (KB)" -> column name
COMBINED = {("Total", "Data"): "TotalData", ("Free", "Data"): "FreeData",
            ("Total", "Meta"): "TotalMeta", ("Free", "Meta"): "FreeMeta"}

# column -> (value key, KB scaled)
COLUMNS = {
    "TotalData": ("total_bytes", True),
    "FreeData": ("free_bytes", True),
    "FreeDataPercent": ("free_percent", False),
    "TotalMeta": ("metadata_total_bytes", True),
    "FreeMeta": ("metadata_free_bytes", True),
    "FreeMetaPercent": ("metadata_free_percent", False),
}
DATA_METRICS = {
    "total_bytes": "GPFS pool total size in bytes",
    "free_bytes": "GPFS pool free size in bytes",
    "free_percent": "GPFS pool free percent",
}
META_METRICS = {
    "metadata_total_bytes": "GPFS pool total metadata in bytes",
    "metadata_free_bytes": "GPFS pool free metadata in bytes",
    "metadata_free_percent": "GPFS pool free metadata percent",
}


class MmlspoolCollector(FilesystemCollector):
    name = "mmlspool"
    default_timeout = 30

    def metrics(self):
        metrics = dict(DATA_METRICS, **META_METRICS)
        return {key: GaugeMetricFamily(fqname("pool", key), help, labels=["fs", "pool"])
                for key, help in metrics.items()}

    def gather(self, fs):
        out = self.runner.run("mmlspool", [fs], self.timeout)
        return parse_mmlspool(out)

    def project(self, families, pools, fs):
        for pool in pools:
            labelvalues = [fs, pool["pool"]]
            for key in DATA_METRICS:
                families[key].add_metric(labelvalues, pool[key])
            if pool["meta"]:
                for key in META_METRICS:
                    families[key].add_metric(labelvalues, pool[key])


def parse_mmlspool_headers(items):
    headers = list()
    i = 0
    while i < len(items):
        item = items[i]
        combined = COMBINED.get((item, items[i + 1] if i + 1 < len(items) else None))
        if combined is not None:
            item = combined
            i += 3   # skip "Data in (KB)"
        headers.append(item)
        if item.startswith("Free"):
            headers.append(f"{item}Percent")
        i += 1
    return headers


def parse_mmlspool(out):
    pools = list()
    headers = None
    for line in out.splitlines():
        items = line.split()
        if not items:
            continue
        if items[0] == "Name":
            headers = parse_mmlspool_headers(items)
            log.debug(f"headers={headers}")
            continue
        if len(items) < 2 or headers is None:
            continue

        # ( 18%) -> 18, 8 MB -> 8, 1024 KB -> 1024
        line = line.replace("(", "").replace("%)", "").replace(" MB", "").replace(" KB", "")
        items = line.split()
        if len(items) < len(headers):
            raise ParseError("mmlspool output column mismatch")

        pool = {"pool": "", "meta": False}
        pool.update({key: 0 for key, _ in COLUMNS.values()})
        for header, item in zip(headers, items):
            if header == "Name":
                pool["pool"] = item
            elif header == "Meta":
                pool["meta"] = item == "yes"
            elif header in COLUMNS:
                key, kb = COLUMNS[header]
                pool[key] = parse_number(item, 1024 if kb else 1)
        pools.append(pool)

    if headers is not None and not pools:
        raise ParseError("mmlspool header found but no pools")
    return pools
