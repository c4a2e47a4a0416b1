#
# mmdf - filesystem, metadata and pool capacity, one 'mmdf <fs> -Y' per filesystem
#
from prometheus_client.core import GaugeMetricFamily

import records
from collector import FilesystemCollector, fqname

FIELDS = {
    # inode
    "usedInodes": records.Field("usedInodes", records.FLOAT, required=False),
    "freeInodes": records.Field("freeInodes", records.FLOAT, required=False),
    "allocatedInodes": records.Field("allocatedInodes", records.FLOAT, required=False),
    "maxInodes": records.Field("maxInodes", records.FLOAT, required=False),
    # fsTotal
    "fsSize": records.Field("fsSize", records.KB, required=False),
    # metadata
    "totalMetadata": records.Field("totalMetadata", records.KB, required=False),
    # poolTotal
    "poolName": records.Field("poolName"),
    "poolSize": records.Field("poolSize", records.KB, required=False),
    "freeFragments": records.Field("freeFragments", records.KB, required=False),
    "maxDiskSize": records.Field("maxDiskSize", records.KB, required=False),
    # fsTotal, metadata, poolTotal
    "freeBlocks": records.Field("freeBlocks", records.KB, required=False),
}
SECTIONS = ["inode", "fsTotal", "metadata", "poolTotal"]

FS_METRICS = {
    "used_inodes": "GPFS filesystem inodes used",
    "free_inodes": "GPFS filesystem inodes free",
    "allocated_inodes": "GPFS filesystem inodes allocated",
    "inodes": "GPFS filesystem inodes total",
    "size_bytes": "GPFS filesystem total size in bytes",
    "free_bytes": "GPFS filesystem free size in bytes",
    "metadata_size_bytes": "GPFS total metadata size in bytes",
    "metadata_free_bytes": "GPFS metadata free size in bytes",
}
POOL_METRICS = {
    "pool_total_bytes": "GPFS pool total size in bytes",
    "pool_free_bytes": "GPFS pool free size in bytes",
    "pool_free_fragments_bytes": "GPFS pool free fragments in bytes",
    "pool_max_disk_size_bytes": "GPFS pool max disk size in bytes",
}


class MmdfCollector(FilesystemCollector):
    name = "mmdf"
    default_timeout = 60

    def metrics(self):
        families = {name: GaugeMetricFamily(fqname("fs", name), help, labels=["fs"])
                    for name, help in FS_METRICS.items()}
        families.update({name: GaugeMetricFamily(fqname("fs", name), help, labels=["fs", "pool"])
                         for name, help in POOL_METRICS.items()})
        return families

    def gather(self, fs):
        out = self.runner.run("mmdf", [fs, "-Y"], self.timeout)
        return parse_mmdf(out)

    def project(self, families, df, fs):
        for name in FS_METRICS:
            if name in df:
                families[name].add_metric([fs], df[name])
        for pool in df["pools"]:
            for name in POOL_METRICS:
                families[name].add_metric([fs, pool["pool"]], pool[name])


def parse_mmdf(out):
    """ -> {metric: value, 'pools': [{'pool': name, metric: value}]}; metadata only when reported """
    df = {"pools": []}
    for record in records.parse(out, "mmdf", FIELDS, sections=SECTIONS):
        if record.section == "inode":
            df["used_inodes"] = record["usedInodes"]
            df["free_inodes"] = record["freeInodes"]
            df["allocated_inodes"] = record["allocatedInodes"]
            df["inodes"] = record["maxInodes"]
        elif record.section == "fsTotal":
            df["size_bytes"] = record["fsSize"]
            df["free_bytes"] = record["freeBlocks"]
        elif record.section == "metadata":
            df["metadata_size_bytes"] = record["totalMetadata"]
            df["metadata_free_bytes"] = record["freeBlocks"]
        elif record.section == "poolTotal":
            df["pools"].append({
                "pool": record["poolName"],
                "pool_total_bytes": record["poolSize"],
                "pool_free_bytes": record["freeBlocks"],
                "pool_free_fragments_bytes": record["freeFragments"],
                "pool_max_disk_size_bytes": record["maxDiskSize"],
            })
    return df
