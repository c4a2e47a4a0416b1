#
# mount - is each GPFS filesystem mounted on this node
#
import os
import re
from concurrent.futures import ThreadPoolExecutor, TimeoutError
from logging import getLogger

from prometheus_client.core import GaugeMetricFamily

from collector import Collector, fqname
from config import Option, split_list
from runner import DeadlineExceeded

log = getLogger(__name__)

PROC_MOUNTS = "/proc/mounts"
FSTAB = "/etc/fstab"
FSTYPE = "gpfs"
OCTAL_ESCAPE = re.compile(r"\\([0-7]{3})")


def read_mounts(path, fstype=FSTYPE):
    """ mount points of fstype from a file in fstab/mtab format """
    mounts = list()
    with open(path, encoding="utf-8", errors="replace") as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            items = line.split()
            if len(items) < 3 or items[2] != fstype:
                continue
            # octal escapes, ie: \040 for a space
            mountpoint = OCTAL_ESCAPE.sub(lambda m: chr(int(m.group(1), 8)), items[1])
            if mountpoint not in mounts:
                mounts.append(mountpoint)
    return mounts


class MountCollector(Collector):
    name = "mount"
    default_enabled = True
    default_timeout = 5
    options = (
        Option("mounts", "", "Mountpoints to monitor, comma separated. Defaults to all filesystems."),
    )

    def metrics(self):
        return {"status": GaugeMetricFamily(fqname("mount", "status"),
                                            "Status of GPFS filesystems, 1=mounted 0=not mounted", labels=["mount"])}

    def gather(self):
        # a hung GPFS mount can block reads of /proc/mounts
        executor = ThreadPoolExecutor(max_workers=1)
        future = executor.submit(self.read_tables)
        try:
            mounted, fstab = future.result(timeout=self.timeout)
        except TimeoutError:
            raise DeadlineExceeded(["read", PROC_MOUNTS, FSTAB], self.timeout)
        finally:
            executor.shutdown(wait=False)

        check = split_list(self.option("mounts")) or fstab
        return {mount: mount in mounted for mount in check}

    def read_tables(self):
        if not os.path.isfile(FSTAB):
            raise FileNotFoundError(f"{FSTAB} does not exist")
        return read_mounts(PROC_MOUNTS), read_mounts(FSTAB)

    def project(self, families, status):
        for mount, mounted in status.items():
            families["status"].add_metric([mount], 1 if mounted else 0)
