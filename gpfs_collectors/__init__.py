#
# gpfs_collectors - one module per GPFS subsystem
#
from register import Registry

from gpfs_collectors.config import ConfigCollector
from gpfs_collectors.mmces import MmcesCollector
from gpfs_collectors.mmdf import MmdfCollector
from gpfs_collectors.mmdiag import MmdiagCollector
from gpfs_collectors.mmgetstate import MmgetstateCollector
from gpfs_collectors.mmhealth import MmhealthCollector
from gpfs_collectors.mmlsdisk import MmlsdiskCollector
from gpfs_collectors.mmlsfileset import MmlsfilesetCollector
from gpfs_collectors.mmlspool import MmlspoolCollector
from gpfs_collectors.mmlsqos import MmlsqosCollector
from gpfs_collectors.mmlssnapshot import MmlssnapshotCollector
from gpfs_collectors.mmpmon import MmpmonCollector
from gpfs_collectors.mmrepquota import MmrepquotaCollector
from gpfs_collectors.mount import MountCollector
from gpfs_collectors.verbs import VerbsCollector
from gpfs_collectors.waiter import WaiterCollector

COLLECTORS = [
    ConfigCollector,
    MmcesCollector,
    MmdfCollector,
    MmdiagCollector,
    MmgetstateCollector,
    MmhealthCollector,
    MmlsdiskCollector,
    MmlsfilesetCollector,
    MmlspoolCollector,
    MmlsqosCollector,
    MmlssnapshotCollector,
    MmpmonCollector,
    MmrepquotaCollector,
    MountCollector,
    VerbsCollector,
    WaiterCollector,
]


def default_registry(collectors=COLLECTORS):
    """ a Registry holding every known collector with its default enabled state """
    registry = Registry()
    for collector in collectors:
        registry.register(collector.name, collector, default_enabled=collector.default_enabled)
    return registry
