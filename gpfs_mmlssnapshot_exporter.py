# GPFS mmlssnapshot batch exporter
#
# Snapshot sizes (--collector.mmlssnapshot.get-size) take a long time to
# compute, so this runs from cron and writes for the node_exporter textfile
# collector.
#
import batch
from gpfs_collectors.mmlssnapshot import MmlssnapshotCollector


def main():
    batch.main(MmlssnapshotCollector, "GPFS mmlssnapshot exporter for the node_exporter textfile collector")


if __name__ == '__main__':
    main()
