# GPFS mmdf batch exporter
#
# mmdf is slow, so it runs from cron and its output is written for the
# node_exporter textfile collector instead of being gathered on every scrape.
#
import batch
from gpfs_collectors.mmdf import MmdfCollector


def main():
    batch.main(MmdfCollector, "GPFS mmdf exporter for the node_exporter textfile collector")


if __name__ == '__main__':
    main()
