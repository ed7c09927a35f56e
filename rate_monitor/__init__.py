"""OTA Rate Monitor Package"""

__version__ = "1.0.0"

from .aggregator import run_scan, scan_site
from .fetch import FetchOutcome, PageContent, SnapshotFetcher
from .models import DatePair, MonitorConfig, RateRecord, ScanResult
from .reconcile import reconcile
