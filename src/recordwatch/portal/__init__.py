from .client import PortalClient
from .errors import (
    AuthenticationError,
    MalformedResponseError,
    PortalError,
    PortalTransportError,
    UnrecognizedValueError,
)
from .fetcher import PageFetcher, page_counters
from .models import ListType, Record, RecordType, ServiceLevel
from .scans import scan_all, scan_month
from .session import PortalSession

__all__ = [
    "AuthenticationError",
    "ListType",
    "MalformedResponseError",
    "PageFetcher",
    "PortalClient",
    "PortalError",
    "PortalSession",
    "PortalTransportError",
    "Record",
    "RecordType",
    "ServiceLevel",
    "UnrecognizedValueError",
    "page_counters",
    "scan_all",
    "scan_month",
]
