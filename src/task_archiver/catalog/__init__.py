"""Task metadata catalog: contract, SQL implementation and retry policy."""

from task_archiver.catalog.base import Catalog
from task_archiver.catalog.repository import SqlCatalog
from task_archiver.catalog.retry import RetryingCatalog, call_with_retry

__all__ = ["Catalog", "RetryingCatalog", "SqlCatalog", "call_with_retry"]
