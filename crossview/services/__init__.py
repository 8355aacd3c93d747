"""Services behind the HTTP layer."""

from .dashboard import Dashboard
from .datastore import DataStore
from .metrics import Metrics

__all__ = ["Dashboard", "DataStore", "Metrics"]
