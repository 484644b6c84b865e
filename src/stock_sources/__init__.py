# Collaborators around the engine: reading ERP exports and caching results
# Everything source-specific (file layout, header names) lives here

from .erp_loader import ErpLoader, LoadedData, UnsupportedSourceError, read_sheet_rows
from .session import AnalyticsSession, ResultCache
from .settings import AnalyticsSettings, configure_logging, get_settings

__all__ = [
    "ErpLoader",
    "LoadedData",
    "UnsupportedSourceError",
    "read_sheet_rows",
    "AnalyticsSession",
    "ResultCache",
    "AnalyticsSettings",
    "configure_logging",
    "get_settings",
]
