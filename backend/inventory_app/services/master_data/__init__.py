"""Master Data Services - reference table registry and CRUD"""

from .registry import TABLES, TableSpec, get_table_spec
from .master_data_service import MasterDataService

__all__ = [
    "TABLES",
    "TableSpec",
    "get_table_spec",
    "MasterDataService",
]
