"""Data-source adapters."""

from .app import AppDataSource
from .app_roles import AppRolesDataSource
from .available_stacks import AvailableStacksDataSource
from .base import DataSourceAdapter
from .org_groups import OrgGroup, OrgGroupsDataSource

DATA_SOURCES: tuple[type[DataSourceAdapter], ...] = (
    AvailableStacksDataSource,
    OrgGroupsDataSource,
    AppRolesDataSource,
    AppDataSource,
)

__all__ = [
    "DATA_SOURCES",
    "AppDataSource",
    "AppRolesDataSource",
    "AvailableStacksDataSource",
    "DataSourceAdapter",
    "OrgGroup",
    "OrgGroupsDataSource",
]
