"""Domain layer: catalog, services, projection and errors."""
from .catalog import Catalog, CatalogEntry, CatalogResolver, Kind, Naming
from .group_service import GroupService
from .projection import ProjectionSync, SyncOutcome, UserProjectionStore
from .role_service import RoleService
from .user_service import UserService

__all__ = [
    "Catalog",
    "CatalogEntry",
    "CatalogResolver",
    "Kind",
    "Naming",
    "GroupService",
    "RoleService",
    "UserService",
    "ProjectionSync",
    "SyncOutcome",
    "UserProjectionStore",
]
