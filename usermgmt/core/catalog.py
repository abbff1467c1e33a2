"""Role/privilege catalog: kind discrimination and id resolution.

Keycloak stores roles and privileges as plain realm roles in one flat
namespace. The kind of an entry is decided once, here, from its name prefix:

    role_<name>  -> Kind.ROLE       (assignable to users and groups)
    priv_<name>  -> Kind.PRIVILEGE  (composable into roles and groups only)

Realm roles carrying neither prefix (``offline_access``,
``default-roles-<realm>``) are not managed by this service and never enter a
``Catalog``.

The Admin API addresses roles by name, so every id-based operation starts by
materializing the whole catalog with one ``list_roles()`` call. The resulting
``Catalog`` snapshot is handed explicitly to every resolution step of that
operation and discarded afterwards.
"""
from __future__ import annotations
import enum
import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from .errors import InvalidOperationError, PrivilegeNotFoundError, RoleNotFoundError

logger = logging.getLogger(__name__)


class Kind(enum.Enum):
    ROLE = "role"
    PRIVILEGE = "privilege"


@dataclass(frozen=True)
class Naming:
    """Prefix convention partitioning the realm-role namespace."""

    role_prefix: str = "role_"
    privilege_prefix: str = "priv_"

    @classmethod
    def from_config(cls, cfg) -> "Naming":
        return cls(role_prefix=cfg.role_prefix, privilege_prefix=cfg.privilege_prefix)

    def kind_of(self, name: Optional[str]) -> Optional[Kind]:
        """Return the kind encoded in ``name`` or None for unmanaged names."""
        if not name:
            return None
        if name.startswith(self.role_prefix):
            return Kind.ROLE
        if name.startswith(self.privilege_prefix):
            return Kind.PRIVILEGE
        return None

    def prefix_for(self, kind: Kind) -> str:
        return self.role_prefix if kind is Kind.ROLE else self.privilege_prefix

    def ensure_role_prefix(self, name: str) -> str:
        if name.startswith(self.role_prefix):
            return name
        prefixed = f"{self.role_prefix}{name}"
        logger.info("Auto-prepended '%s' prefix. Final role name: %s", self.role_prefix, prefixed)
        return prefixed

    def display_name(self, name: str, kind: Kind) -> str:
        return name[len(self.prefix_for(kind)):]


@dataclass(frozen=True)
class CatalogEntry:
    """A realm role tagged with its kind at the data boundary."""

    id: str
    name: str
    kind: Kind
    display_name: str
    description: Optional[str] = None
    composite: bool = False

    @property
    def is_role(self) -> bool:
        return self.kind is Kind.ROLE

    @property
    def is_privilege(self) -> bool:
        return self.kind is Kind.PRIVILEGE

    def to_representation(self) -> dict:
        """Minimal Keycloak role representation accepted by mapping endpoints."""
        return {"id": self.id, "name": self.name}


def classify(naming: Naming, representation: dict) -> Optional[CatalogEntry]:
    """Tag a raw Keycloak role representation, or return None when unmanaged."""
    name = representation.get("name")
    kind = naming.kind_of(name)
    if kind is None:
        return None
    return CatalogEntry(
        id=representation.get("id"),
        name=name,
        kind=kind,
        display_name=naming.display_name(name, kind),
        description=representation.get("description"),
        composite=bool(representation.get("composite", False)),
    )


def classify_all(naming: Naming, representations: Iterable[dict]) -> list[CatalogEntry]:
    entries = []
    for rep in representations:
        entry = classify(naming, rep)
        if entry is not None:
            entries.append(entry)
    return entries


def _not_found(kind: Optional[Kind], entry_id) -> Exception:
    if kind is Kind.PRIVILEGE:
        return PrivilegeNotFoundError(f"Privilege with ID '{entry_id}' not found")
    return RoleNotFoundError(f"Role with ID '{entry_id}' not found")


class Catalog:
    """Immutable snapshot of every managed realm role, indexed by id."""

    def __init__(self, entries: Iterable[CatalogEntry], naming: Naming):
        self.naming = naming
        self.entries: tuple[CatalogEntry, ...] = tuple(entries)
        self._by_id = {entry.id: entry for entry in self.entries}

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    def get(self, entry_id: str) -> Optional[CatalogEntry]:
        return self._by_id.get(entry_id)

    def roles(self) -> list[CatalogEntry]:
        return [entry for entry in self.entries if entry.is_role]

    def privileges(self) -> list[CatalogEntry]:
        return [entry for entry in self.entries if entry.is_privilege]

    def resolve(self, ids: Iterable[str], expected_kind: Optional[Kind] = None) -> list[CatalogEntry]:
        """Map ids to entries in order, failing on the first bad id.

        Raises:
            RoleNotFoundError / PrivilegeNotFoundError: id absent (or blank)
            InvalidOperationError: entry kind differs from ``expected_kind``
        """
        resolved = []
        for entry_id in ids:
            entry = self._by_id.get(entry_id) if entry_id and str(entry_id).strip() else None
            if entry is None:
                raise _not_found(expected_kind, entry_id)
            if expected_kind is not None and entry.kind is not expected_kind:
                raise InvalidOperationError(_kind_mismatch_message(self.naming, entry_id, expected_kind))
            resolved.append(entry)
        return resolved


def _kind_mismatch_message(naming: Naming, entry_id: str, expected_kind: Kind) -> str:
    if expected_kind is Kind.ROLE:
        return (
            f"Invalid role ID '{entry_id}'. Only roles (starting with '{naming.role_prefix}') "
            "can be assigned to users, not privileges."
        )
    return (
        f"Invalid privilege ID '{entry_id}'. The role with this ID is not a privilege "
        f"(must start with '{naming.privilege_prefix}')"
    )


class CatalogResolver:
    """Fetches catalog snapshots and resolves ids against them."""

    def __init__(self, roles_api, naming: Naming):
        """
        Args:
            roles_api: ``RealmRolesAPI`` (or any object with ``list_roles()``)
            naming: Prefix convention
        """
        self.roles_api = roles_api
        self.naming = naming

    def fetch(self) -> Catalog:
        """One remote round trip: list all realm roles and tag them."""
        catalog = Catalog(classify_all(self.naming, self.roles_api.list_roles()), self.naming)
        logger.debug("Fetched catalog with %d managed entries", len(catalog))
        return catalog

    def resolve_by_ids(self, ids: Iterable[str], catalog: Optional[Catalog] = None) -> list[CatalogEntry]:
        """Resolve ids of any kind; fetches a fresh catalog unless one is given."""
        catalog = catalog if catalog is not None else self.fetch()
        return catalog.resolve(ids)

    def resolve_by_ids_of_kind(
        self,
        ids: Iterable[str],
        expected_kind: Kind,
        catalog: Optional[Catalog] = None,
    ) -> list[CatalogEntry]:
        """Resolve ids and require every entry to be of ``expected_kind``."""
        catalog = catalog if catalog is not None else self.fetch()
        return catalog.resolve(ids, expected_kind)

    def classify(self, representation: dict) -> Optional[CatalogEntry]:
        return classify(self.naming, representation)

    def classify_all(self, representations: Iterable[dict]) -> list[CatalogEntry]:
        return classify_all(self.naming, representations)
