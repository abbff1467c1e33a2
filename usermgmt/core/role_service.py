"""Role and privilege management on top of Keycloak realm roles."""
from __future__ import annotations
import logging
from typing import Optional

from .catalog import Catalog, CatalogEntry, CatalogResolver, Kind
from .errors import InvalidOperationError, RoleInUseError, RoleNotFoundError
from .keycloak.exceptions import KeycloakAPIError
from .models import PrivilegeDTO, RoleDTO

logger = logging.getLogger(__name__)

_PAST_TENSE = {"delete": "deleted", "modify": "modified"}


class RoleService:
    """Service for managing roles and reading privileges.

    Roles are realm roles named ``<role_prefix><name>``; privileges are realm
    roles named ``<privilege_prefix><name>`` attached to roles as composites.
    Privileges are provisioned outside this service and are read-only here.
    """

    def __init__(self, store, resolver: CatalogResolver):
        """Initialize role service.

        Args:
            store: IdentityStoreClient (``.roles`` is used)
            resolver: Catalog resolver sharing the store's roles API
        """
        self.roles = store.roles
        self.resolver = resolver
        self.naming = resolver.naming

    def create_role(
        self,
        name: str,
        description: Optional[str] = None,
        privilege_ids: Optional[list[str]] = None,
    ) -> RoleDTO:
        """Create a role, optionally composed of existing privileges.

        Privilege ids are validated before anything is written, so an invalid
        id never leaves a half-created role behind.

        Raises:
            InvalidOperationError: Name already taken, or an id is not a privilege
            PrivilegeNotFoundError: A privilege id does not exist
        """
        role_name = self.naming.ensure_role_prefix(name)
        logger.info("Creating role: %s", role_name)

        if self.roles.get_role(role_name) is not None:
            raise InvalidOperationError(f"Role '{role_name}' already exists")

        privileges: list[CatalogEntry] = []
        if privilege_ids:
            privileges = self.resolver.resolve_by_ids_of_kind(privilege_ids, Kind.PRIVILEGE)
            logger.info("Validated %d privilege IDs successfully", len(privileges))

        try:
            self.roles.create_role(role_name, description=description, composite=bool(privileges))
        except KeycloakAPIError as exc:
            if exc.is_conflict:
                raise InvalidOperationError(f"Role '{role_name}' already exists") from exc
            raise
        logger.info("Role '%s' created successfully", role_name)

        if privileges:
            self.roles.add_composites(role_name, [p.to_representation() for p in privileges])
            logger.info("Added %d privileges to role '%s'", len(privileges), role_name)

        return self._load_role(role_name)

    def delete_role(self, role_id: str) -> None:
        """Delete a role that no user holds directly.

        Only direct user members block deletion; group mappings and
        memberships inherited through groups do not.

        Raises:
            RoleNotFoundError: Unknown id
            InvalidOperationError: Id names a privilege
            RoleInUseError: At least one user holds the role directly
        """
        logger.info("Attempting to delete role with ID: %s", role_id)
        entry = self._entry(role_id)
        logger.info("Resolved role ID '%s' to role name '%s'", role_id, entry.name)
        self._reject_privilege(entry, "delete")

        members = self.roles.get_user_members(entry.name)
        if members:
            raise RoleInUseError(
                f"Cannot delete role '{entry.name}'. It is currently assigned to {len(members)} user(s). "
                "Please remove the role from all users first."
            )

        self.roles.delete_role(entry.name)
        logger.info("Role '%s' deleted successfully", entry.name)

    def update_role(
        self,
        role_id: str,
        description: Optional[str] = None,
        privilege_ids_to_add: Optional[list[str]] = None,
        privilege_ids_to_remove: Optional[list[str]] = None,
    ) -> RoleDTO:
        """Update description and privilege composition of a role.

        Steps run in order (description, additions, removals) and are not
        rolled back if a later step fails. Additions must be privileges;
        removals only need to exist.
        """
        logger.info("Updating role with ID: %s", role_id)
        catalog = self.resolver.fetch()
        entry = self._entry(role_id, catalog)
        self._reject_privilege(entry, "modify")

        if description is not None:
            representation = self.roles.get_role(entry.name) or entry.to_representation()
            representation["description"] = description
            self.roles.update_role(entry.name, representation)
            logger.info("Updated description of role '%s'", entry.name)

        if privilege_ids_to_add:
            privileges = self.resolver.resolve_by_ids_of_kind(privilege_ids_to_add, Kind.PRIVILEGE, catalog=catalog)
            self.roles.add_composites(entry.name, [p.to_representation() for p in privileges])
            logger.info("Added %d privileges to role '%s'", len(privileges), entry.name)

        if privilege_ids_to_remove:
            privileges = self.resolver.resolve_by_ids(privilege_ids_to_remove, catalog=catalog)
            self.roles.remove_composites(entry.name, [p.to_representation() for p in privileges])
            logger.info("Removed %d privileges from role '%s'", len(privileges), entry.name)

        return self._load_role(entry.name)

    def get_all_roles(self) -> list[RoleDTO]:
        logger.info("Fetching all roles")
        return [RoleDTO.from_entry(entry) for entry in self.resolver.fetch().roles()]

    def get_all_privileges(self) -> list[PrivilegeDTO]:
        logger.info("Fetching all privileges")
        return [PrivilegeDTO.from_entry(entry) for entry in self.resolver.fetch().privileges()]

    def get_privileges_for_role(self, role_id: str) -> list[PrivilegeDTO]:
        """Privileges composed into the role; other composites are skipped."""
        logger.info("Fetching privileges for role with ID: %s", role_id)
        entry = self._entry(role_id)
        composites = self.resolver.classify_all(self.roles.get_composites(entry.name))
        return [PrivilegeDTO.from_entry(c) for c in composites if c.is_privilege]

    def _entry(self, role_id: str, catalog: Optional[Catalog] = None) -> CatalogEntry:
        return self.resolver.resolve_by_ids([role_id], catalog=catalog)[0]

    def _reject_privilege(self, entry: CatalogEntry, operation: str) -> None:
        if entry.is_privilege:
            raise InvalidOperationError(
                f"Cannot {operation} privilege '{entry.name}'. "
                f"Privileges are pre-defined and cannot be {_PAST_TENSE[operation]}."
            )

    def _load_role(self, role_name: str) -> RoleDTO:
        representation = self.roles.get_role(role_name)
        if representation is None:
            raise RoleNotFoundError(f"Role '{role_name}' not found")
        entry = self.resolver.classify(representation)
        if entry is None:
            raise RoleNotFoundError(f"Role '{role_name}' not found")
        return RoleDTO.from_entry(entry)
