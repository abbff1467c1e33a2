"""Group management: lifecycle, membership and realm role mappings."""
from __future__ import annotations
import logging
from typing import Optional

from .catalog import CatalogResolver, Kind
from .errors import GroupNotFoundError, InvalidOperationError, UserNotFoundError
from .keycloak.exceptions import KeycloakAPIError, KeycloakError
from .models import GroupDTO, GroupRolesPrivilegesDTO, PrivilegeDTO, RoleDTO, UserDTO
from .user_service import build_user_view

logger = logging.getLogger(__name__)

HTTP_CREATED = 201


class GroupService:
    """Service for managing Keycloak groups.

    Batch updates run sequentially and stop at the first failure; work done
    before the failure is kept.
    """

    def __init__(self, store, resolver: CatalogResolver):
        """Initialize group service.

        Args:
            store: IdentityStoreClient (``.groups`` and ``.users`` are used)
            resolver: Catalog resolver for role and privilege ids
        """
        self.groups = store.groups
        self.users = store.users
        self.resolver = resolver
        self.naming = resolver.naming

    def create_group(self, name: str, user_ids: Optional[list[str]] = None) -> GroupDTO:
        """Create a group and add the given users to it.

        An unknown user id raises ``UserNotFoundError`` after the group (and
        any users joined before it) already exist.
        """
        logger.info("Creating group: %s", name)
        try:
            status, group_id = self.groups.create_group(name)
        except KeycloakAPIError as exc:
            if exc.is_conflict:
                raise InvalidOperationError(f"Failed to create group. Status: {exc.status_code}") from exc
            raise
        if status != HTTP_CREATED:
            raise InvalidOperationError(f"Failed to create group. Status: {status}")
        logger.info("Group '%s' created successfully with ID: %s", name, group_id)

        if user_ids:
            logger.info("Adding %d users to group '%s'", len(user_ids), name)
            self._add_users(group_id, user_ids)
            logger.info("Added %d users to group '%s'", len(user_ids), name)

        return self._to_dto(self._require_group(group_id))

    def delete_group(self, group_id: str) -> None:
        # Groups are deleted even when they still have members or mappings
        logger.info("Deleting group with ID: %s", group_id)
        self._require_group(group_id)
        self.groups.delete_group(group_id)
        logger.info("Group with ID '%s' deleted successfully", group_id)

    def get_all_groups(self) -> list[GroupDTO]:
        logger.info("Fetching all groups")
        return [self._to_dto(group) for group in self.groups.list_groups()]

    def get_roles_and_privileges_for_group(self, group_id: str) -> GroupRolesPrivilegesDTO:
        """Split the group's direct realm role mappings by kind."""
        logger.info("Fetching roles and privileges for group: %s", group_id)
        self._require_group(group_id)

        result = GroupRolesPrivilegesDTO()
        for entry in self.resolver.classify_all(self.groups.get_realm_role_mappings(group_id)):
            if entry.is_role:
                result.roles.append(RoleDTO.from_entry(entry))
            else:
                result.privileges.append(PrivilegeDTO.from_entry(entry))
        return result

    def get_users_in_group(self, group_id: str) -> list[UserDTO]:
        logger.info("Fetching users for group: %s", group_id)
        self._require_group(group_id)
        return [build_user_view(self.users, self.naming, member) for member in self.groups.get_members(group_id)]

    def update_group_users(
        self,
        group_id: str,
        user_ids_to_add: Optional[list[str]] = None,
        user_ids_to_remove: Optional[list[str]] = None,
    ) -> None:
        logger.info("Updating users for group: %s", group_id)
        self._require_group(group_id)
        if user_ids_to_add:
            self._add_users(group_id, user_ids_to_add)
        if user_ids_to_remove:
            self._remove_users(group_id, user_ids_to_remove)

    def update_group_roles_and_privileges(
        self,
        group_id: str,
        role_ids_to_add: Optional[list[str]] = None,
        role_ids_to_remove: Optional[list[str]] = None,
        privilege_ids_to_add: Optional[list[str]] = None,
        privilege_ids_to_remove: Optional[list[str]] = None,
    ) -> None:
        """Apply four mapping batches in order: roles +, roles -, privileges +, privileges -.

        Additions enforce the expected kind. Removals only require the ids to
        exist. All four batches resolve against one catalog snapshot, each
        right before its own mutation.
        """
        logger.info("Updating roles and privileges for group: %s", group_id)
        self._require_group(group_id)
        catalog = self.resolver.fetch()

        if role_ids_to_add:
            roles = self.resolver.resolve_by_ids_of_kind(role_ids_to_add, Kind.ROLE, catalog=catalog)
            self.groups.add_realm_role_mappings(group_id, [r.to_representation() for r in roles])
            logger.info("Assigned %d roles to group '%s'", len(roles), group_id)

        if role_ids_to_remove:
            roles = self.resolver.resolve_by_ids(role_ids_to_remove, catalog=catalog)
            self.groups.remove_realm_role_mappings(group_id, [r.to_representation() for r in roles])
            logger.info("Removed %d roles from group '%s'", len(roles), group_id)

        if privilege_ids_to_add:
            privileges = self.resolver.resolve_by_ids_of_kind(privilege_ids_to_add, Kind.PRIVILEGE, catalog=catalog)
            self.groups.add_realm_role_mappings(group_id, [p.to_representation() for p in privileges])
            logger.info("Assigned %d privileges to group '%s'", len(privileges), group_id)

        if privilege_ids_to_remove:
            privileges = self.resolver.resolve_by_ids(privilege_ids_to_remove, catalog=catalog)
            self.groups.remove_realm_role_mappings(group_id, [p.to_representation() for p in privileges])
            logger.info("Removed %d privileges from group '%s'", len(privileges), group_id)

        logger.info("Updated roles and privileges for group '%s'", group_id)

    def _require_group(self, group_id: str) -> dict:
        group = self.groups.get_group(group_id) if group_id and group_id.strip() else None
        if group is None:
            raise GroupNotFoundError(f"Group with ID '{group_id}' not found")
        return group

    def _add_users(self, group_id: str, user_ids: list[str]) -> None:
        for user_id in user_ids:
            self._membership_call(self.users.join_group, user_id, group_id)
            logger.info("Added user '%s' to group '%s'", user_id, group_id)

    def _remove_users(self, group_id: str, user_ids: list[str]) -> None:
        for user_id in user_ids:
            self._membership_call(self.users.leave_group, user_id, group_id)
            logger.info("Removed user '%s' from group '%s'", user_id, group_id)

    @staticmethod
    def _membership_call(call, user_id: str, group_id: str) -> None:
        if not user_id or not user_id.strip():
            raise UserNotFoundError(f"User with ID '{user_id}' not found")
        try:
            call(user_id, group_id)
        except KeycloakAPIError as exc:
            if exc.is_not_found:
                raise UserNotFoundError(f"User with ID '{user_id}' not found") from exc
            raise

    def _to_dto(self, group: dict) -> GroupDTO:
        try:
            user_count = len(self.groups.get_members(group.get("id")))
        except KeycloakError as exc:
            logger.warning("Could not fetch user count for group %s: %s", group.get("id"), exc)
            user_count = 0
        return GroupDTO(id=group.get("id"), name=group.get("name"), user_count=user_count)
