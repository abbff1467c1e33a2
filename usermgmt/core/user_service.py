"""User lifecycle, user role/group edges and the paginated user listing."""
from __future__ import annotations
import logging
from typing import Iterable, Optional

from .catalog import Catalog, CatalogEntry, CatalogResolver, Kind, Naming
from .errors import GroupNotFoundError, InvalidOperationError, UserNotFoundError
from .keycloak.exceptions import KeycloakAPIError, KeycloakError
from .models import Pagination, PaginatedResponse, UserDTO, UserGroupInfo, UserRoleInfo
from .projection import ProjectionSync

logger = logging.getLogger(__name__)

DEFAULT_SORT_BY = "createdTimestamp"
DEFAULT_SORT_ORDER = "desc"

# Accepted sort keys (lower-cased) -> UserDTO attribute
SORT_FIELDS = {
    "createdtimestamp": "created_timestamp",
    "createdat": "created_timestamp",
    "username": "username",
    "email": "email",
    "firstname": "first_name",
    "lastname": "last_name",
}


def build_user_view(users_api, naming: Naming, representation: dict) -> UserDTO:
    """Full user view: effective Role-kind realm roles plus group memberships."""
    user_id = representation.get("id")
    roles = []
    for role in users_api.get_effective_realm_roles(user_id):
        name = role.get("name") or ""
        if naming.kind_of(name) is Kind.ROLE:
            roles.append(UserRoleInfo(role.get("id"), name, naming.display_name(name, Kind.ROLE)))
    groups = [UserGroupInfo(g.get("id"), g.get("name")) for g in users_api.get_groups(user_id)]
    return UserDTO.from_representation(representation, roles=roles, groups=groups)


def _sort_users(users: list[UserDTO], sort_by: str, sort_order: str) -> list[UserDTO]:
    attribute = SORT_FIELDS.get((sort_by or "").lower(), "created_timestamp")
    descending = (sort_order or "").lower() != "asc"

    def value(user):
        raw = getattr(user, attribute)
        return raw.lower() if isinstance(raw, str) else raw

    present = [u for u in users if value(u) is not None]
    missing = [u for u in users if value(u) is None]
    return sorted(present, key=value, reverse=descending) + missing


def _single_valued(attributes: dict, entity_code: Optional[str], country_code: Optional[str]) -> dict:
    if entity_code is not None:
        attributes["entity_code"] = [entity_code]
    if country_code is not None:
        attributes["country_code"] = [country_code]
    return attributes


class UserService:
    """Service for managing users and their role/group edges.

    Every successful remote user mutation is followed by a projection sync
    through ``ProjectionSync``; sync failures are recorded, not raised.
    """

    def __init__(
        self,
        store,
        resolver: CatalogResolver,
        projection_sync: ProjectionSync,
        default_page_size: int = 10,
        max_page_size: int = 100,
    ):
        """Initialize user service.

        Args:
            store: IdentityStoreClient (``.users`` and ``.groups`` are used)
            resolver: Catalog resolver for role ids
            projection_sync: Local projection writer
            default_page_size: Page size used when the caller gives none
            max_page_size: Upper clamp for requested page sizes
        """
        self.users = store.users
        self.groups = store.groups
        self.resolver = resolver
        self.naming = resolver.naming
        self.projection_sync = projection_sync
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    # ─────────────────────────────────────────────────────────────
    # Role and group edges
    # ─────────────────────────────────────────────────────────────

    def assign_roles(self, user_id: str, role_ids: list[str], catalog: Optional[Catalog] = None) -> None:
        """Assign roles to a user; privileges are rejected.

        ``catalog`` lets a caller reuse the snapshot of its own operation;
        without it one is fetched here.
        """
        self._require_user(user_id)
        self._add_roles(user_id, self.resolver.resolve_by_ids_of_kind(role_ids, Kind.ROLE, catalog=catalog))

    def remove_roles(self, user_id: str, role_ids: list[str], catalog: Optional[Catalog] = None) -> None:
        """Remove realm roles from a user; ids only need to exist."""
        self._require_user(user_id)
        self._remove_roles(user_id, self.resolver.resolve_by_ids(role_ids, catalog=catalog))

    def assign_groups(self, user_id: str, group_ids: list[str]) -> None:
        """Join groups one by one; stops at the first unknown group."""
        self._require_user(user_id)
        self._join_groups(user_id, group_ids)

    def remove_groups(self, user_id: str, group_ids: list[str]) -> None:
        """Leave groups one by one; stops at the first unknown group."""
        self._require_user(user_id)
        self._leave_groups(user_id, group_ids)

    def _add_roles(self, user_id: str, roles: list[CatalogEntry]) -> None:
        if roles:
            self.users.add_realm_roles(user_id, [r.to_representation() for r in roles])
            logger.info("Assigned %d roles to user '%s'", len(roles), user_id)

    def _remove_roles(self, user_id: str, roles: list[CatalogEntry]) -> None:
        if roles:
            self.users.remove_realm_roles(user_id, [r.to_representation() for r in roles])
            logger.info("Removed %d roles from user '%s'", len(roles), user_id)

    def _join_groups(self, user_id: str, group_ids: list[str]) -> None:
        for group_id in group_ids:
            self._require_group(group_id)
            self.users.join_group(user_id, group_id)
            logger.info("Added user '%s' to group '%s'", user_id, group_id)

    def _leave_groups(self, user_id: str, group_ids: list[str]) -> None:
        for group_id in group_ids:
            self._require_group(group_id)
            self.users.leave_group(user_id, group_id)
            logger.info("Removed user '%s' from group '%s'", user_id, group_id)

    # ─────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────

    def create_user(
        self,
        email: str,
        first_name: str,
        last_name: str,
        password: str,
        enabled: Optional[bool] = None,
        email_verified: Optional[bool] = None,
        entity_code: Optional[str] = None,
        country_code: Optional[str] = None,
        role_ids: Optional[list[str]] = None,
        group_ids: Optional[list[str]] = None,
    ) -> UserDTO:
        """Create a user whose username is its email.

        Role and group ids are validated before the user exists remotely.

        Raises:
            InvalidOperationError: Email already registered, or a role id is a privilege
            RoleNotFoundError / GroupNotFoundError: Unknown id
        """
        username = email
        logger.info("Creating user: %s", username)

        roles: list[CatalogEntry] = []
        if role_ids:
            roles = self.resolver.resolve_by_ids_of_kind(role_ids, Kind.ROLE)
            logger.info("Validated %d role IDs successfully", len(roles))
        if group_ids:
            self._validate_groups(group_ids)
            logger.info("Validated %d group IDs successfully", len(group_ids))

        representation = {
            "username": username,
            "email": email,
            "firstName": first_name,
            "lastName": last_name,
            "enabled": True if enabled is None else enabled,
            "emailVerified": False if email_verified is None else email_verified,
            "attributes": _single_valued({}, entity_code, country_code),
        }
        try:
            user_id = self.users.create_user(representation)
        except KeycloakAPIError as exc:
            if exc.is_conflict:
                raise InvalidOperationError(f"User with email '{email}' already exists") from exc
            raise
        logger.info("User '%s' created successfully with ID: %s", username, user_id)

        self.users.reset_password(user_id, password, temporary=False)
        self._add_roles(user_id, roles)
        if group_ids:
            self._join_groups(user_id, group_ids)

        self.projection_sync.on_user_created(user_id, representation)
        return self.get_user(user_id)

    def get_user(self, user_id: str) -> UserDTO:
        logger.info("Fetching user with ID: %s", user_id)
        return build_user_view(self.users, self.naming, self._require_user(user_id))

    def list_users(
        self,
        keyword: Optional[str] = None,
        role: Optional[str] = None,
        page_size: Optional[int] = None,
        page_number: Optional[int] = None,
        sort_by: Optional[str] = None,
        sort_order: Optional[str] = None,
    ) -> PaginatedResponse:
        """Page through users with optional keyword search and role filter.

        The role filter applies to the fetched page only, and the reported
        total becomes the filtered page size.
        """
        page_size = self.default_page_size if page_size is None else page_size
        page_size = max(1, min(page_size, self.max_page_size))
        page_number = max(1, page_number or 1)
        sort_by = sort_by or DEFAULT_SORT_BY
        sort_order = sort_order or DEFAULT_SORT_ORDER
        logger.info(
            "Fetching users with keyword: %s, role: %s, pageSize: %d, pageNumber: %d, sortBy: %s, sortOrder: %s",
            keyword, role, page_size, page_number, sort_by, sort_order,
        )

        first = (page_number - 1) * page_size
        search = keyword.strip() if keyword and keyword.strip() else None
        representations = self.users.list_users(first, page_size, search=search)
        total = self.users.count_users(search=search)
        logger.info("Fetched %d users (page %d of size %d)", len(representations), page_number, page_size)

        users = [self._view_or_basic(rep) for rep in representations]

        if role and role.strip():
            wanted = role.strip().lower()
            users = [u for u in users if u.roles and any(r.role_name.lower() == wanted for r in u.roles)]
            total = len(users)
            logger.info("After role filter, %d users remain", total)

        users = _sort_users(users, sort_by, sort_order)
        pagination = Pagination(
            current_page=page_number,
            page_size=page_size,
            total_items=total,
            sort_by=sort_by,
            sort_order=sort_order,
        )
        return PaginatedResponse(data=users, pagination=pagination)

    def update_user(
        self,
        user_id: str,
        email: Optional[str] = None,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        enabled: Optional[bool] = None,
        email_verified: Optional[bool] = None,
        entity_code: Optional[str] = None,
        country_code: Optional[str] = None,
        role_ids_to_add: Optional[list[str]] = None,
        role_ids_to_remove: Optional[list[str]] = None,
        group_ids_to_add: Optional[list[str]] = None,
        group_ids_to_remove: Optional[list[str]] = None,
    ) -> UserDTO:
        """Patch the remote user, then apply edge changes in a fixed order."""
        logger.info("Updating user with ID: %s", user_id)
        representation = self._require_user(user_id)

        catalog = self.resolver.fetch() if role_ids_to_add or role_ids_to_remove else None
        roles_to_add: list[CatalogEntry] = []
        if role_ids_to_add:
            roles_to_add = self.resolver.resolve_by_ids_of_kind(role_ids_to_add, Kind.ROLE, catalog=catalog)
            logger.info("Validated %d role IDs to add", len(roles_to_add))
        if group_ids_to_add:
            self._validate_groups(group_ids_to_add)
            logger.info("Validated %d group IDs to add", len(group_ids_to_add))

        for key, value in (
            ("email", email),
            ("firstName", first_name),
            ("lastName", last_name),
            ("enabled", enabled),
            ("emailVerified", email_verified),
        ):
            if value is not None:
                representation[key] = value
        representation["attributes"] = _single_valued(
            dict(representation.get("attributes") or {}), entity_code, country_code
        )
        self.users.update_user(user_id, representation)

        self._add_roles(user_id, roles_to_add)
        if role_ids_to_remove:
            self._remove_roles(user_id, self.resolver.resolve_by_ids(role_ids_to_remove, catalog=catalog))
        if group_ids_to_add:
            self._join_groups(user_id, group_ids_to_add)
        if group_ids_to_remove:
            self._leave_groups(user_id, group_ids_to_remove)
        logger.info("User '%s' updated successfully", user_id)

        self.projection_sync.on_user_updated(user_id, representation)
        return self.get_user(user_id)

    def delete_user(self, user_id: str) -> None:
        """Delete remotely, then mark the projection row inactive."""
        logger.info("Deleting user with ID: %s", user_id)
        self._require_user(user_id)
        self.users.delete_user(user_id)
        logger.info("User with ID '%s' deleted successfully from Keycloak", user_id)
        self.projection_sync.on_user_deleted(user_id)

    # ─────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────

    def _require_user(self, user_id: str) -> dict:
        representation = self.users.get_user(user_id) if user_id and user_id.strip() else None
        if representation is None:
            raise UserNotFoundError(f"User with ID '{user_id}' not found")
        return representation

    def _require_group(self, group_id: str) -> dict:
        try:
            group = self.groups.get_group(group_id) if group_id and group_id.strip() else None
        except KeycloakAPIError as exc:
            # Malformed ids can come back as 400 instead of 404
            if exc.status_code not in (400, 404):
                raise
            group = None
        if group is None:
            raise GroupNotFoundError(f"Group with ID '{group_id}' not found")
        return group

    def _validate_groups(self, group_ids: Iterable[str]) -> None:
        for group_id in group_ids:
            self._require_group(group_id)

    def _view_or_basic(self, representation: dict) -> UserDTO:
        try:
            return self.get_user(representation.get("id"))
        except (KeycloakError, UserNotFoundError) as exc:
            logger.warning("Error fetching details for user %s: %s", representation.get("id"), exc)
            return UserDTO.from_representation(representation)
