"""Group endpoints (``/api/v1/groups``)."""
from __future__ import annotations

from flask import Blueprint, jsonify, request

from usermgmt.api.helpers.responses import created, listing, ok
from usermgmt.api.helpers.services import get_services
from usermgmt.core.validators import (
    parse_create_group,
    parse_update_group_roles_privileges,
    parse_update_group_users,
)

bp = Blueprint("groups", __name__, url_prefix="/api/v1/groups")


@bp.post("")
def create_group():
    fields = parse_create_group(request.get_json(silent=True))
    group = get_services().groups.create_group(**fields)
    return created("Group created successfully", "group", group)


@bp.get("")
def list_groups():
    return listing(get_services().groups.get_all_groups())


@bp.delete("/<group_id>")
def delete_group(group_id: str):
    get_services().groups.delete_group(group_id)
    return ok("Group deleted successfully")


@bp.get("/<group_id>/roles-privileges")
def group_roles_privileges(group_id: str):
    return jsonify(get_services().groups.get_roles_and_privileges_for_group(group_id).to_dict()), 200


@bp.put("/<group_id>/roles-privileges")
def update_group_roles_privileges(group_id: str):
    fields = parse_update_group_roles_privileges(request.get_json(silent=True))
    get_services().groups.update_group_roles_and_privileges(group_id, **fields)
    return ok("Group roles and privileges updated successfully")


@bp.get("/<group_id>/users")
def group_users(group_id: str):
    return listing(get_services().groups.get_users_in_group(group_id))


@bp.put("/<group_id>/users")
def update_group_users(group_id: str):
    fields = parse_update_group_users(request.get_json(silent=True))
    get_services().groups.update_group_users(group_id, **fields)
    return ok("Group users updated successfully")
