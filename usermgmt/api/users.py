"""User endpoints (``/api/v1/users``) including role and group edges."""
from __future__ import annotations
from typing import Optional

from flask import Blueprint, jsonify, request

from usermgmt.api.helpers.responses import created, ok
from usermgmt.api.helpers.services import get_services
from usermgmt.core.errors import ValidationError
from usermgmt.core.validators import parse_create_user, parse_id_list, parse_update_user

bp = Blueprint("users", __name__, url_prefix="/api/v1/users")


def _int_arg(name: str) -> Optional[int]:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError({name: "Must be an integer"}) from None


@bp.post("")
def create_user():
    fields = parse_create_user(request.get_json(silent=True))
    user = get_services().users.create_user(**fields)
    return created("User created successfully", "user", user)


@bp.get("")
def list_users():
    page = get_services().users.list_users(
        keyword=request.args.get("keyword"),
        role=request.args.get("role"),
        page_size=_int_arg("pageSize"),
        page_number=_int_arg("pageNumber"),
        sort_by=request.args.get("sortBy"),
        sort_order=request.args.get("sortOrder"),
    )
    return jsonify(page.to_dict()), 200


@bp.get("/<user_id>")
def get_user(user_id: str):
    return jsonify(get_services().users.get_user(user_id).to_dict()), 200


@bp.put("/<user_id>")
def update_user(user_id: str):
    fields = parse_update_user(request.get_json(silent=True))
    user = get_services().users.update_user(user_id, **fields)
    return ok("User updated successfully", "user", user)


@bp.delete("/<user_id>")
def delete_user(user_id: str):
    get_services().users.delete_user(user_id)
    return ok("User deleted successfully")


@bp.post("/<user_id>/roles")
def assign_roles(user_id: str):
    role_ids = parse_id_list(request.get_json(silent=True), "roleIds")
    get_services().users.assign_roles(user_id, role_ids)
    return ok("Roles assigned successfully")


@bp.delete("/<user_id>/roles")
def remove_roles(user_id: str):
    role_ids = parse_id_list(request.get_json(silent=True), "roleIds")
    get_services().users.remove_roles(user_id, role_ids)
    return ok("Roles removed successfully")


@bp.post("/<user_id>/groups")
def assign_groups(user_id: str):
    group_ids = parse_id_list(request.get_json(silent=True), "groupIds")
    get_services().users.assign_groups(user_id, group_ids)
    return ok("Groups assigned successfully")


@bp.delete("/<user_id>/groups")
def remove_groups(user_id: str):
    group_ids = parse_id_list(request.get_json(silent=True), "groupIds")
    get_services().users.remove_groups(user_id, group_ids)
    return ok("Groups removed successfully")
