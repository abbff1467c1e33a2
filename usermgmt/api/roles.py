"""Role and privilege endpoints (``/api/v1/roles``)."""
from __future__ import annotations

from flask import Blueprint, request

from usermgmt.api.helpers.responses import created, listing, ok
from usermgmt.api.helpers.services import get_services
from usermgmt.core.validators import parse_create_role, parse_update_role

bp = Blueprint("roles", __name__, url_prefix="/api/v1/roles")


@bp.post("")
def create_role():
    fields = parse_create_role(request.get_json(silent=True))
    role = get_services().roles.create_role(**fields)
    return created("Role created successfully", "role", role)


@bp.get("")
def list_roles():
    return listing(get_services().roles.get_all_roles())


@bp.get("/privileges")
def list_privileges():
    return listing(get_services().roles.get_all_privileges())


@bp.put("/<role_id>")
def update_role(role_id: str):
    fields = parse_update_role(request.get_json(silent=True))
    role = get_services().roles.update_role(role_id, **fields)
    return ok("Role updated successfully", "role", role)


@bp.delete("/<role_id>")
def delete_role(role_id: str):
    get_services().roles.delete_role(role_id)
    return ok("Role deleted successfully")


@bp.get("/<role_id>/privileges")
def role_privileges(role_id: str):
    return listing(get_services().roles.get_privileges_for_role(role_id))
