"""Access to the service objects wired by the application factory."""
from __future__ import annotations
from dataclasses import dataclass

from flask import current_app
from sqlalchemy.orm import sessionmaker

from usermgmt.core.group_service import GroupService
from usermgmt.core.projection import ProjectionSync
from usermgmt.core.role_service import RoleService
from usermgmt.core.user_service import UserService


@dataclass
class Services:
    roles: RoleService
    groups: GroupService
    users: UserService
    projection_sync: ProjectionSync
    session_factory: sessionmaker


def get_services() -> Services:
    return current_app.config["SERVICES"]
