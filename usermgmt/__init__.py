"""User management service: roles, privileges, groups and users over Keycloak.

To use the Flask app:
    from usermgmt.flask_app import create_app

To use the services without Flask:
    from usermgmt.core import RoleService, GroupService, UserService
"""
# Note: flask_app is not imported here so the core stays usable without Flask
