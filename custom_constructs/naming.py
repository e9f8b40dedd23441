"""
Global naming convention shared by every construct in the app
"""

import re

from constructs import Construct

DEFAULT_ENVIRONMENT = "dev"
DEFAULT_PROJECT_NAME = "t3-rds-site"


def logical_prefixed_name(scope: Construct, logical_name: str) -> str:
    """Prefix a logical name with the deployment environment and project name"""
    environment = scope.node.try_get_context("environment") or DEFAULT_ENVIRONMENT
    project_name = scope.node.try_get_context("project_name") or DEFAULT_PROJECT_NAME
    return f"{environment}-{project_name}-{logical_name}"


def database_safe_name(name: str) -> str:
    # MySQL and PostgreSQL database names reject hyphens
    return re.sub(r"[^A-Za-z0-9_]", "_", name)
