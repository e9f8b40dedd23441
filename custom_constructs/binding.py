"""
Function binding - environment variables and least-privilege permissions
a Lambda function needs to talk to a bound resource
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List

from aws_cdk import aws_iam as iam, aws_lambda as lambda_

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BindingVariable:
    type: str
    value: str


@dataclass(frozen=True)
class FunctionBinding:
    """Read-only descriptor produced by a bindable construct"""

    client_package: str
    variables: Dict[str, BindingVariable] = field(default_factory=dict)
    permissions: Dict[str, List[str]] = field(default_factory=dict)


def environment_key(client_package: str, resource_id: str, name: str) -> str:
    key = f"{client_package}_{resource_id}_{name}".upper()
    return re.sub(r"[^A-Z0-9_]", "_", key)


def bind(function: lambda_.Function, resource_id: str, binding: FunctionBinding) -> None:
    """
    Grant a function access to a bound resource.

    Every variable becomes an environment variable named
    {CLIENT}_{RESOURCE_ID}_{NAME}; every permission becomes one policy
    statement on the function's execution role.
    """
    for name, variable in binding.variables.items():
        function.add_environment(
            environment_key(binding.client_package, resource_id, name),
            variable.value
        )

    for action, resources in binding.permissions.items():
        function.add_to_role_policy(
            iam.PolicyStatement(
                actions=[action],
                resources=list(resources)
            )
        )

    logger.debug(
        "Bound %s resource %s to %s (%d variables, %d permissions)",
        binding.client_package, resource_id, function.node.path,
        len(binding.variables), len(binding.permissions)
    )
