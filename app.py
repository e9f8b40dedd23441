#!/usr/bin/env python3
"""
t3-rds-site - AWS CDK application
VPC + RDS instance + Lambda-backed web site wired to the database
"""

import logging
import os

import aws_cdk as cdk
from stacks.network_stack import NetworkStack
from stacks.database_stack import DatabaseStack
from stacks.site_stack import SiteStack

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "WARNING"),
    format="%(levelname)s %(name)s: %(message)s"
)

app = cdk.App()

# Environment configuration
env = cdk.Environment(
    account=app.node.try_get_context("account") or os.environ.get("CDK_DEFAULT_ACCOUNT"),
    region=app.node.try_get_context("region") or os.environ.get("CDK_DEFAULT_REGION", "us-east-1")
)

# Deployment context (dev/prod)
environment = app.node.try_get_context("environment") or "dev"
project_name = app.node.try_get_context("project_name") or "t3-rds-site"
db_engine = app.node.try_get_context("db_engine") or "mysql5.7"

# Tags applied to ALL resources
tags = {
    "Project": project_name,
    "Environment": environment,
    "ManagedBy": "CDK"
}

# ============================================================================
# STACK 1: NETWORK - VPC + Lambda security group
# ============================================================================
network_stack = NetworkStack(
    app, f"{project_name}-{environment}-network",
    env=env,
    tags=tags,
    environment=environment,
    project_name=project_name
)

# ============================================================================
# STACK 2: DATABASE - RDS instance with Secrets Manager credentials
# ============================================================================
db_stack = DatabaseStack(
    app, f"{project_name}-{environment}-database",
    vpc=network_stack.vpc,
    lambda_security_group=network_stack.lambda_sg,
    engine=db_engine,
    env=env,
    tags=tags,
    environment=environment,
    project_name=project_name
)
db_stack.add_dependency(network_stack)

# ============================================================================
# STACK 3: SITE - Lambda function URL
# ============================================================================
site_stack = SiteStack(
    app, f"{project_name}-{environment}-site",
    vpc=network_stack.vpc,
    lambda_security_group=network_stack.lambda_sg,
    database=db_stack.rds,
    database_url=db_stack.database_url,
    env=env,
    tags=tags,
    environment=environment,
    project_name=project_name
)
site_stack.add_dependency(db_stack)

# ============================================================================
# SYNTHESIZE
# ============================================================================
app.synth()
