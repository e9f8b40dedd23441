"""
Unit tests for function binding
"""

import unittest

import aws_cdk as cdk
from aws_cdk import assertions, aws_lambda as lambda_

from custom_constructs.binding import (
    BindingVariable,
    FunctionBinding,
    bind,
    environment_key
)

SECRET_ARN = "arn:aws:secretsmanager:us-east-1:123456789012:secret:my-secret"


def make_function(stack: cdk.Stack) -> lambda_.Function:
    return lambda_.Function(
        stack, "Handler",
        runtime=lambda_.Runtime.PYTHON_3_11,
        handler="index.handler",
        code=lambda_.Code.from_inline("def handler(event, context):\n    return {}\n")
    )


class TestEnvironmentKey(unittest.TestCase):

    def test_upper_cases_parts(self):
        self.assertEqual(environment_key("rds", "db", "secretArn"), "RDS_DB_SECRETARN")

    def test_replaces_invalid_characters(self):
        self.assertEqual(
            environment_key("rds", "main-db.v2", "instanceArn"),
            "RDS_MAIN_DB_V2_INSTANCEARN"
        )


class TestBind(unittest.TestCase):

    def setUp(self):
        self.stack = cdk.Stack(cdk.App(), "TestStack")
        self.function = make_function(self.stack)
        self.binding = FunctionBinding(
            client_package="rds",
            variables={
                "secretArn": BindingVariable(type="plain", value=SECRET_ARN),
                "databaseName": BindingVariable(type="plain", value="db1"),
            },
            permissions={
                "secretsmanager:GetSecretValue": [f"{SECRET_ARN}*"],
                "secretsmanager:DescribeSecret": [f"{SECRET_ARN}*"],
            }
        )

    def test_sets_environment_variables(self):
        bind(self.function, "db", self.binding)
        template = assertions.Template.from_stack(self.stack)

        template.has_resource_properties("AWS::Lambda::Function", {
            "Environment": {
                "Variables": {
                    "RDS_DB_SECRETARN": SECRET_ARN,
                    "RDS_DB_DATABASENAME": "db1",
                }
            }
        })

    def test_grants_one_statement_per_action(self):
        bind(self.function, "db", self.binding)
        template = assertions.Template.from_stack(self.stack)

        template.has_resource_properties("AWS::IAM::Policy", {
            "PolicyDocument": {
                "Statement": assertions.Match.array_with([
                    {
                        "Action": "secretsmanager:GetSecretValue",
                        "Effect": "Allow",
                        "Resource": f"{SECRET_ARN}*",
                    },
                ])
            }
        })

    def test_empty_binding_adds_nothing(self):
        bind(self.function, "db", FunctionBinding(client_package="rds"))
        template = assertions.Template.from_stack(self.stack)

        template.resource_count_is("AWS::IAM::Policy", 0)


if __name__ == '__main__':
    unittest.main()
