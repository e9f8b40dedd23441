from aws_cdk import (
    Stack,
    aws_lambda as lambda_,
    aws_ec2 as ec2,
    aws_iam as iam,
    Duration,
    CfnOutput
)
from constructs import Construct
import os

from custom_constructs.binding import bind
from custom_constructs.rds_instance import RDSInstance

SITE_HANDLER_PATH = os.path.join(os.path.dirname(__file__), "..", "lambda", "site")


class SiteStack(Stack):
    """
    Lambda-backed web site served through a function URL
    - Runs in the private subnets so it can reach the database
    - Gets DATABASE_URL plus the database binding variables and permissions
    """

    def __init__(self, scope: Construct, construct_id: str,
                 vpc: ec2.IVpc, lambda_security_group: ec2.ISecurityGroup,
                 database: RDSInstance, database_url: str,
                 environment: str, project_name: str, **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        # ====================================================================
        # SITE LAMBDA
        # ====================================================================
        site_role = iam.Role(
            self, "SiteLambdaRole",
            assumed_by=iam.ServicePrincipal("lambda.amazonaws.com"),
            managed_policies=[
                iam.ManagedPolicy.from_aws_managed_policy_name(
                    "service-role/AWSLambdaBasicExecutionRole"
                ),
                iam.ManagedPolicy.from_aws_managed_policy_name(
                    "service-role/AWSLambdaVPCAccessExecutionRole"
                )
            ]
        )

        self.server = lambda_.Function(
            self, "SiteServer",
            function_name=f"{project_name}-{environment}-site",
            runtime=lambda_.Runtime.PYTHON_3_11,
            handler="index.lambda_handler",
            code=lambda_.Code.from_asset(SITE_HANDLER_PATH),
            role=site_role,
            timeout=Duration.seconds(30),
            memory_size=512,
            vpc=vpc,
            vpc_subnets=ec2.SubnetSelection(
                subnet_type=ec2.SubnetType.PRIVATE_WITH_EGRESS
            ),
            security_groups=[lambda_security_group],
            environment={
                "ENVIRONMENT": environment,
                "DATABASE_URL": database_url
            }
        )

        # Database variables and least-privilege permissions
        bind(self.server, database.id, database.get_function_binding())

        self.site_url = self.server.add_function_url(
            auth_type=lambda_.FunctionUrlAuthType.NONE
        )

        # ====================================================================
        # OUTPUTS
        # ====================================================================
        CfnOutput(self, "SiteUrl", value=self.site_url.url)
