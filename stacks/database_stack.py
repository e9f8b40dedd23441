from aws_cdk import (
    Stack,
    aws_ec2 as ec2,
    aws_ssm as ssm,
    CfnOutput,
    RemovalPolicy
)
from constructs import Construct

from custom_constructs.naming import database_safe_name, logical_prefixed_name
from custom_constructs.rds_instance import RDSInstance


class DatabaseStack(Stack):
    """
    RDS instance in the isolated database subnets, reachable from the
    site's Lambda functions, with its connection URL published to SSM
    """

    def __init__(self, scope: Construct, construct_id: str,
                 vpc: ec2.IVpc, lambda_security_group: ec2.ISecurityGroup,
                 environment: str, project_name: str,
                 engine: str = "mysql5.7", **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        # ====================================================================
        # RDS INSTANCE
        # ====================================================================
        self.database_name = database_safe_name(logical_prefixed_name(self, "db"))
        self.rds = RDSInstance(
            self, "db",
            vpc=vpc,
            engine=engine,
            database_name=self.database_name,
            cdk={
                "instance": {
                    "vpc_subnets": ec2.SubnetSelection(subnet_group_name="database"),
                    "deletion_protection": environment == "prod",
                    "removal_policy": RemovalPolicy.RETAIN if environment == "prod" else RemovalPolicy.DESTROY,
                },
            }
        )

        # Without this the Lambda functions can't reach the database
        instance = self.rds.cdk.instance
        instance.connections.allow_from(
            lambda_security_group,
            ec2.Port.tcp(self.rds.port),
            "Allow access from lambda to the RDS instance"
        )

        # ====================================================================
        # DATABASE URL - published for functions outside this app
        # ====================================================================
        self.database_url = self.rds.connection_url()
        self.database_url_parameter = ssm.StringParameter(
            self, "DATABASE_URL",
            parameter_name=f"/{project_name}/{environment}/DATABASE_URL",
            string_value=self.database_url
        )

        # ====================================================================
        # OUTPUTS
        # ====================================================================
        CfnOutput(self, "RDSInstanceEndpoint", value=self.rds.instance_endpoint)
        CfnOutput(self, "RDSInstanceArn", value=self.rds.instance_arn)
        CfnOutput(self, "RDSSecretARN", value=self.rds.secret_arn)
