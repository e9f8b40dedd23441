from aws_cdk import (
    Stack,
    aws_ec2 as ec2,
    CfnOutput
)
from constructs import Construct

from custom_constructs.naming import logical_prefixed_name


class NetworkStack(Stack):
    """
    Network infrastructure: VPC with public, private and database subnets,
    plus the security group shared by the site's Lambda functions
    """

    def __init__(self, scope: Construct, construct_id: str,
                 environment: str, project_name: str, **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        # ====================================================================
        # VPC - 3 subnet tiers
        # ====================================================================
        self.vpc = ec2.Vpc(
            self, logical_prefixed_name(self, "net"),
            ip_addresses=ec2.IpAddresses.cidr("172.32.0.0/16"),
            max_azs=2,
            nat_gateways=2 if environment == "prod" else 1,  # Cost optimization
            subnet_configuration=[
                ec2.SubnetConfiguration(
                    name="public",
                    subnet_type=ec2.SubnetType.PUBLIC,
                    cidr_mask=24
                ),
                # Internet access through NAT, hosts Lambda functions
                ec2.SubnetConfiguration(
                    name="private",
                    subnet_type=ec2.SubnetType.PRIVATE_WITH_EGRESS,
                    cidr_mask=24
                ),
                # No internet access, hosts databases
                ec2.SubnetConfiguration(
                    name="database",
                    subnet_type=ec2.SubnetType.PRIVATE_ISOLATED,
                    cidr_mask=24
                )
            ]
        )

        # ====================================================================
        # SECURITY GROUPS
        # ====================================================================
        self.lambda_sg = ec2.SecurityGroup(
            self, logical_prefixed_name(self, "lambda-sg"),
            vpc=self.vpc,
            description="Allow lambda functions to access the database",
            allow_all_outbound=True
        )

        # ====================================================================
        # OUTPUTS
        # ====================================================================
        CfnOutput(self, "VPCId", value=self.vpc.vpc_id)
        CfnOutput(self, "LambdaSecurityGroupId", value=self.lambda_sg.security_group_id)
