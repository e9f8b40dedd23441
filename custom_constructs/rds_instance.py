"""
RDS instance wrapper - validates configuration, fills defaults and exposes
the attributes downstream stacks need to wire functions to the database.

Either creates a new rds.DatabaseInstance or imports an existing one:

    RDSInstance(stack, "db", engine="mysql5.7", database_name="app")

    RDSInstance(stack, "db", engine="mysql5.7", database_name="app", cdk={
        "instance": rds.DatabaseInstance.from_database_instance_attributes(...),
        "secret": secretsmanager.Secret.from_secret_complete_arn(...),
    })
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from aws_cdk import (
    aws_ec2 as ec2,
    aws_rds as rds,
    aws_secretsmanager as secretsmanager
)
from constructs import Construct

from custom_constructs.binding import BindingVariable, FunctionBinding
from custom_constructs.naming import logical_prefixed_name

logger = logging.getLogger(__name__)

DEFAULT_ENGINE = "mysql5.7"
SUPPORTED_ENGINES = ("mysql5.7", "postgresql11.13")

ENGINE_PORTS = {
    "mysql5.7": 3306,
    "postgresql11.13": 5432,
}

URL_SCHEMES = {
    "mysql5.7": "mysql",
    "postgresql11.13": "postgresql",
}

# Options that must be passed at the top level, never inside cdk["instance"]
TOP_LEVEL_OPTIONS = ("engine", "vpc", "database_name")


class ConfigError(ValueError):
    """Invalid RDSInstance configuration, raised before anything is synthesized"""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        self.field = field
        super().__init__(message)


@dataclass
class RDSInstanceCdk:
    instance: rds.IDatabaseInstance


def resolve_engine(engine: str) -> rds.IInstanceEngine:
    """Map an engine identifier to a concrete engine and version"""
    if engine == "mysql5.7":
        return rds.DatabaseInstanceEngine.mysql(
            version=rds.MysqlEngineVersion.VER_5_7
        )
    if engine == "postgresql11.13":
        return rds.DatabaseInstanceEngine.postgres(
            version=rds.PostgresEngineVersion.VER_11_13
        )

    raise ConfigError(
        f'The specified "engine" ({engine}) is not supported for RDSInstance. '
        f"Supported engines: {', '.join(SUPPORTED_ENGINES)}.",
        field="engine"
    )


def default_instance_type() -> ec2.InstanceType:
    return ec2.InstanceType.of(
        ec2.InstanceClass.BURSTABLE3,
        ec2.InstanceSize.SMALL
    )


class RDSInstance(Construct):
    """
    Single RDS database instance with Secrets Manager credentials.

    The engine, vpc and database name are always configured at the top level.
    cdk["instance"] is either a dict of rds.DatabaseInstance overrides or an
    existing IDatabaseInstance; importing requires cdk["secret"] too.
    """

    def __init__(
        self,
        scope: Construct,
        id: str,
        *,
        database_name: str,
        engine: str = DEFAULT_ENGINE,
        vpc: Optional[ec2.IVpc] = None,
        cdk: Optional[Dict[str, Any]] = None
    ) -> None:
        cdk = cdk or {}
        super().__init__(scope, cdk.get("id") or id)

        self.id = id
        self._database_name = database_name
        self._engine = engine or DEFAULT_ENGINE
        self._cdk_props = cdk

        self.vpc: Optional[ec2.IVpc] = None
        self.vpc_subnets: Optional[ec2.SubnetSelection] = None

        instance = cdk.get("instance")
        if instance is not None and not isinstance(instance, Mapping) and Construct.is_construct(instance):
            self._validate_import_props()
            self.cdk = RDSInstanceCdk(instance=instance)
            self._secret: secretsmanager.ISecret = cdk["secret"]
            self._imported = True
            logger.debug("Importing existing RDS instance into %s", self.node.path)
        else:
            instance_props = self._validate_create_props()
            self.cdk = RDSInstanceCdk(instance=self._create_instance(instance_props, vpc))
            self._secret = self.cdk.instance.secret
            self._imported = False

    # ====================================================================
    # Read accessors
    # ====================================================================

    @property
    def secret(self) -> secretsmanager.ISecret:
        return self._secret

    @property
    def secret_arn(self) -> str:
        return self._secret.secret_arn

    @property
    def instance_arn(self) -> str:
        return self.cdk.instance.instance_arn

    @property
    def instance_identifier(self) -> str:
        return self.cdk.instance.instance_identifier

    @property
    def instance_endpoint(self) -> str:
        """Hostname of the instance endpoint"""
        return self.cdk.instance.instance_endpoint.hostname

    @property
    def database_name(self) -> str:
        return self._database_name

    @property
    def engine_name(self) -> str:
        return self._engine

    @property
    def port(self) -> int:
        """Imported instances report their own port, new ones the engine default"""
        if self._imported:
            return self.cdk.instance.instance_endpoint.port
        return ENGINE_PORTS[self._engine]

    def connection_url(self, connection_limit: int = 5) -> str:
        """
        Connection string for the database.

        Credentials are CloudFormation dynamic references into the secret, so
        the resolved value never appears in the synthesized template.
        """
        user = self._secret.secret_value_from_json("username").unsafe_unwrap()
        password = self._secret.secret_value_from_json("password").unsafe_unwrap()
        scheme = URL_SCHEMES[self._engine]
        return (
            f"{scheme}://{user}:{password}@{self.instance_endpoint}/"
            f"{self._database_name}?connection_limit={connection_limit}"
        )

    def get_construct_metadata(self) -> Dict[str, Any]:
        return {
            "type": "RDSInstance",
            "data": {
                "engine": self._engine,
                "secretArn": self.secret_arn,
                "instanceArn": self.instance_arn,
                "instanceIdentifier": self.instance_identifier,
                "databaseName": self._database_name,
            },
        }

    def get_function_binding(self) -> FunctionBinding:
        secret_resource = self._secret.secret_full_arn or f"{self._secret.secret_arn}*"
        return FunctionBinding(
            client_package="rds",
            variables={
                "instanceArn": BindingVariable(type="plain", value=self.instance_arn),
                "secretArn": BindingVariable(type="plain", value=self.secret_arn),
                "databaseName": BindingVariable(type="plain", value=self._database_name),
            },
            permissions={
                "rds-data:*": [self.instance_arn],
                "secretsmanager:GetSecretValue": [secret_resource],
                "secretsmanager:DescribeSecret": [secret_resource],
            },
        )

    # ====================================================================
    # Validation
    # ====================================================================

    def _validate_import_props(self) -> None:
        if self._cdk_props.get("secret") is None:
            raise ConfigError(
                f'Missing "cdk.secret" in the "{self.node.id}" RDSInstance. '
                "You must provide a secret to import an existing RDS instance.",
                field="secret"
            )

    def _validate_create_props(self) -> Dict[str, Any]:
        props = self._cdk_props.get("instance") or {}
        if not isinstance(props, Mapping):
            raise ConfigError(
                f'"cdk.instance" in the "{self.node.id}" RDSInstance must be a dict '
                "of DatabaseInstance options or an existing IDatabaseInstance.",
                field="instance"
            )

        for option in TOP_LEVEL_OPTIONS:
            if props.get(option) is not None:
                raise ConfigError(
                    f'Use "{option}" instead of "cdk.instance.{option}" to configure '
                    f"the RDS database {option}.",
                    field=option
                )

        credentials = props.get("credentials")
        if credentials is not None and credentials.secret is None:
            raise ConfigError(
                'Only credentials managed by Secrets Manager are supported for '
                'the "cdk.instance.credentials".',
                field="credentials"
            )

        # None-valued overrides keep the defaults
        return {key: value for key, value in props.items() if value is not None}

    # ====================================================================
    # Defaults
    # ====================================================================

    def _resolve_vpc(self, vpc: Optional[ec2.IVpc]) -> ec2.IVpc:
        if vpc is not None:
            return vpc

        # No NAT gateways: the default subnets become public + isolated
        return ec2.Vpc(self, "vpc", nat_gateways=0)

    def _resolve_vpc_subnets(
        self, props: Dict[str, Any], vpc: Optional[ec2.IVpc]
    ) -> Optional[ec2.SubnetSelection]:
        if vpc is not None:
            return props.get("vpc_subnets")

        return ec2.SubnetSelection(subnet_type=ec2.SubnetType.PRIVATE_ISOLATED)

    def _resolve_instance_type(self, props: Dict[str, Any]) -> ec2.InstanceType:
        return props.get("instance_type") or default_instance_type()

    def _create_instance(
        self, instance_props: Dict[str, Any], vpc: Optional[ec2.IVpc]
    ) -> rds.DatabaseInstance:
        engine = resolve_engine(self._engine)

        self.vpc = self._resolve_vpc(vpc)
        self.vpc_subnets = self._resolve_vpc_subnets(instance_props, vpc)
        instance_type = self._resolve_instance_type(instance_props)

        props = {
            "instance_identifier": logical_prefixed_name(self, self.node.id),
            **instance_props,
            "engine": engine,
            "vpc": self.vpc,
            "vpc_subnets": self.vpc_subnets,
            "instance_type": instance_type,
            "database_name": self._database_name,
        }

        logger.debug(
            "Creating RDS instance %s (%s, %s)",
            props["instance_identifier"], self._engine, instance_type.to_string()
        )
        return rds.DatabaseInstance(self, "DB", **props)
