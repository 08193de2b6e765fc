"""
Data layer: generated database credential and the Aurora MySQL cluster.

Access from the containers is not opened here; the compute layer grants it
once the service exists.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from aws_cdk import (
    RemovalPolicy,
    aws_ec2 as ec2,
    aws_rds as rds,
)
from constructs import Construct

from mediawiki.config import ResolvedConfig
from mediawiki.graph import require_layer
from mediawiki.network import NetworkLayer

logger = logging.getLogger(__name__)

ENGINE_VERSION = rds.AuroraMysqlEngineVersion.VER_3_04_0


@dataclass(frozen=True)
class DataLayer:
    credential: rds.DatabaseSecret
    cluster: rds.DatabaseCluster
    security_group: ec2.SecurityGroup

    @property
    def endpoint_hostname(self) -> str:
        return self.cluster.cluster_endpoint.hostname


def removal_policy_for(is_production: bool) -> RemovalPolicy:
    return RemovalPolicy.RETAIN if is_production else RemovalPolicy.DESTROY


def build_data_layer(scope: Construct, network: NetworkLayer, config: ResolvedConfig) -> DataLayer:
    require_layer(network, "Network")
    layer = Construct(scope, "Data")

    # ---------------------------------------------------------------
    # Credential (value generated by Secrets Manager)
    # ---------------------------------------------------------------
    credential = rds.DatabaseSecret(
        layer, "MediaWikiDbSecret",
        username=config.database.username,
        dbname=config.database.db_name,
    )

    # ---------------------------------------------------------------
    # Aurora MySQL, serverless v2 writer
    # ---------------------------------------------------------------
    cluster = rds.DatabaseCluster(
        layer, "MediaWikiAuroraCluster",
        engine=rds.DatabaseClusterEngine.aurora_mysql(version=ENGINE_VERSION),
        writer=rds.ClusterInstance.serverless_v2("writer"),
        serverless_v2_min_capacity=config.scaling.min_capacity,
        serverless_v2_max_capacity=config.scaling.max_capacity,
        vpc=network.vpc,
        vpc_subnets=ec2.SubnetSelection(subnet_type=ec2.SubnetType.PRIVATE_WITH_EGRESS),
        security_groups=[network.db_security_group],
        credentials=rds.Credentials.from_secret(credential),
        default_database_name=config.database.db_name,
        removal_policy=removal_policy_for(config.is_production),
    )

    logger.debug(
        "Data layer: aurora-mysql %s-%s ACU, removal=%s",
        config.scaling.min_capacity, config.scaling.max_capacity,
        "retain" if config.is_production else "destroy",
    )
    return DataLayer(
        credential=credential,
        cluster=cluster,
        security_group=network.db_security_group,
    )
