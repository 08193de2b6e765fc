"""
Compute layer: ECS cluster, Fargate task running MediaWiki, public ALB.

Resources:
  - ECS cluster over the VPC
  - Fargate task definition + MediaWiki container
  - SSM parameters for the upgrade key and secret string, per stage
  - ALB-fronted Fargate service with target group health checks
  - Ingress rule letting the service reach the database
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from aws_cdk import (
    Duration,
    aws_ec2 as ec2,
    aws_ecs as ecs,
    aws_ecs_patterns as ecs_patterns,
    aws_logs as logs,
    aws_ssm as ssm,
)
from constructs import Construct

from mediawiki.config import ResolvedConfig
from mediawiki.database import DataLayer
from mediawiki.graph import require_layer
from mediawiki.network import DATABASE_PORT, NetworkLayer

logger = logging.getLogger(__name__)

CONTAINER_PORT = 80
HEALTH_CHECK_GRACE_PERIOD = Duration.seconds(60)
HEALTH_CHECK_TIMEOUT = Duration.seconds(20)
HEALTH_CHECK_INTERVAL = Duration.seconds(60)
DEREGISTRATION_DELAY_SECONDS = 30
CPU_TARGET_UTILIZATION = 70


@dataclass(frozen=True)
class ComputeLayer:
    cluster: ecs.Cluster
    task_definition: ecs.FargateTaskDefinition
    container: ecs.ContainerDefinition
    service: ecs_patterns.ApplicationLoadBalancedFargateService
    upgrade_key_parameter: ssm.StringParameter
    secret_string_parameter: ssm.StringParameter

    @property
    def load_balancer_dns_name(self) -> str:
        return self.service.load_balancer.load_balancer_dns_name


def container_image_for(config: ResolvedConfig) -> ecs.ContainerImage:
    if config.image:
        return ecs.ContainerImage.from_registry(config.image)
    return ecs.ContainerImage.from_asset(config.image_directory)


def build_compute_layer(
    scope: Construct,
    network: NetworkLayer,
    data: DataLayer,
    config: ResolvedConfig,
    image: ecs.ContainerImage,
) -> ComputeLayer:
    require_layer(network, "Network")
    require_layer(data, "Data")
    layer = Construct(scope, "Compute")

    # ---------------------------------------------------------------
    # ECS cluster + task definition
    # ---------------------------------------------------------------
    cluster = ecs.Cluster(layer, "MediaWikiCluster", vpc=network.vpc)

    task_definition = ecs.FargateTaskDefinition(
        layer, "MediaWikiTaskDefinition",
        cpu=config.scaling.cpu,
        memory_limit_mib=config.scaling.memory_limit_mib,
    )

    # ---------------------------------------------------------------
    # MediaWiki keys in SSM Parameter Store
    # ---------------------------------------------------------------
    upgrade_key_parameter = ssm.StringParameter(
        layer, "MediaWikiUpgradeKey",
        parameter_name=config.parameter_name("upgrade-key"),
        string_value=config.upgrade_key,
    )
    secret_string_parameter = ssm.StringParameter(
        layer, "MediaWikiSecretString",
        parameter_name=config.parameter_name("secret-string"),
        string_value=config.secret_string,
    )

    # ---------------------------------------------------------------
    # Container: plain values in environment, credentials in secrets
    # ---------------------------------------------------------------
    container = task_definition.add_container(
        "MediaWikiContainer",
        image=image,
        logging=ecs.LogDrivers.aws_logs(
            stream_prefix=f"mediawiki-{config.stage}",
            log_retention=logs.RetentionDays.TWO_WEEKS,
        ),
        environment={
            "MEDIAWIKI_DB_HOST": data.endpoint_hostname,
            "MEDIAWIKI_SERVER": config.server_url,
        },
        secrets={
            "MEDIAWIKI_DB_USERNAME": ecs.Secret.from_secrets_manager(data.credential, "username"),
            "MEDIAWIKI_DB_PASSWORD": ecs.Secret.from_secrets_manager(data.credential, "password"),
            "MEDIAWIKI_DB_NAME": ecs.Secret.from_secrets_manager(data.credential, "dbname"),
            "MEDIAWIKI_SECRET_STRING": ecs.Secret.from_ssm_parameter(secret_string_parameter),
            "MEDIAWIKI_UPGRADE_KEY": ecs.Secret.from_ssm_parameter(upgrade_key_parameter),
        },
    )
    # must exist before the service registers the container as ALB target
    container.add_port_mappings(
        ecs.PortMapping(container_port=CONTAINER_PORT, protocol=ecs.Protocol.TCP)
    )

    # ---------------------------------------------------------------
    # Fargate service behind a public ALB
    # ---------------------------------------------------------------
    service = ecs_patterns.ApplicationLoadBalancedFargateService(
        layer, "MediaWikiService",
        cluster=cluster,
        task_definition=task_definition,
        desired_count=config.scaling.min_capacity,
        health_check_grace_period=HEALTH_CHECK_GRACE_PERIOD,
        public_load_balancer=True,
    )

    service.target_group.configure_health_check(
        path="/",
        port=str(CONTAINER_PORT),
        healthy_http_codes="200",
        healthy_threshold_count=2,
        unhealthy_threshold_count=2,
        timeout=HEALTH_CHECK_TIMEOUT,
        interval=HEALTH_CHECK_INTERVAL,
    )
    service.target_group.set_attribute(
        "deregistration_delay.timeout_seconds", str(DEREGISTRATION_DELAY_SECONDS)
    )

    if config.scaling.max_capacity > config.scaling.min_capacity:
        task_count = service.service.auto_scale_task_count(
            min_capacity=config.scaling.min_capacity,
            max_capacity=config.scaling.max_capacity,
        )
        task_count.scale_on_cpu_utilization(
            "MediaWikiCpuScaling",
            target_utilization_percent=CPU_TARGET_UTILIZATION,
        )

    # ---------------------------------------------------------------
    # Database access, the only grant into the data layer
    # ---------------------------------------------------------------
    database_access = ec2.SecurityGroup.from_security_group_id(
        layer, "MediaWikiDbAccess",
        data.security_group.security_group_id,
    )
    database_access.connections.allow_from(
        service.service,
        ec2.Port.tcp(DATABASE_PORT),
        "Allow ECS Service to connect to Aurora",
    )

    logger.debug(
        "Compute layer: %d task(s) of %d CPU / %d MiB, server %s",
        config.scaling.min_capacity, config.scaling.cpu,
        config.scaling.memory_limit_mib, config.server_url,
    )
    return ComputeLayer(
        cluster=cluster,
        task_definition=task_definition,
        container=container,
        service=service,
        upgrade_key_parameter=upgrade_key_parameter,
        secret_string_parameter=secret_string_parameter,
    )
