"""
AWS CDK stack: VPC + Aurora Serverless + ECS Fargate + ALB + CloudFront + Route 53.

Resources, built in this order:
  - Network: VPC (2 AZs, public + private subnets), database security group
  - Data:    generated DB credential, Aurora MySQL serverless v2 cluster
  - Compute: ECS cluster, Fargate task + service behind a public ALB,
             SSM parameters for MediaWiki keys, database ingress for the service
  - Edge:    CloudFront distribution with the ACM certificate, Route 53 alias
"""

from __future__ import annotations

import logging
from typing import Optional

import aws_cdk as cdk
from aws_cdk import Stack, Tags, aws_ecs as ecs
from constructs import Construct

from mediawiki.compute import build_compute_layer, container_image_for
from mediawiki.config import ResolvedConfig
from mediawiki.database import build_data_layer
from mediawiki.edge import build_edge_layer
from mediawiki.network import build_network_layer

logger = logging.getLogger(__name__)


class MediaWikiStack(Stack):

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        config: ResolvedConfig,
        image: Optional[ecs.ContainerImage] = None,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)
        self.config = config

        self.network = build_network_layer(self)
        self.data = build_data_layer(self, self.network, config)
        self.compute = build_compute_layer(
            self, self.network, self.data, config,
            image or container_image_for(config),
        )
        self.edge = build_edge_layer(self, self.compute, config)

        Tags.of(self).add("Project", "MediaWiki")
        Tags.of(self).add("Stage", config.stage)

        # ---------------------------------------------------------------
        # Outputs
        # ---------------------------------------------------------------
        cdk.CfnOutput(self, "LoadBalancerDNS", value=self.compute.load_balancer_dns_name)
        cdk.CfnOutput(self, "DistributionDomainName",
                      value=self.edge.distribution.distribution_domain_name)
        cdk.CfnOutput(self, "DatabaseEndpoint", value=self.data.endpoint_hostname)
        cdk.CfnOutput(self, "SiteUrl", value=f"https:{config.server_url}")


def build_topology(
    scope: Construct,
    config: ResolvedConfig,
    image: Optional[ecs.ContainerImage] = None,
) -> MediaWikiStack:
    """Add the MediaWiki stack for ``config`` to ``scope`` and return it."""
    logger.info("Building stack %s for %s", config.stack_id, config.domain_name)
    return MediaWikiStack(
        scope,
        config.stack_id,
        config=config,
        image=image,
        env=cdk.Environment(account=config.account_id, region=config.region),
        description=f"MediaWiki ({config.stage}) at {config.domain_name}",
    )
