"""
Edge layer: CloudFront in front of the ALB and the Route 53 alias record.

TLS terminates at CloudFront; the origin is reached over plain HTTP.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from aws_cdk import (
    aws_certificatemanager as acm,
    aws_cloudfront as cloudfront,
    aws_cloudfront_origins as origins,
    aws_route53 as route53,
    aws_route53_targets as targets,
)
from constructs import Construct

from mediawiki.compute import ComputeLayer
from mediawiki.config import ResolvedConfig
from mediawiki.graph import require_layer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EdgeLayer:
    distribution: cloudfront.Distribution
    record: route53.ARecord


def price_class_for(is_production: bool) -> cloudfront.PriceClass:
    """PRICE_CLASS_100 in production, every edge location elsewhere."""
    if is_production:
        return cloudfront.PriceClass.PRICE_CLASS_100
    return cloudfront.PriceClass.PRICE_CLASS_ALL


def build_edge_layer(scope: Construct, compute: ComputeLayer, config: ResolvedConfig) -> EdgeLayer:
    require_layer(compute, "Compute")
    layer = Construct(scope, "Edge")

    # ---------------------------------------------------------------
    # CloudFront distribution
    # ---------------------------------------------------------------
    certificate = acm.Certificate.from_certificate_arn(
        layer, "AcmCertificate", config.acm_certificate_arn,
    )

    distribution = cloudfront.Distribution(
        layer, "MediaWikiCloudFront",
        default_behavior=cloudfront.BehaviorOptions(
            origin=origins.LoadBalancerV2Origin(
                compute.service.load_balancer,
                protocol_policy=cloudfront.OriginProtocolPolicy.HTTP_ONLY,
            ),
            viewer_protocol_policy=cloudfront.ViewerProtocolPolicy.REDIRECT_TO_HTTPS,
            allowed_methods=cloudfront.AllowedMethods.ALLOW_ALL,
            # pages vary by session cookie and query string
            cache_policy=cloudfront.CachePolicy.CACHING_DISABLED,
            origin_request_policy=cloudfront.OriginRequestPolicy.ALL_VIEWER,
        ),
        domain_names=[config.domain_name],
        certificate=certificate,
        ssl_support_method=cloudfront.SSLMethod.SNI,
        minimum_protocol_version=cloudfront.SecurityPolicyProtocol.TLS_V1_2_2021,
        price_class=price_class_for(config.is_production),
    )

    # ---------------------------------------------------------------
    # Route 53 alias
    # ---------------------------------------------------------------
    zone = route53.HostedZone.from_hosted_zone_attributes(
        layer, "MediaWikiHostedZone",
        hosted_zone_id=config.hosted_zone_id,
        zone_name=config.zone_name,
    )

    record = route53.ARecord(
        layer, "MediaWikiAliasRecord",
        zone=zone,
        record_name=config.subdomain,
        target=route53.RecordTarget.from_alias(targets.CloudFrontTarget(distribution)),
    )

    logger.debug("Edge layer: %s -> CloudFront", config.domain_name)
    return EdgeLayer(distribution=distribution, record=record)
