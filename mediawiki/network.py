"""
Network layer: the VPC and the security group guarding the database.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from aws_cdk import aws_ec2 as ec2
from constructs import Construct

logger = logging.getLogger(__name__)

# fixed, not maximised for the region
AVAILABILITY_ZONES = 2
DATABASE_PORT = 3306


@dataclass(frozen=True)
class NetworkLayer:
    vpc: ec2.Vpc
    db_security_group: ec2.SecurityGroup


def build_network_layer(scope: Construct) -> NetworkLayer:
    layer = Construct(scope, "Network")

    vpc = ec2.Vpc(layer, "MediaWikiVPC", max_azs=AVAILABILITY_ZONES)

    db_security_group = ec2.SecurityGroup(
        layer, "MediaWikiDbSecurityGroup",
        vpc=vpc,
        description="MediaWiki Aurora cluster",
        allow_all_outbound=True,
    )
    # only ever the VPC's own address block
    db_security_group.add_ingress_rule(
        ec2.Peer.ipv4(vpc.vpc_cidr_block),
        ec2.Port.tcp(DATABASE_PORT),
        "Allow traffic from inside the VPC to reach Aurora",
    )

    logger.debug("Network layer: VPC over %d AZs", AVAILABILITY_ZONES)
    return NetworkLayer(vpc=vpc, db_security_group=db_security_group)
