"""
MediaWiki on AWS: CDK topology for a Fargate-hosted wiki behind CloudFront.
"""

from mediawiki.config import ResolvedConfig, StackParameters, resolve_config
from mediawiki.errors import ConfigurationError, MediaWikiStackError, TopologyOrderError
from mediawiki.stack import MediaWikiStack, build_topology

__all__ = [
    "ResolvedConfig",
    "StackParameters",
    "resolve_config",
    "ConfigurationError",
    "MediaWikiStackError",
    "TopologyOrderError",
    "MediaWikiStack",
    "build_topology",
]
