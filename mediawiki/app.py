"""
CDK application entry point.

Reads deployment parameters from the environment (and a .env file), resolves
them, synthesizes the MediaWiki stack and checks the resulting resource graph.
Missing variables are reported all at once before any construct is built.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Tuple

import aws_cdk as cdk

from mediawiki.config import load_parameters_from_env, resolve_config
from mediawiki.errors import ConfigurationError, TopologyOrderError
from mediawiki.graph import verify_topology
from mediawiki.stack import MediaWikiStack, build_topology

logger = logging.getLogger("mediawiki.app")


def synth(
    environ: Optional[Mapping[str, str]] = None,
    outdir: Optional[str] = None,
) -> Tuple[MediaWikiStack, Dict[str, Any]]:
    params = load_parameters_from_env(environ)
    config = resolve_config(params)

    app = cdk.App(outdir=outdir)
    stack = build_topology(app, config)
    assembly = app.synth()

    template = assembly.get_stack_artifact(stack.artifact_id).template
    verify_topology(stack, template)
    return stack, template


def main(outdir: Optional[str] = None) -> int:
    """Synthesize into `outdir` (CDK default when None); exit status for the CLI."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s  %(levelname)-8s  %(message)s",
    )
    try:
        stack, _ = synth(outdir=outdir)
    except ConfigurationError as e:
        logger.error("%s", e)
        return 1
    except TopologyOrderError as e:
        logger.error("Refusing to deploy: %s", e)
        return 1

    logger.info("Synthesized %s", stack.stack_name)
    return 0
