"""
Shared fixtures: parameter sets and synthesized templates.

Synthesizing a stack takes a few seconds, so the dev and prod templates are
built once per session.
"""

from typing import Any, Dict

import aws_cdk as cdk
import pytest
from aws_cdk.assertions import Template

from mediawiki.config import StackParameters, resolve_config
from mediawiki.stack import MediaWikiStack, build_topology

ACCOUNT = "123456789012"
REGION = "us-east-1"
HOSTED_ZONE_ID = "Z0123456789ABCDEFGHIJ"
ZONE_NAME = "example.com"
CERT_ARN = "arn:aws:acm:us-east-1:123456789012:certificate/11111111-2222-3333-4444-555555555555"

BASE_PARAMS: Dict[str, Any] = {
    "account_id": ACCOUNT,
    "region": REGION,
    "hosted_zone_id": HOSTED_ZONE_ID,
    "zone_name": ZONE_NAME,
    "acm_certificate_arn": CERT_ARN,
    "secret_string": "S1",
    "upgrade_key": "K1",
    "image": "mediawiki:1.41",
}

BASE_ENV: Dict[str, str] = {
    "CDK_DEFAULT_ACCOUNT": ACCOUNT,
    "CDK_DEFAULT_REGION": REGION,
    "HOSTED_ZONE_ID": HOSTED_ZONE_ID,
    "ZONE_NAME": ZONE_NAME,
    "ACM_CERTIFICATE_ARN": CERT_ARN,
    "MEDIAWIKI_SECRET_STRING": "S1",
    "MEDIAWIKI_UPGRADE_KEY": "K1",
    "MEDIAWIKI_IMAGE": "mediawiki:1.41",
}


def make_stack(**overrides: Any) -> MediaWikiStack:
    config = resolve_config(StackParameters(**{**BASE_PARAMS, **overrides}))
    return build_topology(cdk.App(), config)


@pytest.fixture
def base_params() -> Dict[str, Any]:
    return dict(BASE_PARAMS)


@pytest.fixture
def base_env() -> Dict[str, str]:
    return dict(BASE_ENV)


@pytest.fixture(scope="session")
def dev_stack() -> MediaWikiStack:
    return make_stack()


@pytest.fixture(scope="session")
def dev_template(dev_stack) -> Template:
    return Template.from_stack(dev_stack)


@pytest.fixture(scope="session")
def prod_template() -> Template:
    return Template.from_stack(make_stack(stage="prod"))


@pytest.fixture(scope="session")
def qa_stack() -> MediaWikiStack:
    return make_stack(stage="qa")


@pytest.fixture(scope="session")
def qa_template(qa_stack) -> Template:
    return Template.from_stack(qa_stack)


@pytest.fixture
def stack_factory():
    """Build a stack from BASE_PARAMS with keyword overrides."""
    return make_stack
