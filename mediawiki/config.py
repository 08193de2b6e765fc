"""
Deployment configuration.

StackParameters is what a caller hands in, possibly partial. resolve_config()
is the only place defaults are applied; it returns an immutable ResolvedConfig
that every layer builder reads from. load_parameters_from_env() fills
StackParameters from the process environment for the CDK entry point.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from mediawiki.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_STAGE = "dev"
PRODUCTION_STAGE = "prod"

DEFAULT_DB_NAME = "mediawiki"
DEFAULT_DB_USERNAME = "mediawiki"

DEFAULT_CAPACITY = 1
DEFAULT_CPU = 256               # Fargate CPU units (0.25 vCPU)
DEFAULT_MEMORY_LIMIT_MIB = 512

PARAMETER_NAMESPACE = "/mediawiki"

# CloudFront only accepts certificates issued in us-east-1
CERTIFICATE_REGION = "us-east-1"

STAGE_RE = re.compile(r"^[A-Za-z0-9-]+$")


def _project_root() -> Path:
    return Path(__file__).resolve().parent.parent


# repo root, where the Dockerfile lives
DEFAULT_IMAGE_DIRECTORY = str(_project_root())

# environment variable -> StackParameters field
REQUIRED_ENV_VARS: Dict[str, str] = {
    "CDK_DEFAULT_ACCOUNT": "account_id",
    "CDK_DEFAULT_REGION": "region",
    "HOSTED_ZONE_ID": "hosted_zone_id",
    "ZONE_NAME": "zone_name",
    "ACM_CERTIFICATE_ARN": "acm_certificate_arn",
    "MEDIAWIKI_SECRET_STRING": "secret_string",
    "MEDIAWIKI_UPGRADE_KEY": "upgrade_key",
}

OPTIONAL_ENV_VARS: Dict[str, str] = {
    "STAGE": "stage",
    "SUBDOMAIN": "subdomain",
    "MEDIAWIKI_IMAGE": "image",
    "MEDIAWIKI_IMAGE_DIR": "image_directory",
}

REQUIRED_FIELDS = (
    "hosted_zone_id",
    "zone_name",
    "acm_certificate_arn",
    "secret_string",
    "upgrade_key",
)


# ---------------------------------------------------------------------------
# Caller-supplied parameters
# ---------------------------------------------------------------------------

class DatabaseParameters(BaseModel):
    db_name: Optional[str] = Field(default=None, description="Database name")
    username: Optional[str] = Field(default=None, description="Database username")


class ScalingParameters(BaseModel):
    min_capacity: Optional[int] = Field(default=None, ge=1, description="Minimum instances / ACUs")
    max_capacity: Optional[int] = Field(default=None, ge=1, description="Maximum instances / ACUs")
    cpu: Optional[int] = Field(default=None, ge=1, description="Fargate CPU units")
    memory_limit_mib: Optional[int] = Field(default=None, ge=1, description="Task memory in MiB")


class StackParameters(BaseModel):
    """Deployment parameters as supplied by the caller."""
    account_id: Optional[str] = None
    region: Optional[str] = None
    hosted_zone_id: str = Field(default="", description="Route 53 hosted zone id")
    zone_name: str = Field(default="", description="Hosted zone domain name")
    acm_certificate_arn: str = Field(default="", description="ACM certificate for CloudFront")
    secret_string: str = Field(default="", repr=False, description="MediaWiki $wgSecretKey")
    upgrade_key: str = Field(default="", repr=False, description="MediaWiki $wgUpgradeKey")
    stage: Optional[str] = None
    subdomain: Optional[str] = None
    database: Optional[DatabaseParameters] = None
    scaling: Optional[ScalingParameters] = None
    image: Optional[str] = Field(
        default=None,
        description="Registry image reference; the image is built from image_directory when unset",
    )
    image_directory: str = Field(
        default=DEFAULT_IMAGE_DIRECTORY, description="Docker build context containing a Dockerfile"
    )


# ---------------------------------------------------------------------------
# Resolved configuration
# ---------------------------------------------------------------------------

class DatabaseConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    db_name: str
    username: str


class ScalingConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    min_capacity: int
    max_capacity: int
    cpu: int
    memory_limit_mib: int


class ResolvedConfig(BaseModel):
    """StackParameters with every default applied. Immutable."""
    model_config = ConfigDict(frozen=True)

    account_id: Optional[str]
    region: Optional[str]
    hosted_zone_id: str
    zone_name: str
    acm_certificate_arn: str
    secret_string: str = Field(repr=False)
    upgrade_key: str = Field(repr=False)
    stage: str
    subdomain: str
    is_production: bool
    database: DatabaseConfig
    scaling: ScalingConfig
    image: Optional[str]
    image_directory: str

    @property
    def domain_name(self) -> str:
        return f"{self.subdomain}.{self.zone_name}"

    @property
    def server_url(self) -> str:
        # protocol-relative, so MediaWiki serves both http and https links
        return f"//{self.domain_name}"

    @property
    def stack_id(self) -> str:
        return "MediaWiki" + self.stage[:1].upper() + self.stage[1:]

    def parameter_name(self, key: str) -> str:
        """SSM parameter path for ``key``, namespaced by stage."""
        return f"{PARAMETER_NAMESPACE}/{self.stage}/{key}"


def _invalid_fields(params: StackParameters) -> List[str]:
    invalid = [name for name in REQUIRED_FIELDS if not getattr(params, name).strip()]

    arn = params.acm_certificate_arn.strip()
    if arn and (not arn.startswith("arn:") or f":acm:{CERTIFICATE_REGION}:" not in arn):
        invalid.append("acm_certificate_arn")

    if params.stage and not STAGE_RE.match(params.stage):
        invalid.append("stage")

    if not params.image and not (Path(params.image_directory) / "Dockerfile").is_file():
        invalid.append("image_directory")

    return invalid


def resolve_config(params: StackParameters) -> ResolvedConfig:
    """Validate ``params`` and apply the defaulting rules.

    Raises ConfigurationError naming every missing or malformed field.
    """
    invalid = _invalid_fields(params)
    if invalid:
        raise ConfigurationError(invalid)

    stage = params.stage or DEFAULT_STAGE
    database = params.database or DatabaseParameters()
    scaling = params.scaling or ScalingParameters()

    config = ResolvedConfig(
        account_id=params.account_id or None,
        region=params.region or None,
        hosted_zone_id=params.hosted_zone_id.strip(),
        zone_name=params.zone_name.strip(),
        acm_certificate_arn=params.acm_certificate_arn.strip(),
        secret_string=params.secret_string,
        upgrade_key=params.upgrade_key,
        stage=stage,
        subdomain=params.subdomain or stage,
        is_production=stage == PRODUCTION_STAGE,
        database=DatabaseConfig(
            db_name=database.db_name or DEFAULT_DB_NAME,
            username=database.username or DEFAULT_DB_USERNAME,
        ),
        scaling=ScalingConfig(
            min_capacity=scaling.min_capacity or DEFAULT_CAPACITY,
            max_capacity=scaling.max_capacity or DEFAULT_CAPACITY,
            cpu=scaling.cpu or DEFAULT_CPU,
            memory_limit_mib=scaling.memory_limit_mib or DEFAULT_MEMORY_LIMIT_MIB,
        ),
        image=params.image or None,
        image_directory=params.image_directory,
    )

    if config.scaling.min_capacity > config.scaling.max_capacity:
        raise ConfigurationError(
            ["scaling.min_capacity", "scaling.max_capacity"],
            message=(
                f"scaling.min_capacity ({config.scaling.min_capacity}) exceeds "
                f"scaling.max_capacity ({config.scaling.max_capacity})"
            ),
        )

    logger.info(
        "Resolved stage=%s domain=%s production=%s",
        config.stage, config.domain_name, config.is_production,
    )
    return config


def load_parameters_from_env(environ: Optional[Mapping[str, str]] = None) -> StackParameters:
    """Build StackParameters from environment variables.

    With no ``environ`` a .env file in the working directory is loaded into
    os.environ first. Every missing required variable is reported at once.
    """
    if environ is None:
        load_dotenv(find_dotenv(usecwd=True))
        environ = os.environ

    missing = [name for name in REQUIRED_ENV_VARS if not environ.get(name)]
    if missing:
        raise ConfigurationError(
            missing, message=f"Missing environment variables: {', '.join(missing)}"
        )

    values = {field: environ[name] for name, field in REQUIRED_ENV_VARS.items()}
    for name, field in OPTIONAL_ENV_VARS.items():
        if environ.get(name):
            values[field] = environ[name]

    return StackParameters(**values)
