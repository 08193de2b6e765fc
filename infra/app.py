#!/usr/bin/env python3
"""
AWS CDK entry point.

Provisions, for one stage:
  - VPC with public/private subnets over 2 AZs
  - Aurora MySQL serverless cluster with a generated credential
  - ECS Fargate service for the MediaWiki container
  - Application Load Balancer
  - CloudFront distribution + Route 53 alias record

Required environment (or .env): CDK_DEFAULT_ACCOUNT, CDK_DEFAULT_REGION,
HOSTED_ZONE_ID, ZONE_NAME, ACM_CERTIFICATE_ARN, MEDIAWIKI_SECRET_STRING,
MEDIAWIKI_UPGRADE_KEY. Optional: STAGE, SUBDOMAIN, MEDIAWIKI_IMAGE,
MEDIAWIKI_IMAGE_DIR.

Run `cdk synth` from this directory; the repo root is put on sys.path, so
the `mediawiki` package does not need to be installed first
(`pip install -e ..` works too).
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from mediawiki.app import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main())
