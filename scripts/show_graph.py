"""
Print the creation order of the MediaWiki stack's resources.

Synthesizes the stack from the current environment (same variables as
infra/app.py), verifies the resource graph and lists every resource with its
layer and the resources it depends on.

Usage:
    python scripts/show_graph.py
    python scripts/show_graph.py --json
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import tempfile

from mediawiki.app import synth
from mediawiki.errors import ConfigurationError, TopologyOrderError
from mediawiki.graph import creation_order, dependency_edges, layer_assignments

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(message)s",
)
logger = logging.getLogger("show_graph")


def main():
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--json", action="store_true", help="Emit JSON instead of text")
    args = parser.parse_args()

    with tempfile.TemporaryDirectory() as outdir:
        try:
            stack, template = synth(outdir=outdir)
        except (ConfigurationError, TopologyOrderError) as e:
            logger.error("%s", e)
            sys.exit(1)

    resources = template["Resources"]
    edges = dependency_edges(template)
    layers = layer_assignments(stack)
    order = creation_order(edges)

    rows = [
        {
            "logical_id": logical_id,
            "type": resources[logical_id]["Type"],
            "layer": layers.get(logical_id, "-"),
            "depends_on": sorted(edges[logical_id]),
        }
        for logical_id in order
    ]

    if args.json:
        print(json.dumps({"stack": stack.stack_name, "resources": rows}, indent=2))
        return

    print(f"{stack.stack_name}: {len(rows)} resources\n")
    for i, row in enumerate(rows, 1):
        print(f"{i:3d}. [{row['layer']:<7}] {row['logical_id']}  ({row['type']})")
        for dep in row["depends_on"]:
            print(f"          <- {dep}")


if __name__ == "__main__":
    main()
