"""
Dependency checks over the synthesized resource graph.

Each layer builder places its constructs under one scope (Network, Data,
Compute, Edge). After synthesis the CloudFormation template is read back as a
graph of references; it must be acyclic and no resource may reference a
resource of a later layer.
"""

from __future__ import annotations

import logging
import re
from graphlib import CycleError, TopologicalSorter
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

import aws_cdk as cdk

from mediawiki.errors import TopologyOrderError

logger = logging.getLogger(__name__)

LAYER_ORDER = ("Network", "Data", "Compute", "Edge")

SUB_REF_RE = re.compile(r"\$\{([A-Za-z0-9]+)(?:\.[A-Za-z0-9.]+)?\}")


def require_layer(handle: Any, name: str) -> Any:
    """Return ``handle``; raise if the layer it comes from was never built."""
    if handle is None:
        raise TopologyOrderError(
            f"{name} layer must be built before it is referenced",
            details={"layer": name},
        )
    return handle


def _collect_refs(node: Any, out: Set[str]) -> None:
    if isinstance(node, dict):
        for key, value in node.items():
            if key == "Ref" and isinstance(value, str):
                out.add(value)
            elif key == "Fn::GetAtt":
                out.add(value[0] if isinstance(value, list) else str(value).split(".")[0])
            elif key == "Fn::Sub":
                text = value[0] if isinstance(value, list) else value
                if isinstance(text, str):
                    out.update(SUB_REF_RE.findall(text))
                if isinstance(value, list) and len(value) > 1:
                    _collect_refs(value[1], out)
            else:
                _collect_refs(value, out)
    elif isinstance(node, list):
        for item in node:
            _collect_refs(item, out)


def dependency_edges(template: Mapping[str, Any]) -> Dict[str, Set[str]]:
    """Map each resource's logical id to the resources it depends on.

    Pseudo parameters and parameters are ignored; only references to other
    resources in the same template count.
    """
    resources = template.get("Resources", {})
    edges: Dict[str, Set[str]] = {}
    for logical_id, body in resources.items():
        refs: Set[str] = set()
        _collect_refs(body.get("Properties", {}), refs)

        depends_on = body.get("DependsOn", [])
        if isinstance(depends_on, str):
            depends_on = [depends_on]
        refs.update(depends_on)

        edges[logical_id] = {r for r in refs if r in resources and r != logical_id}
    return edges


def creation_order(edges: Mapping[str, Iterable[str]]) -> List[str]:
    """Topological order of ``edges``, dependencies first."""
    try:
        return list(TopologicalSorter(edges).static_order())
    except CycleError as e:
        raise TopologyOrderError(
            "Resource graph contains a reference cycle",
            details={"cycle": list(e.args[1]) if len(e.args) > 1 else []},
        ) from e


def _layer_of(path: str) -> Optional[str]:
    head = path.split("/", 1)[0]
    return head if head in LAYER_ORDER else None


def layer_assignments(stack: cdk.Stack) -> Dict[str, str]:
    """Logical id -> layer name for every layered CloudFormation resource."""
    prefix = stack.node.path + "/"
    layers: Dict[str, str] = {}
    for construct in stack.node.find_all():
        if not cdk.CfnResource.is_cfn_resource(construct):
            continue
        path = construct.node.path
        if not path.startswith(prefix):
            continue
        layer = _layer_of(path[len(prefix):])
        if layer is not None:
            layers[stack.resolve(construct.logical_id)] = layer
    return layers


def check_layering(edges: Mapping[str, Iterable[str]], layers: Mapping[str, str]) -> None:
    """Raise if any resource references a resource of a later layer.

    Resources outside the four layers (CDK support resources) are skipped.
    """
    rank = {name: i for i, name in enumerate(LAYER_ORDER)}
    violations = []
    for source, targets in edges.items():
        if source not in layers:
            continue
        for target in targets:
            if target in layers and rank[layers[target]] > rank[layers[source]]:
                violations.append(f"{source} ({layers[source]}) -> {target} ({layers[target]})")

    if violations:
        raise TopologyOrderError(
            "Resources reference later layers: " + "; ".join(sorted(violations)),
            details={"violations": sorted(violations)},
        )


def verify_topology(stack: cdk.Stack, template: Mapping[str, Any]) -> List[str]:
    """Check the synthesized ``template`` of ``stack``; return its creation order."""
    edges = dependency_edges(template)
    order = creation_order(edges)
    check_layering(edges, layer_assignments(stack))
    logger.info("Resource graph verified: %d resources, acyclic, layered", len(order))
    return order
