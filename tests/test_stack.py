"""
Tests for the orchestrated stack: layer order, outputs, tags.
"""

import aws_cdk as cdk
import pytest
from aws_cdk.assertions import Match, Template

from mediawiki.compute import build_compute_layer, container_image_for
from mediawiki.config import StackParameters, resolve_config
from mediawiki.database import build_data_layer
from mediawiki.edge import build_edge_layer
from mediawiki.errors import TopologyOrderError
from mediawiki.graph import LAYER_ORDER, dependency_edges, layer_assignments, verify_topology
from mediawiki.stack import build_topology


def test_stack_identity(dev_stack) -> None:
    assert dev_stack.stack_name == "MediaWikiDev"
    assert dev_stack.account == "123456789012"
    assert dev_stack.region == "us-east-1"


def test_graph_is_acyclic_and_layered(dev_stack, dev_template: Template) -> None:
    """
    Every reference points at the same or an earlier layer.
    """
    order = verify_topology(dev_stack, dev_template.to_json())
    resources = dev_template.to_json()["Resources"]

    assert sorted(order) == sorted(resources)
    position = {logical_id: i for i, logical_id in enumerate(order)}
    for source, targets in dependency_edges(dev_template.to_json()).items():
        for target in targets:
            assert position[target] < position[source]


def test_every_layer_contributes_resources(dev_stack) -> None:
    layers = set(layer_assignments(dev_stack).values())
    assert layers == set(LAYER_ORDER)


def test_layers_in_construct_order(dev_stack) -> None:
    children = [child.node.id for child in dev_stack.node.children]
    positions = [children.index(name) for name in LAYER_ORDER]
    assert positions == sorted(positions)


def test_outputs(dev_template: Template) -> None:
    dev_template.has_output("SiteUrl", {"Value": "https://dev.example.com"})
    dev_template.has_output("LoadBalancerDNS", Match.any_value())
    dev_template.has_output("DistributionDomainName", Match.any_value())
    dev_template.has_output("DatabaseEndpoint", Match.any_value())


def test_resources_tagged_with_stage(dev_template: Template) -> None:
    dev_template.has_resource_properties(
        "AWS::EC2::VPC",
        {
            "Tags": Match.array_with(
                [{"Key": "Project", "Value": "MediaWiki"}, {"Key": "Stage", "Value": "dev"}]
            )
        },
    )


def test_same_config_same_graph(base_params) -> None:
    config = resolve_config(StackParameters(**base_params))
    first = Template.from_stack(build_topology(cdk.App(), config)).to_json()
    second = Template.from_stack(build_topology(cdk.App(), config)).to_json()

    assert first == second


# ---------------------------------------------------------------------------
# Builders refuse handles that were never built
# ---------------------------------------------------------------------------

@pytest.fixture
def config(base_params):
    return resolve_config(StackParameters(**base_params))


def test_data_layer_requires_network(config) -> None:
    stack = cdk.Stack(cdk.App(), "Orphan")
    with pytest.raises(TopologyOrderError, match="Network"):
        build_data_layer(stack, None, config)


def test_compute_layer_requires_data(config, dev_stack) -> None:
    stack = cdk.Stack(cdk.App(), "Orphan")
    with pytest.raises(TopologyOrderError, match="Data"):
        build_compute_layer(stack, dev_stack.network, None, config, container_image_for(config))


def test_edge_layer_requires_compute(config) -> None:
    stack = cdk.Stack(cdk.App(), "Orphan")
    with pytest.raises(TopologyOrderError, match="Compute"):
        build_edge_layer(stack, None, config)
