"""
Tests for the resource graph helpers on hand-written templates.
"""

import pytest

from mediawiki.errors import TopologyOrderError
from mediawiki.graph import check_layering, creation_order, dependency_edges, require_layer


TEMPLATE = {
    "Parameters": {"BootstrapVersion": {"Type": "String"}},
    "Resources": {
        "Vpc": {"Type": "AWS::EC2::VPC", "Properties": {"CidrBlock": "10.0.0.0/16"}},
        "Group": {
            "Type": "AWS::EC2::SecurityGroup",
            "Properties": {
                "VpcId": {"Ref": "Vpc"},
                "SecurityGroupIngress": [{"CidrIp": {"Fn::GetAtt": ["Vpc", "CidrBlock"]}}],
            },
        },
        "Cluster": {
            "Type": "AWS::RDS::DBCluster",
            "Properties": {
                "VpcSecurityGroupIds": [{"Fn::GetAtt": "Group.GroupId"}],
                "Region": {"Ref": "AWS::Region"},
                "Bootstrap": {"Ref": "BootstrapVersion"},
            },
        },
        "Task": {
            "Type": "AWS::ECS::TaskDefinition",
            "DependsOn": "Cluster",
            "Properties": {"Host": {"Fn::Sub": "${Cluster.Endpoint.Address}:3306"}},
        },
    },
}


def test_dependency_edges() -> None:
    edges = dependency_edges(TEMPLATE)

    assert edges == {
        "Vpc": set(),
        "Group": {"Vpc"},
        "Cluster": {"Group"},
        "Task": {"Cluster"},
    }


def test_creation_order_puts_dependencies_first() -> None:
    order = creation_order(dependency_edges(TEMPLATE))
    assert order == ["Vpc", "Group", "Cluster", "Task"]


def test_cycle_is_rejected() -> None:
    with pytest.raises(TopologyOrderError, match="cycle"):
        creation_order({"A": {"B"}, "B": {"C"}, "C": {"A"}})


def test_backward_references_pass() -> None:
    edges = {"Task": {"Cluster"}, "Cluster": {"Vpc"}, "Vpc": set(), "Role": {"Vpc"}}
    layers = {"Task": "Compute", "Cluster": "Data", "Vpc": "Network"}

    check_layering(edges, layers)


def test_forward_reference_is_rejected() -> None:
    """
    A data-layer resource pointing at the compute layer is an ordering bug.
    """
    edges = {"Cluster": {"ServiceGroup"}, "ServiceGroup": set()}
    layers = {"Cluster": "Data", "ServiceGroup": "Compute"}

    with pytest.raises(TopologyOrderError) as exc_info:
        check_layering(edges, layers)

    assert exc_info.value.details["violations"] == ["Cluster (Data) -> ServiceGroup (Compute)"]


def test_require_layer() -> None:
    handle = object()
    assert require_layer(handle, "Network") is handle

    with pytest.raises(TopologyOrderError) as exc_info:
        require_layer(None, "Network")
    assert exc_info.value.details == {"layer": "Network"}
