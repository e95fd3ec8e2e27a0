import json
import typing
from unittest.mock import patch

import pulumi
import pytest

import irsa
import irsa.pulumi_resources.custom_resource_handler
import irsa.pulumi_resources.lib
import irsa.pulumi_resources.oidc_identity_provider
import irsa.pulumi_resources.service_account_role
from conftest import StandardPulumiMocks

HandlerKind = irsa.pulumi_resources.custom_resource_handler.HandlerKind


class RecordingPulumiMocks(StandardPulumiMocks):
    """Standard mocks that also keep the type, name and inputs of every declared resource."""

    def __init__(self):
        super().__init__()
        self.resources: list[tuple[str, str, dict[str, typing.Any]]] = []

    def new_resource(self, args: pulumi.runtime.MockResourceArgs) -> tuple[str | None, dict[typing.Any, typing.Any]]:
        self.resources.append((args.typ, args.name, dict(args.inputs)))
        return super().new_resource(args)

    def of_type(self, typ: str) -> list[tuple[str, dict[str, typing.Any]]]:
        return [(name, inputs) for t, name, inputs in self.resources if t == typ]


# ============================================================================
# Template builders
# ============================================================================


def test_build_role_properties_defaults() -> None:
    props = irsa.pulumi_resources.lib.build_role_properties(cluster_name="c", service_account="sa", namespace=None)

    assert props == {"ClusterName": "c", "Namespace": "default", "ServiceAccount": "sa"}


def test_build_role_properties_full() -> None:
    document = {"Version": "2012-10-17", "Statement": []}

    props = irsa.pulumi_resources.lib.build_role_properties(
        cluster_name="c",
        service_account="sa",
        namespace="ns",
        inline_policies={"read": document},
        managed_policy_arns=["arn:a", "arn:b", "arn:a"],
        path="/irsa/",
        permissions_boundary="arn:boundary",
        role_name="my-role",
        max_session_duration=7200,
        description="my role",
    )

    assert props == {
        "ClusterName": "c",
        "Namespace": "ns",
        "ServiceAccount": "sa",
        "ManagedPolicyArns": ["arn:a", "arn:b"],
        "Policies": [{"PolicyName": "read", "PolicyDocument": document}],
        "Path": "/irsa/",
        "PermissionsBoundary": "arn:boundary",
        "RoleName": "my-role",
        "MaxSessionDuration": 7200,
        "Description": "my role",
    }


def test_build_role_properties_drops_empty_description() -> None:
    props = irsa.pulumi_resources.lib.build_role_properties(cluster_name="c", service_account="sa", description="")

    assert "Description" not in props


@pytest.mark.parametrize(
    ("kwargs", "match"),
    [
        ({"max_session_duration": 3599}, "maxSessionDuration is set to 3599"),
        ({"max_session_duration": 43201}, "maxSessionDuration is set to 43201"),
        ({"description": "x" * 1001}, "Role description must be no longer than 1000 characters."),
    ],
)
def test_build_role_properties_validation(kwargs, match) -> None:
    with pytest.raises(ValueError, match=match):
        irsa.pulumi_resources.lib.build_role_properties(cluster_name="c", service_account="sa", **kwargs)


def test_build_role_template() -> None:
    template = irsa.pulumi_resources.lib.build_role_template(
        "arn:aws:lambda:us-east-1:123456789012:function:handler",
        {"ClusterName": "c", "Namespace": "default", "ServiceAccount": "sa"},
    )

    assert template["AWSTemplateFormatVersion"] == "2010-09-09"
    assert template["Resources"] == {
        "Resource": {
            "Type": "Custom::IamRoleForServiceAccount",
            "Properties": {
                "ServiceToken": "arn:aws:lambda:us-east-1:123456789012:function:handler",
                "ClusterName": "c",
                "Namespace": "default",
                "ServiceAccount": "sa",
            },
        }
    }
    assert template["Outputs"] == {
        "Arn": {"Value": {"Fn::GetAtt": ["Resource", "Arn"]}},
        "RoleId": {"Value": {"Fn::GetAtt": ["Resource", "RoleId"]}},
        "RoleName": {"Value": {"Ref": "Resource"}},
    }


def test_build_identity_provider_template() -> None:
    template = irsa.pulumi_resources.lib.build_identity_provider_template("token", "c")

    assert template["Resources"]["Resource"] == {
        "Type": "Custom::EksOidcIdentityProvider",
        "Properties": {"ServiceToken": "token", "ClusterName": "c"},
    }
    assert template["Outputs"] == {"Arn": {"Value": {"Fn::GetAtt": ["Resource", "Arn"]}}}


def test_handler_kinds() -> None:
    assert HandlerKind.ROLE.entrypoint == "irsa.entrypoints.role_handler"
    assert HandlerKind.IDENTITY_PROVIDER.entrypoint == "irsa.entrypoints.identity_provider_handler"
    assert "iam:CreateRole" in HandlerKind.ROLE.actions
    assert "iam:CreateRole" not in HandlerKind.IDENTITY_PROVIDER.actions
    assert "iam:CreateOpenIDConnectProvider" in HandlerKind.IDENTITY_PROVIDER.actions


# ============================================================================
# Components
# ============================================================================


def test_service_account_role_validates_before_declaring() -> None:
    # no mocks are installed for this test; reaching the engine would fail differently
    with pytest.raises(ValueError, match="must be >= 3600sec"):
        irsa.pulumi_resources.service_account_role.ServiceAccountRole(
            "invalid",
            cluster_name="c",
            service_account="sa",
            max_session_duration=60,
        )


@pulumi.runtime.test
def test_service_account_role_outputs() -> None:
    mocks = RecordingPulumiMocks()
    pulumi.runtime.set_mocks(mocks, preview=False)

    role = irsa.pulumi_resources.service_account_role.ServiceAccountRole(
        "app",
        cluster_name="main",
        service_account="app-sa",
        namespace="apps",
        inline_policies={"read": {"Version": "2012-10-17", "Statement": []}},
        managed_policy_arns=["arn:aws:iam::aws:policy/ReadOnlyAccess"],
        max_session_duration=3600,
    )

    def check(args):
        role_arn, role_id, role_name = args
        assert role_arn == "arn:aws:iam::123456789012:role/app-stack"
        assert role_id == "AROAJQABLZS4A3QDU576Q"
        assert role_name == "app-stack"

        # a dedicated handler was declared for the role
        functions = mocks.of_type("aws:lambda/function:Function")
        assert [name for name, _ in functions] == ["app-handler-function"]
        assert functions[0][1]["handler"] == "irsa.entrypoints.role_handler"

        [(_, stack_inputs)] = mocks.of_type("aws:cloudformation/stack:Stack")
        template = json.loads(stack_inputs["templateBody"])
        properties = template["Resources"]["Resource"]["Properties"]
        assert template["Resources"]["Resource"]["Type"] == "Custom::IamRoleForServiceAccount"
        assert properties["ServiceToken"] == "arn:aws:lambda:us-east-1:123456789012:function:app-handler-function"
        assert properties["ClusterName"] == "main"
        assert properties["Namespace"] == "apps"
        assert properties["ServiceAccount"] == "app-sa"
        assert properties["MaxSessionDuration"] == 3600
        assert properties["ManagedPolicyArns"] == ["arn:aws:iam::aws:policy/ReadOnlyAccess"]

    return pulumi.Output.all(role.role_arn, role.role_id, role.role_name).apply(check)


@pulumi.runtime.test
def test_roles_share_a_handler() -> None:
    mocks = RecordingPulumiMocks()
    pulumi.runtime.set_mocks(mocks, preview=False)

    handler = irsa.pulumi_resources.custom_resource_handler.CustomResourceHandler("shared", HandlerKind.ROLE)
    first = irsa.pulumi_resources.service_account_role.ServiceAccountRole(
        "first", cluster_name="main", service_account="one", handler=handler
    )
    second = irsa.pulumi_resources.service_account_role.ServiceAccountRole(
        "second", cluster_name="main", service_account="two", handler=handler
    )

    def check(_):
        assert [name for name, _ in mocks.of_type("aws:lambda/function:Function")] == ["shared-function"]
        assert len(mocks.of_type("aws:cloudformation/stack:Stack")) == 2

    return pulumi.Output.all(first.role_arn, second.role_arn).apply(check)


@pulumi.runtime.test
def test_role_rejects_provider_handler(pulumi_mocks) -> None:
    pulumi.runtime.set_mocks(pulumi_mocks(), preview=False)

    handler = irsa.pulumi_resources.custom_resource_handler.CustomResourceHandler(
        "providers", HandlerKind.IDENTITY_PROVIDER
    )

    with pytest.raises(ValueError, match="handles identity-provider, not role"):
        irsa.pulumi_resources.service_account_role.ServiceAccountRole(
            "app", cluster_name="main", service_account="sa", handler=handler
        )


@pulumi.runtime.test
def test_handler_function_settings() -> None:
    mocks = RecordingPulumiMocks()
    pulumi.runtime.set_mocks(mocks, preview=False)

    handler = irsa.pulumi_resources.custom_resource_handler.CustomResourceHandler(
        "roles",
        HandlerKind.ROLE,
        code=pulumi.AssetArchive({}),
        layers=["arn:aws:lambda:us-east-1:123456789012:layer:requests:1"],
        log_level="DEBUG",
        tags={"team": "platform"},
    )

    def check(arn):
        assert arn == "arn:aws:lambda:us-east-1:123456789012:function:roles-function"

        [(_, inputs)] = mocks.of_type("aws:lambda/function:Function")
        assert inputs["runtime"] == "python3.12"
        assert inputs["timeout"] == 900
        assert inputs["layers"] == ["arn:aws:lambda:us-east-1:123456789012:layer:requests:1"]
        assert inputs["environment"] == {"variables": {"IRSA_LOG_LEVEL": "DEBUG"}}
        assert inputs["tags"] == {"team": "platform"}

        [(_, policy_inputs)] = mocks.of_type("aws:iam/rolePolicy:RolePolicy")
        statement = json.loads(policy_inputs["policy"])["Statement"][0]
        assert statement["Action"] == HandlerKind.ROLE.actions

    return handler.service_token.apply(check)


@pulumi.runtime.test
def test_oidc_identity_provider_outputs() -> None:
    mocks = RecordingPulumiMocks()
    pulumi.runtime.set_mocks(mocks, preview=False)

    provider = irsa.pulumi_resources.oidc_identity_provider.OIDCIdentityProvider("main-oidc", cluster_name="main")

    def check(arn):
        assert arn is not None

        [(_, stack_inputs)] = mocks.of_type("aws:cloudformation/stack:Stack")
        resource = json.loads(stack_inputs["templateBody"])["Resources"]["Resource"]
        assert resource["Type"] == "Custom::EksOidcIdentityProvider"
        assert resource["Properties"]["ClusterName"] == "main"

        functions = mocks.of_type("aws:lambda/function:Function")
        assert functions[0][1]["handler"] == "irsa.entrypoints.identity_provider_handler"

    return provider.provider_arn.apply(check)


@pulumi.runtime.test
def test_handler_warns_without_layers(pulumi_mocks) -> None:
    pulumi.runtime.set_mocks(pulumi_mocks(), preview=False)

    with patch("pulumi.log.warn") as warn:
        irsa.pulumi_resources.custom_resource_handler.CustomResourceHandler(
            "bare", HandlerKind.ROLE, code=pulumi.AssetArchive({})
        )
        irsa.pulumi_resources.custom_resource_handler.CustomResourceHandler(
            "layered",
            HandlerKind.ROLE,
            code=pulumi.AssetArchive({}),
            layers=["arn:aws:lambda:us-east-1:123456789012:layer:requests:1"],
        )

    warn.assert_called_once()
    assert warn.call_args.args[0].startswith("bare: no layers given")
    assert "requests" in warn.call_args.args[0]


@pulumi.runtime.test
def test_dedicated_handler_gets_layers() -> None:
    mocks = RecordingPulumiMocks()
    pulumi.runtime.set_mocks(mocks, preview=False)
    layer = "arn:aws:lambda:us-east-1:123456789012:layer:requests:1"

    role = irsa.pulumi_resources.service_account_role.ServiceAccountRole(
        "app", cluster_name="main", service_account="sa", handler_layers=[layer]
    )
    provider = irsa.pulumi_resources.oidc_identity_provider.OIDCIdentityProvider(
        "main-oidc", cluster_name="main", handler_layers=[layer]
    )

    def check(_):
        functions = mocks.of_type("aws:lambda/function:Function")
        assert sorted(name for name, _ in functions) == ["app-handler-function", "main-oidc-handler-function"]
        assert all(inputs["layers"] == [layer] for _, inputs in functions)

    return pulumi.Output.all(role.role_arn, provider.provider_arn).apply(check)
