from __future__ import annotations

import typing

import irsa
import irsa.aws_iam

RESOURCE_LOGICAL_ID = "Resource"
TEMPLATE_FORMAT_VERSION = "2010-09-09"


def build_role_properties(
    cluster_name: typing.Any,
    service_account: typing.Any,
    namespace: typing.Any = irsa.DEFAULT_NAMESPACE,
    inline_policies: dict[str, typing.Any] | None = None,
    managed_policy_arns: typing.Sequence[typing.Any] | None = None,
    path: typing.Any = None,
    permissions_boundary: typing.Any = None,
    role_name: typing.Any = None,
    max_session_duration: int | None = None,
    description: str | None = None,
) -> irsa.CfnRoleProperties:
    """
    Validate the role settings and render them as the custom resource's
    properties. Raises ValueError for an out of range session duration or an
    over-long description, before anything is declared.
    """
    irsa.aws_iam.validate_max_session_duration(max_session_duration)
    description = irsa.aws_iam.validate_description(description)

    props: irsa.CfnRoleProperties = {
        "ClusterName": cluster_name,
        "Namespace": namespace or irsa.DEFAULT_NAMESPACE,
        "ServiceAccount": service_account,
    }

    if managed_policy_arns:
        props["ManagedPolicyArns"] = list(dict.fromkeys(managed_policy_arns))
    if inline_policies:
        props["Policies"] = [
            {"PolicyName": name, "PolicyDocument": document} for name, document in inline_policies.items()
        ]

    optional: dict[str, typing.Any] = {
        "Path": path,
        "PermissionsBoundary": permissions_boundary,
        "RoleName": role_name,
        "MaxSessionDuration": max_session_duration,
        "Description": description,
    }
    for key, value in optional.items():
        if value is not None:
            props[key] = value  # type: ignore[literal-required]

    return props


def build_custom_resource_template(
    resource_type: irsa.ResourceTypes,
    service_token: typing.Any,
    properties: dict[str, typing.Any],
    outputs: dict[str, typing.Any],
    description: str = "",
) -> irsa.AWSCloudFormationTemplate:
    return {
        "AWSTemplateFormatVersion": TEMPLATE_FORMAT_VERSION,
        "Description": description or f"{resource_type} managed by irsa",
        "Resources": {
            RESOURCE_LOGICAL_ID: {
                "Type": str(resource_type),
                "Properties": {"ServiceToken": service_token} | properties,
            },
        },
        "Outputs": {name: {"Value": value} for name, value in outputs.items()},
    }


def build_role_template(service_token: typing.Any, properties: irsa.CfnRoleProperties) -> irsa.AWSCloudFormationTemplate:
    return build_custom_resource_template(
        irsa.ResourceTypes.IAM_ROLE_FOR_SERVICE_ACCOUNT,
        service_token,
        dict(properties),
        outputs={
            "Arn": {"Fn::GetAtt": [RESOURCE_LOGICAL_ID, "Arn"]},
            "RoleId": {"Fn::GetAtt": [RESOURCE_LOGICAL_ID, "RoleId"]},
            "RoleName": {"Ref": RESOURCE_LOGICAL_ID},
        },
        description="IAM role for a Kubernetes service account",
    )


def build_identity_provider_template(service_token: typing.Any, cluster_name: typing.Any) -> irsa.AWSCloudFormationTemplate:
    return build_custom_resource_template(
        irsa.ResourceTypes.EKS_OIDC_IDENTITY_PROVIDER,
        service_token,
        {"ClusterName": cluster_name},
        outputs={
            "Arn": {"Fn::GetAtt": [RESOURCE_LOGICAL_ID, "Arn"]},
        },
        description="OIDC identity provider for an EKS cluster",
    )
