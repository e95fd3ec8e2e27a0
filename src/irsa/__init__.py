from __future__ import annotations

import enum
import re
import typing

DEFAULT_NAMESPACE = "default"
DEFAULT_PARTITION = "aws"
# certificate thumbprint of the CA behind the EKS OIDC endpoints
EKS_OIDC_CA_THUMBPRINT = "9e99a48a9960b14926bb7f3b02e22da2b0ab7280"
MAX_DESCRIPTION_LEN = 1000
MAX_ROLE_NAME_LEN = 63
MAX_SESSION_DURATION_MAX = 43200
MAX_SESSION_DURATION_MIN = 3600
ROLE_NAME_SUFFIX_CHARS = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
ROLE_NAME_SUFFIX_LEN = 12
STS_AUDIENCE = "sts.amazonaws.com"
WEB_IDENTITY_ACTION = "sts:AssumeRoleWithWebIdentity"

ISSUER_SCHEME_REGEX = re.compile("^https?://")
CALLER_ARN_PARTITION_REGEX = re.compile("^arn:([a-z-]+):")
# characters and length IAM accepts in a role name
ROLE_NAME_REGEX = re.compile(r"^[\w+=,.@-]{1,64}$", re.ASCII)


class RequestType(enum.StrEnum):
    CREATE = "Create"
    UPDATE = "Update"
    DELETE = "Delete"


class Status(enum.StrEnum):
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class ResourceTypes(enum.StrEnum):
    IAM_ROLE_FOR_SERVICE_ACCOUNT = "Custom::IamRoleForServiceAccount"
    EKS_OIDC_IDENTITY_PROVIDER = "Custom::EksOidcIdentityProvider"


class NotFoundErrorCodes(enum.StrEnum):
    NO_SUCH_ENTITY = "NoSuchEntity"
    NO_SUCH_ENTITY_EXCEPTION = "NoSuchEntityException"
    RESOURCE_NOT_FOUND = "ResourceNotFoundException"


class LambdaContext(typing.Protocol):
    log_stream_name: str


class CfnInlinePolicy(typing.TypedDict):
    PolicyName: str
    PolicyDocument: str | dict[str, typing.Any]


class CfnRoleProperties(typing.TypedDict, total=False):
    ServiceToken: str
    ClusterName: str
    Namespace: str
    ServiceAccount: str
    RoleName: str
    Description: str
    MaxSessionDuration: int | str
    Path: str
    PermissionsBoundary: str
    Policies: list[CfnInlinePolicy]
    ManagedPolicyArns: list[str]


class CfnProviderProperties(typing.TypedDict, total=False):
    ServiceToken: str
    ClusterName: str


class CfnEvent(typing.TypedDict, total=False):
    RequestType: str
    RequestId: str
    ResponseURL: str
    ResourceType: str
    LogicalResourceId: str
    StackId: str
    PhysicalResourceId: str
    ResourceProperties: dict[str, typing.Any]
    OldResourceProperties: dict[str, typing.Any]


class CfnResponseBody(typing.TypedDict, total=False):
    Status: str
    Reason: str
    PhysicalResourceId: str
    StackId: str | None
    RequestId: str | None
    LogicalResourceId: str | None
    Data: dict[str, typing.Any] | None


class AWSCallerIdentity(typing.TypedDict):
    UserId: str
    Account: str
    Arn: str


class AWSCloudFormationResource(typing.TypedDict):
    Type: str
    Properties: dict[str, typing.Any]


class AWSCloudFormationOutput(typing.TypedDict):
    Value: typing.Any


class AWSCloudFormationTemplate(typing.TypedDict):
    AWSTemplateFormatVersion: str
    Description: str
    Resources: dict[str, AWSCloudFormationResource]
    Outputs: dict[str, AWSCloudFormationOutput]


def get_oidc_url(cluster: dict[str, typing.Any]) -> str | None:
    return cluster["cluster"].get("identity", {}).get("oidc", {}).get("issuer")


def partition_from_arn(arn: str | None) -> str:
    if not arn:
        return DEFAULT_PARTITION

    match = CALLER_ARN_PARTITION_REGEX.match(arn)
    if match is None:
        return DEFAULT_PARTITION

    return match.group(1)
