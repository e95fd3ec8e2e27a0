from __future__ import annotations

import enum
import json

import pulumi
import pulumi_aws as aws

import irsa.paths

DEFAULT_RUNTIME = "python3.12"
HANDLER_TIMEOUT_SECONDS = 15 * 60
LAMBDA_BASIC_EXECUTION_POLICY = "arn:aws:iam::aws:policy/service-role/AWSLambdaBasicExecutionRole"


class HandlerKind(enum.StrEnum):
    ROLE = "role"
    IDENTITY_PROVIDER = "identity-provider"

    @property
    def entrypoint(self) -> str:
        if self == HandlerKind.ROLE:
            return "irsa.entrypoints.role_handler"
        return "irsa.entrypoints.identity_provider_handler"

    @property
    def actions(self) -> list[str]:
        if self == HandlerKind.ROLE:
            return [
                "eks:DescribeCluster",
                "iam:AttachRolePolicy",
                "iam:CreateRole",
                "iam:DeleteRole",
                "iam:DeleteRolePermissionsBoundary",
                "iam:DeleteRolePolicy",
                "iam:DetachRolePolicy",
                "iam:GetRole",
                "iam:PutRolePermissionsBoundary",
                "iam:PutRolePolicy",
                "iam:UpdateRole",
                "sts:GetCallerIdentity",
            ]
        return [
            "eks:DescribeCluster",
            "iam:CreateOpenIDConnectProvider",
            "iam:DeleteOpenIDConnectProvider",
        ]


def default_code() -> pulumi.Archive:
    return pulumi.AssetArchive({"irsa": pulumi.FileArchive(str(irsa.paths.package_root()))})


class CustomResourceHandler(pulumi.ComponentResource):
    """
    The Lambda function behind one kind of custom resource. Declare one per
    kind and pass it to every ServiceAccountRole / OIDCIdentityProvider that
    should use it.

    `layers` must supply `requests`; only the irsa package itself is shipped
    as the function code.
    """

    name: str
    kind: HandlerKind
    tags: dict[str, str]

    role: aws.iam.Role
    function: aws.lambda_.Function

    def __init__(
        self,
        name: str,
        kind: HandlerKind,
        code: pulumi.Archive | None = None,
        layers: list[str] | None = None,
        runtime: str = DEFAULT_RUNTIME,
        log_level: str = "INFO",
        permissions_boundary: str | None = None,
        tags: dict[str, str] | None = None,
        *args,
        **kwargs,
    ):
        super().__init__(
            f"irsa:{self.__class__.__name__}",
            name,
            *args,
            **kwargs,
        )

        self.name = name
        self.kind = kind
        self.code = code or default_code()
        # requests is not part of the Lambda Python runtime; ship it in a layer
        self.layers = layers or []
        if not self.layers:
            pulumi.log.warn(
                f"{name}: no layers given; the {kind} handler imports requests, which the Lambda "
                f"{runtime} runtime does not provide, so supply a layer carrying it",
                resource=self,
            )
        self.runtime = runtime
        self.log_level = log_level
        self.permissions_boundary = permissions_boundary
        self.tags = tags or {}

        self._define_iam()
        self._define_function()

        self.register_outputs({"function_arn": self.function.arn})

    @property
    def service_token(self) -> pulumi.Output[str]:
        return self.function.arn

    def _define_iam(self) -> None:
        assume_role_policy = aws.iam.get_policy_document(
            statements=[
                aws.iam.GetPolicyDocumentStatementArgs(
                    actions=["sts:AssumeRole"],
                    principals=[
                        aws.iam.GetPolicyDocumentStatementPrincipalArgs(
                            type="Service",
                            identifiers=["lambda.amazonaws.com"],
                        )
                    ],
                )
            ]
        )

        self.role = aws.iam.Role(
            f"{self.name}-role",
            assume_role_policy=assume_role_policy.json,
            permissions_boundary=self.permissions_boundary,
            tags=self.tags,
            opts=pulumi.ResourceOptions(parent=self),
        )

        aws.iam.RolePolicy(
            f"{self.name}-{self.kind}",
            role=self.role.id,
            policy=json.dumps(
                {
                    "Version": "2012-10-17",
                    "Statement": [
                        {
                            "Effect": "Allow",
                            "Action": self.kind.actions,
                            "Resource": "*",
                        }
                    ],
                }
            ),
            opts=pulumi.ResourceOptions(parent=self.role),
        )

        aws.iam.RolePolicyAttachment(
            f"{self.name}-basic-execution",
            role=self.role.name,
            policy_arn=LAMBDA_BASIC_EXECUTION_POLICY,
            opts=pulumi.ResourceOptions(parent=self.role),
        )

    def _define_function(self) -> None:
        self.function = aws.lambda_.Function(
            f"{self.name}-function",
            aws.lambda_.FunctionArgs(
                code=self.code,
                handler=self.kind.entrypoint,
                runtime=self.runtime,
                role=self.role.arn,
                timeout=HANDLER_TIMEOUT_SECONDS,
                layers=self.layers,
                environment=aws.lambda_.FunctionEnvironmentArgs(
                    variables={"IRSA_LOG_LEVEL": self.log_level},
                ),
                tags=self.tags,
            ),
            opts=pulumi.ResourceOptions(parent=self),
        )
