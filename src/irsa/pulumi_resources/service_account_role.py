from __future__ import annotations

import typing

import pulumi
import pulumi_aws as aws

import irsa
import irsa.pulumi_resources.custom_resource_handler
import irsa.pulumi_resources.lib
from irsa.pulumi_resources import StrInput


def stack_output(stack: aws.cloudformation.Stack, key: str) -> pulumi.Output[str]:
    return stack.outputs.apply(lambda outputs: (outputs or {}).get(key))


class ServiceAccountRole(pulumi.ComponentResource):
    """
    An IAM role that the given Kubernetes service account may assume (IRSA),
    managed by the `Custom::IamRoleForServiceAccount` handler. The role's
    ARN, id and name are available as outputs right after declaration.

    Without a `handler` a dedicated one is declared, using `handler_layers`
    as its Lambda layers; one of them must provide `requests`.
    """

    name: str
    handler: irsa.pulumi_resources.custom_resource_handler.CustomResourceHandler
    properties: irsa.CfnRoleProperties

    stack: aws.cloudformation.Stack
    role_arn: pulumi.Output[str]
    role_id: pulumi.Output[str]
    role_name: pulumi.Output[str]

    def __init__(
        self,
        name: str,
        cluster_name: StrInput,
        service_account: StrInput,
        namespace: StrInput = irsa.DEFAULT_NAMESPACE,
        inline_policies: dict[str, typing.Any] | None = None,
        managed_policy_arns: list[StrInput] | None = None,
        path: StrInput | None = None,
        permissions_boundary: StrInput | None = None,
        role_name: StrInput | None = None,
        max_session_duration: int | None = None,
        description: str | None = None,
        handler: irsa.pulumi_resources.custom_resource_handler.CustomResourceHandler | None = None,
        handler_layers: list[str] | None = None,
        *args,
        **kwargs,
    ):
        # validated before anything is registered with the engine
        properties = irsa.pulumi_resources.lib.build_role_properties(
            cluster_name=cluster_name,
            service_account=service_account,
            namespace=namespace,
            inline_policies=inline_policies,
            managed_policy_arns=managed_policy_arns,
            path=path,
            permissions_boundary=permissions_boundary,
            role_name=role_name,
            max_session_duration=max_session_duration,
            description=description,
        )
        if handler is not None and handler.kind != irsa.pulumi_resources.custom_resource_handler.HandlerKind.ROLE:
            msg = f"{name}: handler {handler.name} handles {handler.kind}, not role"
            raise ValueError(msg)

        super().__init__(
            f"irsa:{self.__class__.__name__}",
            name,
            *args,
            **kwargs,
        )

        self.name = name
        self.properties = properties

        if handler is None:
            pulumi.log.debug(f"No handler passed to {name}, declaring a dedicated one", resource=self)
            handler = irsa.pulumi_resources.custom_resource_handler.CustomResourceHandler(
                f"{name}-handler",
                irsa.pulumi_resources.custom_resource_handler.HandlerKind.ROLE,
                layers=handler_layers,
                opts=pulumi.ResourceOptions(parent=self),
            )
        self.handler = handler

        self._define_stack()

        self.register_outputs(
            {
                "role_arn": self.role_arn,
                "role_id": self.role_id,
                "role_name": self.role_name,
            }
        )

    def _define_stack(self) -> None:
        template = irsa.pulumi_resources.lib.build_role_template(self.handler.service_token, self.properties)

        self.stack = aws.cloudformation.Stack(
            f"{self.name}-stack",
            template_body=pulumi.Output.json_dumps(template),
            opts=pulumi.ResourceOptions(parent=self, depends_on=[self.handler]),
        )

        self.role_arn = stack_output(self.stack, "Arn")
        self.role_id = stack_output(self.stack, "RoleId")
        self.role_name = stack_output(self.stack, "RoleName")
