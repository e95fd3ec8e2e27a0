from __future__ import annotations

import pulumi
import pulumi_aws as aws

import irsa.pulumi_resources.custom_resource_handler
import irsa.pulumi_resources.lib
from irsa.pulumi_resources import StrInput
from irsa.pulumi_resources.service_account_role import stack_output


class OIDCIdentityProvider(pulumi.ComponentResource):
    """
    The IAM OIDC identity provider of an EKS cluster, managed by the
    `Custom::EksOidcIdentityProvider` handler. Without a `handler` a dedicated
    one is declared, using `handler_layers` as its Lambda layers; one of them
    must provide `requests`.
    """

    name: str
    cluster_name: StrInput
    handler: irsa.pulumi_resources.custom_resource_handler.CustomResourceHandler

    stack: aws.cloudformation.Stack
    provider_arn: pulumi.Output[str]

    def __init__(
        self,
        name: str,
        cluster_name: StrInput,
        handler: irsa.pulumi_resources.custom_resource_handler.CustomResourceHandler | None = None,
        handler_layers: list[str] | None = None,
        *args,
        **kwargs,
    ):
        if (
            handler is not None
            and handler.kind != irsa.pulumi_resources.custom_resource_handler.HandlerKind.IDENTITY_PROVIDER
        ):
            msg = f"{name}: handler {handler.name} handles {handler.kind}, not identity-provider"
            raise ValueError(msg)

        super().__init__(
            f"irsa:{self.__class__.__name__}",
            name,
            *args,
            **kwargs,
        )

        self.name = name
        self.cluster_name = cluster_name

        if handler is None:
            handler = irsa.pulumi_resources.custom_resource_handler.CustomResourceHandler(
                f"{name}-handler",
                irsa.pulumi_resources.custom_resource_handler.HandlerKind.IDENTITY_PROVIDER,
                layers=handler_layers,
                opts=pulumi.ResourceOptions(parent=self),
            )
        self.handler = handler

        self.stack = aws.cloudformation.Stack(
            f"{self.name}-stack",
            template_body=pulumi.Output.json_dumps(
                irsa.pulumi_resources.lib.build_identity_provider_template(self.handler.service_token, cluster_name)
            ),
            opts=pulumi.ResourceOptions(parent=self, depends_on=[self.handler]),
        )
        self.provider_arn = stack_output(self.stack, "Arn")

        self.register_outputs({"provider_arn": self.provider_arn})
