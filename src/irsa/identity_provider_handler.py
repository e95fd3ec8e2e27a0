from __future__ import annotations

import logging
import typing

from botocore.exceptions import BotoCoreError, ClientError

import irsa
import irsa.aws_session
import irsa.cfn_response
import irsa.custom_resource
import irsa.events

logger = logging.getLogger(__name__)


class ProviderController(irsa.custom_resource.CustomResourceController):
    """
    Lifecycle of `Custom::EksOidcIdentityProvider`: the IAM OIDC identity
    provider for an EKS cluster's issuer. The physical resource id is the
    provider ARN. Providers cannot change issuer, so every update is a
    replacement and yields a new ARN.
    """

    clients: irsa.aws_session.AWSClients

    def __init__(
        self,
        clients: irsa.aws_session.AWSClients,
        reporter: irsa.cfn_response.ResponseReporter,
    ):
        super().__init__(reporter)
        self.clients = clients

    @property
    def iam(self) -> typing.Any:
        return self.clients.iam

    def create_provider(self, props: irsa.events.ProviderProperties) -> str:
        # the provider is registered with the full issuer URL, scheme included
        issuer_url = self.clients.cluster_oidc_issuer_url(props.cluster_name)

        logger.info(f"Creating identity provider for {issuer_url}...")
        return self.iam.create_open_id_connect_provider(
            Url=issuer_url,
            ThumbprintList=[irsa.EKS_OIDC_CA_THUMBPRINT],
            ClientIDList=[irsa.STS_AUDIENCE],
        )["OpenIDConnectProviderArn"]

    def delete_provider(self, provider_arn: str | None) -> None:
        """Delete a provider. Errors are logged and dropped so stack teardown is never blocked."""
        if not provider_arn:
            return

        logger.info(f"Deleting provider {provider_arn}...")
        try:
            self.iam.delete_open_id_connect_provider(OpenIDConnectProviderArn=provider_arn)
        except (ClientError, BotoCoreError):
            logger.exception(f"Failed to delete provider {provider_arn}, continuing")

    def replace_provider(self, old_provider_arn: str | None, props: irsa.events.ProviderProperties) -> str:
        self.delete_provider(old_provider_arn)
        return self.create_provider(props)

    def create(
        self,
        event: irsa.events.LifecycleEvent,
        state: irsa.custom_resource.RequestState,
    ) -> irsa.custom_resource.Outcome:
        arn = self.create_provider(irsa.events.ProviderProperties.from_dict(event.resource_properties))
        return irsa.custom_resource.Outcome(physical_resource_id=arn, data={"Arn": arn})

    def update(
        self,
        event: irsa.events.LifecycleEvent,
        state: irsa.custom_resource.RequestState,
    ) -> irsa.custom_resource.Outcome:
        props = irsa.events.ProviderProperties.from_dict(event.resource_properties)
        arn = self.replace_provider(event.physical_resource_id, props)
        return irsa.custom_resource.Outcome(physical_resource_id=arn, data={"Arn": arn})

    def delete(
        self,
        event: irsa.events.LifecycleEvent,
        state: irsa.custom_resource.RequestState,
    ) -> irsa.custom_resource.Outcome:
        self.delete_provider(event.physical_resource_id)
        return irsa.custom_resource.Outcome(physical_resource_id=event.physical_resource_id)
