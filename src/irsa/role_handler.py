from __future__ import annotations

import json
import logging
import typing

from botocore.exceptions import ClientError

import irsa
import irsa.aws_iam
import irsa.aws_session
import irsa.cfn_response
import irsa.custom_resource
import irsa.events
import irsa.junkdrawer

logger = logging.getLogger(__name__)


def is_not_found(e: ClientError) -> bool:
    return e.response.get("Error", {}).get("Code", "") in set(irsa.NotFoundErrorCodes)


def role_data(role: dict[str, typing.Any]) -> dict[str, str]:
    return {"Arn": role["Arn"], "RoleId": role["RoleId"]}


class RoleController(irsa.custom_resource.CustomResourceController):
    """
    Lifecycle of `Custom::IamRoleForServiceAccount`: an IAM role that only the
    given Kubernetes service account of an EKS cluster may assume, through the
    cluster's OIDC issuer. The physical resource id is the role name.
    """

    clients: irsa.aws_session.AWSClients
    poller: irsa.aws_session.RoleExistencePoller
    name_generator: typing.Callable[[str], str]

    def __init__(
        self,
        clients: irsa.aws_session.AWSClients,
        reporter: irsa.cfn_response.ResponseReporter,
        poller: irsa.aws_session.RoleExistencePoller,
        name_generator: typing.Callable[[str], str] = irsa.junkdrawer.generate_role_name,
    ):
        super().__init__(reporter)
        self.clients = clients
        self.poller = poller
        self.name_generator = name_generator

    @property
    def iam(self) -> typing.Any:
        return self.clients.iam

    def assume_role_policy(self, props: irsa.events.RoleProperties) -> str:
        identity = self.clients.caller_identity()
        issuer_host = irsa.aws_iam.clean_issuer(self.clients.cluster_oidc_issuer_url(props.required_cluster_name))

        return json.dumps(
            irsa.aws_iam.build_irsa_role_assume_role_policy(
                account_id=identity["Account"],
                issuer_host=issuer_host,
                namespace=props.namespace,
                service_account=props.required_service_account,
                partition=irsa.partition_from_arn(identity.get("Arn")),
            )
        )

    def create(
        self,
        event: irsa.events.LifecycleEvent,
        state: irsa.custom_resource.RequestState,
    ) -> irsa.custom_resource.Outcome:
        props = irsa.events.RoleProperties.from_dict(event.resource_properties)
        role_name = props.role_name or self.name_generator(event.logical_resource_id or "")

        create_args: dict[str, typing.Any] = {
            "RoleName": role_name,
            "AssumeRolePolicyDocument": self.assume_role_policy(props),
        }
        for key, value in (
            ("Description", props.description),
            ("MaxSessionDuration", props.max_session_duration),
            ("Path", props.path),
            ("PermissionsBoundary", props.permissions_boundary),
        ):
            if value is not None:
                create_args[key] = value

        logger.info(f"Creating role {role_name}...")
        role = self.iam.create_role(**create_args)["Role"]
        state.physical_resource_id = role["RoleName"]

        logger.info("Waiting for IAM role creation to finalize...")
        self.poller.wait(role["RoleName"])

        logger.info("Attaching role policies...")
        for policy in props.policies:
            self.iam.put_role_policy(
                RoleName=role["RoleName"],
                PolicyName=policy.name,
                PolicyDocument=policy.document,
            )
        for arn in props.managed_policy_arns:
            self.iam.attach_role_policy(RoleName=role["RoleName"], PolicyArn=arn)

        return irsa.custom_resource.Outcome(physical_resource_id=role["RoleName"], data=role_data(role))

    def update(
        self,
        event: irsa.events.LifecycleEvent,
        state: irsa.custom_resource.RequestState,
    ) -> irsa.custom_resource.Outcome:
        role_name = event.physical_resource_id
        if not role_name:
            msg = "Update request is missing the PhysicalResourceId"
            raise irsa.events.InvalidPropertiesError(msg)

        props = irsa.events.RoleProperties.from_dict(event.resource_properties)
        old_props = irsa.events.RoleProperties.from_dict(event.old_resource_properties)

        if props.identity() != old_props.identity():
            logger.warning(
                f"Role {role_name}: ClusterName, Namespace and ServiceAccount are fixed when the role "
                "is created; the trust policy is left unchanged"
            )

        logger.info(f"Updating role {role_name}...")
        for name in sorted(old_props.policy_names - props.policy_names):
            logger.info(f"Deleting inline policy {name} from role {role_name}...")
            self.iam.delete_role_policy(RoleName=role_name, PolicyName=name)
        for arn in old_props.managed_policy_arns:
            if arn not in props.managed_policy_arns:
                logger.info(f"Detaching managed policy {arn} from role {role_name}...")
                self.iam.detach_role_policy(RoleName=role_name, PolicyArn=arn)

        for policy in props.policies:
            self.iam.put_role_policy(RoleName=role_name, PolicyName=policy.name, PolicyDocument=policy.document)
        for arn in props.managed_policy_arns:
            self.iam.attach_role_policy(RoleName=role_name, PolicyArn=arn)

        # unset values go back to the IAM defaults
        self.iam.update_role(
            RoleName=role_name,
            Description=props.description or "",
            MaxSessionDuration=props.max_session_duration or irsa.MAX_SESSION_DURATION_MIN,
        )

        if props.permissions_boundary != old_props.permissions_boundary:
            if props.permissions_boundary is None:
                self.iam.delete_role_permissions_boundary(RoleName=role_name)
            else:
                self.iam.put_role_permissions_boundary(
                    RoleName=role_name,
                    PermissionsBoundary=props.permissions_boundary,
                )

        role = self.iam.get_role(RoleName=role_name)["Role"]
        return irsa.custom_resource.Outcome(physical_resource_id=role_name, data=role_data(role))

    def delete(
        self,
        event: irsa.events.LifecycleEvent,
        state: irsa.custom_resource.RequestState,
    ) -> irsa.custom_resource.Outcome:
        role_name = event.physical_resource_id
        if not role_name:
            # nothing was ever created under this request
            return irsa.custom_resource.Outcome(physical_resource_id=None)
        if not irsa.ROLE_NAME_REGEX.match(role_name):
            # a create that failed before naming the role reported a placeholder id
            logger.info(f"{role_name} is not a role name, nothing to delete")
            return irsa.custom_resource.Outcome(physical_resource_id=role_name)

        # NOTE: only the policies named in the event are removed; anything
        # attached to the role outside of this resource makes delete_role fail.
        props = irsa.events.RoleProperties.from_dict(event.resource_properties)

        for arn in props.managed_policy_arns:
            logger.info(f"Detaching managed policy {arn} from role {role_name}...")
            self._ignore_not_found(self.iam.detach_role_policy, RoleName=role_name, PolicyArn=arn)
        for policy in props.policies:
            logger.info(f"Deleting inline policy {policy.name} from role {role_name}...")
            self._ignore_not_found(self.iam.delete_role_policy, RoleName=role_name, PolicyName=policy.name)

        logger.info(f"Deleting role {role_name}...")
        self._ignore_not_found(self.iam.delete_role, RoleName=role_name)

        return irsa.custom_resource.Outcome(physical_resource_id=role_name)

    @staticmethod
    def _ignore_not_found(call: typing.Callable[..., typing.Any], **kwargs: typing.Any) -> None:
        try:
            call(**kwargs)
        except ClientError as e:
            if not is_not_found(e):
                raise
            logger.info(f"{e.operation_name}: already gone, continuing")
