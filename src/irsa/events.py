from __future__ import annotations

import dataclasses
import typing

import irsa
import irsa.junkdrawer


class InvalidPropertiesError(ValueError):
    pass


def _properties(event: typing.Any, key: str) -> dict[str, typing.Any]:
    props = event.get(key) or {}
    if not isinstance(props, dict):
        msg = f"{key} must be a mapping, got {type(props).__name__}"
        raise InvalidPropertiesError(msg)

    return dict(props)


@dataclasses.dataclass(frozen=True)
class LifecycleEvent:
    """One CloudFormation custom resource request, as delivered to the handler."""

    request_type: str | None = None
    request_id: str | None = None
    logical_resource_id: str | None = None
    stack_id: str | None = None
    physical_resource_id: str | None = None
    response_url: str | None = None
    resource_type: str | None = None
    resource_properties: dict[str, typing.Any] = dataclasses.field(default_factory=dict)
    old_resource_properties: dict[str, typing.Any] = dataclasses.field(default_factory=dict)

    @classmethod
    def from_dict(cls, event: irsa.CfnEvent | dict[str, typing.Any] | None) -> LifecycleEvent:
        event = event or {}
        if not isinstance(event, dict):
            msg = f"event must be a mapping, got {type(event).__name__}"
            raise InvalidPropertiesError(msg)

        return cls(
            request_type=event.get("RequestType"),
            request_id=event.get("RequestId"),
            logical_resource_id=event.get("LogicalResourceId"),
            stack_id=event.get("StackId"),
            physical_resource_id=event.get("PhysicalResourceId"),
            response_url=event.get("ResponseURL"),
            resource_type=event.get("ResourceType"),
            resource_properties=_properties(event, "ResourceProperties"),
            old_resource_properties=_properties(event, "OldResourceProperties"),
        )

    @classmethod
    def envelope(cls, event: typing.Any) -> LifecycleEvent:
        """The routing fields of an event, kept even when the rest of it is malformed."""
        if not isinstance(event, dict):
            return cls()

        fields = {
            attr: event.get(key)
            for attr, key in (
                ("request_type", "RequestType"),
                ("request_id", "RequestId"),
                ("logical_resource_id", "LogicalResourceId"),
                ("stack_id", "StackId"),
                ("physical_resource_id", "PhysicalResourceId"),
                ("response_url", "ResponseURL"),
                ("resource_type", "ResourceType"),
            )
        }
        return cls(**{attr: value for attr, value in fields.items() if isinstance(value, str)})

    @property
    def request_type_label(self) -> str:
        return "undefined" if self.request_type is None else str(self.request_type)

    def classify(self) -> irsa.RequestType | None:
        try:
            return irsa.RequestType(self.request_type)
        except ValueError:
            return None


@dataclasses.dataclass(frozen=True)
class InlinePolicy:
    name: str
    document: str


def _optional_str(props: dict[str, typing.Any], key: str) -> str | None:
    value = props.get(key)
    if value is None or value == "":
        return None

    return str(value)


def _required_str(props: dict[str, typing.Any], key: str) -> str:
    value = _optional_str(props, key)
    if value is None:
        msg = f"missing required property {key}"
        raise InvalidPropertiesError(msg)

    return value


def _optional_int(props: dict[str, typing.Any], key: str) -> int | None:
    value = props.get(key)
    if value is None or value == "":
        return None

    # CloudFormation hands every scalar property over as a string
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        msg = f"property {key} must be an integer, got {value!r}"
        raise InvalidPropertiesError(msg) from e


def _inline_policies(props: dict[str, typing.Any]) -> tuple[InlinePolicy, ...]:
    policies = []
    for policy in props.get("Policies") or []:
        if "PolicyName" not in policy or "PolicyDocument" not in policy:
            msg = f"inline policy must have a PolicyName and a PolicyDocument: {policy!r}"
            raise InvalidPropertiesError(msg)

        policies.append(
            InlinePolicy(
                name=str(policy["PolicyName"]),
                document=irsa.junkdrawer.json_document(policy["PolicyDocument"]),
            )
        )

    return tuple(policies)


@dataclasses.dataclass(frozen=True)
class RoleProperties:
    cluster_name: str | None = None
    service_account: str | None = None
    namespace: str = irsa.DEFAULT_NAMESPACE
    role_name: str | None = None
    description: str | None = None
    max_session_duration: int | None = None
    path: str | None = None
    permissions_boundary: str | None = None
    policies: tuple[InlinePolicy, ...] = ()
    managed_policy_arns: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, props: irsa.CfnRoleProperties | dict[str, typing.Any] | None) -> RoleProperties:
        props = typing.cast(dict[str, typing.Any], props or {})
        return cls(
            cluster_name=_optional_str(props, "ClusterName"),
            service_account=_optional_str(props, "ServiceAccount"),
            namespace=_optional_str(props, "Namespace") or irsa.DEFAULT_NAMESPACE,
            role_name=_optional_str(props, "RoleName"),
            description=_optional_str(props, "Description"),
            max_session_duration=_optional_int(props, "MaxSessionDuration"),
            path=_optional_str(props, "Path"),
            permissions_boundary=_optional_str(props, "PermissionsBoundary"),
            policies=_inline_policies(props),
            managed_policy_arns=irsa.junkdrawer.unique(str(arn) for arn in props.get("ManagedPolicyArns") or []),
        )

    @property
    def required_cluster_name(self) -> str:
        return _required_str({"ClusterName": self.cluster_name}, "ClusterName")

    @property
    def required_service_account(self) -> str:
        return _required_str({"ServiceAccount": self.service_account}, "ServiceAccount")

    @property
    def policy_names(self) -> set[str]:
        return {p.name for p in self.policies}

    def identity(self) -> tuple[str | None, str, str | None]:
        """The fields baked into the trust policy at creation time."""
        return self.cluster_name, self.namespace, self.service_account


@dataclasses.dataclass(frozen=True)
class ProviderProperties:
    cluster_name: str

    @classmethod
    def from_dict(cls, props: irsa.CfnProviderProperties | dict[str, typing.Any] | None) -> ProviderProperties:
        return cls(cluster_name=_required_str(typing.cast(dict[str, typing.Any], props or {}), "ClusterName"))
