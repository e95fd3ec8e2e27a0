from __future__ import annotations

import typing

import irsa


class AwsPolicyDocumentCondition(typing.TypedDict):
    StringEquals: dict[str, str]


class AwsPolicyDocumentStatementPrincipal(typing.TypedDict):
    Federated: str


class AwsPolicyDocumentStatement(typing.TypedDict):
    Effect: str
    Principal: AwsPolicyDocumentStatementPrincipal
    Action: str
    Condition: AwsPolicyDocumentCondition


class AssumeRolePolicyDocument(typing.TypedDict):
    Version: str
    Statement: list[AwsPolicyDocumentStatement]


def clean_issuer(url: str) -> str:
    """Strip the http(s) scheme from an OIDC issuer URL, leaving the host and path."""
    return irsa.ISSUER_SCHEME_REGEX.sub("", url)


def oidc_provider_arn(account_id: str, issuer_host: str, partition: str = irsa.DEFAULT_PARTITION) -> str:
    return f"arn:{partition}:iam::{account_id}:oidc-provider/{issuer_host}"


def service_account_subject(namespace: str, service_account: str) -> str:
    return f"system:serviceaccount:{namespace}:{service_account}"


def build_irsa_role_assume_role_policy(
    account_id: str,
    issuer_host: str,
    namespace: str,
    service_account: str,
    partition: str = irsa.DEFAULT_PARTITION,
) -> AssumeRolePolicyDocument:
    """
    :param account_id: the account that owns the cluster's OIDC identity provider
    :param issuer_host: the cluster's OIDC issuer URL without its scheme
    :param namespace: the Kubernetes namespace of the service account
    :param service_account: the Kubernetes service account allowed to assume the role
    :param partition: the AWS partition, eg: aws or aws-cn
    :return: a trust policy allowing only that service account to assume the role
    """
    return {
        "Version": "2012-10-17",
        "Statement": [
            {
                "Effect": "Allow",
                "Principal": {
                    "Federated": oidc_provider_arn(account_id, issuer_host, partition),
                },
                "Action": irsa.WEB_IDENTITY_ACTION,
                "Condition": {
                    "StringEquals": {
                        f"{issuer_host}:sub": service_account_subject(namespace, service_account),
                        f"{issuer_host}:aud": irsa.STS_AUDIENCE,
                    }
                },
            }
        ],
    }


def validate_max_session_duration(duration: int | None) -> None:
    if duration is None:
        return

    if duration < irsa.MAX_SESSION_DURATION_MIN or duration > irsa.MAX_SESSION_DURATION_MAX:
        msg = (
            f"maxSessionDuration is set to {duration}, but must be >= "
            f"{irsa.MAX_SESSION_DURATION_MIN}sec (1hr) and <= {irsa.MAX_SESSION_DURATION_MAX}sec (12hrs)"
        )
        raise ValueError(msg)


def validate_description(description: str | None) -> str | None:
    """Return the description to send, or None when it is empty. Raises ValueError when too long."""
    if not description:
        return None

    if len(description) > irsa.MAX_DESCRIPTION_LEN:
        msg = f"Role description must be no longer than {irsa.MAX_DESCRIPTION_LEN} characters."
        raise ValueError(msg)

    return description
