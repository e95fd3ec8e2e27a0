"""Shared pytest fixtures for irsa tests.

This module provides common fixtures used across test files:
- lambda_context: Minimal stand-in for the Lambda context object
- aws_clients: AWSClients whose iam/sts/eks clients are MagicMocks with sensible replies
- reporter: ResponseReporter that records responses instead of PUTting them
- poller: Role existence poller that records the roles it was asked about
- pulumi_mocks: Pulumi mock class for facade tests
"""

import types
import typing
from unittest.mock import MagicMock

import pulumi
import pytest

import irsa.aws_session
import irsa.cfn_response
import irsa.events

TEST_ACCOUNT_ID = "123456789012"
TEST_CLUSTER_NAME = "testCluster"
TEST_ISSUER_URL = "https://oidc.eks.us-east-1.amazonaws.com/id/EBAABEEF"
TEST_LOG_STREAM = "2026/10/18/[$LATEST]0123456789abcdef"
TEST_RESPONSE_URL = "https://iam-response-mock.example.com/"


# ============================================================================
# Lambda Fixtures
# ============================================================================


@pytest.fixture
def lambda_context() -> types.SimpleNamespace:
    """A Lambda context carrying only the attribute the handlers read."""
    return types.SimpleNamespace(log_stream_name=TEST_LOG_STREAM)


class RecordingReporter(irsa.cfn_response.ResponseReporter):
    """Keeps every response it is asked to send. Set `fail` to simulate a delivery error."""

    def __init__(self, fail: bool = False):
        super().__init__(irsa.cfn_response.ResponseDestination(default_url=TEST_RESPONSE_URL))
        self.fail = fail
        self.sent: list[tuple[irsa.events.LifecycleEvent, irsa.cfn_response.TerminalResponse]] = []

    @property
    def responses(self) -> list[irsa.cfn_response.TerminalResponse]:
        return [response for _, response in self.sent]

    def send(self, event: irsa.events.LifecycleEvent, response: irsa.cfn_response.TerminalResponse) -> None:
        self.sent.append((event, response))
        if self.fail:
            msg = "Server returned error 403: Forbidden"
            raise irsa.cfn_response.ResponseDeliveryError(msg)


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()


class RecordingPoller:
    def __init__(self):
        self.waited: list[str] = []

    def wait(self, role_name: str) -> None:
        self.waited.append(role_name)


@pytest.fixture
def poller() -> RecordingPoller:
    return RecordingPoller()


# ============================================================================
# AWS Client Fixtures
# ============================================================================


def _role(role_name: str) -> dict[str, str]:
    return {
        "RoleName": role_name,
        "Arn": f"arn:aws:iam::{TEST_ACCOUNT_ID}:role/{role_name}",
        "RoleId": "AROAJQABLZS4A3QDU576Q",
    }


def _provider_arn(url: str) -> str:
    return f"arn:aws:iam::{TEST_ACCOUNT_ID}:oidc-provider/{url.removeprefix('https://')}"


@pytest.fixture
def aws_clients() -> irsa.aws_session.AWSClients:
    """AWSClients backed by MagicMocks.

    Replies:
    - sts.get_caller_identity: account TEST_ACCOUNT_ID in the aws partition
    - eks.describe_cluster: issuer TEST_ISSUER_URL for any cluster
    - iam.create_role / iam.get_role: a role echoing the requested name
    - iam.create_open_id_connect_provider: an ARN built from the requested URL

    Override any of them per test with `return_value` / `side_effect`.
    """
    clients = irsa.aws_session.AWSClients()

    sts = MagicMock()
    sts.get_caller_identity.return_value = {
        "UserId": "AIDAEXAMPLE",
        "Account": TEST_ACCOUNT_ID,
        "Arn": f"arn:aws:sts::{TEST_ACCOUNT_ID}:assumed-role/handler/irsa",
    }

    eks = MagicMock()
    eks.describe_cluster.return_value = {"cluster": {"identity": {"oidc": {"issuer": TEST_ISSUER_URL}}}}

    iam = MagicMock()
    iam.create_role.side_effect = lambda **kwargs: {"Role": _role(kwargs["RoleName"])}
    iam.get_role.side_effect = lambda **kwargs: {"Role": _role(kwargs["RoleName"])}
    iam.create_open_id_connect_provider.side_effect = lambda **kwargs: {
        "OpenIDConnectProviderArn": _provider_arn(kwargs["Url"])
    }

    # cached_property slots can simply be assigned
    clients.sts = sts
    clients.eks = eks
    clients.iam = iam

    return clients


# ============================================================================
# Pulumi Mock Fixtures
# ============================================================================


class StandardPulumiMocks(pulumi.runtime.Mocks):
    """Pulumi mocks for the facade.

    Returns resource names as IDs and echoes inputs as outputs, plus an `arn`
    for Lambda functions and the outputs a CloudFormation stack of one of our
    custom resources would produce.
    """

    def new_resource(self, args: pulumi.runtime.MockResourceArgs) -> tuple[str | None, dict[typing.Any, typing.Any]]:
        outputs = dict(args.inputs)

        if args.typ == "aws:lambda/function:Function":
            outputs["arn"] = f"arn:aws:lambda:us-east-1:{TEST_ACCOUNT_ID}:function:{args.name}"
        elif args.typ == "aws:iam/role:Role":
            outputs["arn"] = f"arn:aws:iam::{TEST_ACCOUNT_ID}:role/{args.name}"
        elif args.typ == "aws:cloudformation/stack:Stack":
            outputs["outputs"] = {
                "Arn": f"arn:aws:iam::{TEST_ACCOUNT_ID}:role/{args.name}",
                "RoleId": "AROAJQABLZS4A3QDU576Q",
                "RoleName": args.name,
            }

        return args.name, outputs

    def call(
        self, args: pulumi.runtime.MockCallArgs
    ) -> dict[typing.Any, typing.Any] | tuple[dict[typing.Any, typing.Any], list[tuple[str, str]] | None]:
        """Mock function calls - returns empty dict."""
        return {}


@pytest.fixture
def pulumi_mocks() -> type[pulumi.runtime.Mocks]:
    """Returns the standard Pulumi mocks class.

    Usage:
        @pulumi.runtime.test
        def test_my_resource(pulumi_mocks):
            pulumi.runtime.set_mocks(pulumi_mocks(), preview=False)
    """
    return StandardPulumiMocks
