from __future__ import annotations

import dataclasses
import functools
import logging
import typing

import boto3

import irsa
import irsa.settings

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class AWSSessionConfig:
    region: str | None = None
    profile: str | None = None

    @classmethod
    def from_settings(cls, settings: irsa.settings.Settings) -> AWSSessionConfig:
        return cls(region=settings.region, profile=settings.profile)


class AWSClients:
    """
    The boto3 clients a controller talks to. Built once per process and handed
    to each controller; the clients themselves are created on first use and
    reused by every later invocation in the same process.
    """

    cfg: AWSSessionConfig

    def __init__(self, cfg: AWSSessionConfig | None = None, session: boto3.Session | None = None):
        self.cfg = cfg or AWSSessionConfig()
        self._session = session

    @functools.cached_property
    def session(self) -> boto3.Session:
        if self._session is not None:
            return self._session

        return boto3.Session(region_name=self.cfg.region, profile_name=self.cfg.profile)

    @functools.cached_property
    def iam(self) -> typing.Any:
        return self.session.client("iam")

    @functools.cached_property
    def sts(self) -> typing.Any:
        return self.session.client("sts")

    @functools.cached_property
    def eks(self) -> typing.Any:
        return self.session.client("eks")

    def caller_identity(self) -> irsa.AWSCallerIdentity:
        return typing.cast(irsa.AWSCallerIdentity, self.sts.get_caller_identity())

    def cluster_oidc_issuer_url(self, cluster_name: str) -> str:
        issuer_url = irsa.get_oidc_url(self.eks.describe_cluster(name=cluster_name))
        if not issuer_url:
            msg = f"cluster {cluster_name} has no OIDC issuer"
            raise RuntimeError(msg)

        return issuer_url


class RoleExistencePoller(typing.Protocol):
    def wait(self, role_name: str) -> None: ...


class IAMRoleExistsPoller:
    """Blocks until IAM reports the role, using the `role_exists` waiter."""

    def __init__(self, clients: AWSClients, delay: int, max_attempts: int):
        self.clients = clients
        self.delay = delay
        self.max_attempts = max_attempts

    @classmethod
    def from_settings(cls, clients: AWSClients, settings: irsa.settings.Settings) -> IAMRoleExistsPoller:
        return cls(clients, delay=settings.role_waiter_delay, max_attempts=settings.role_waiter_max_attempts)

    def wait(self, role_name: str) -> None:
        logger.debug(f"polling for role {role_name} every {self.delay}s, {self.max_attempts} attempts")
        self.clients.iam.get_waiter("role_exists").wait(
            RoleName=role_name,
            WaiterConfig={"Delay": self.delay, "MaxAttempts": self.max_attempts},
        )
