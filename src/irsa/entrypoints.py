"""
Lambda entry points. Everything at module level runs once, in the Lambda init
phase; each invocation then only runs `handle` on an already built controller.

    irsa.entrypoints.role_handler
    irsa.entrypoints.identity_provider_handler
"""

from __future__ import annotations

import logging
import typing

import irsa
import irsa.aws_session
import irsa.cfn_response
import irsa.identity_provider_handler
import irsa.role_handler
import irsa.settings


def configure_logging(settings: irsa.settings.Settings) -> None:
    # the Lambda runtime installs its own handler on the root logger
    logging.getLogger().setLevel(settings.log_level)
    logging.getLogger("irsa").setLevel(settings.log_level)
    for name in ("boto3", "botocore", "urllib3"):
        logging.getLogger(name).setLevel(max(settings.log_level, logging.WARNING))


def build_role_controller(
    settings: irsa.settings.Settings,
    clients: irsa.aws_session.AWSClients,
) -> irsa.role_handler.RoleController:
    return irsa.role_handler.RoleController(
        clients=clients,
        reporter=irsa.cfn_response.ResponseReporter.from_settings(settings),
        poller=irsa.aws_session.IAMRoleExistsPoller.from_settings(clients, settings),
    )


def build_provider_controller(
    settings: irsa.settings.Settings,
    clients: irsa.aws_session.AWSClients,
) -> irsa.identity_provider_handler.ProviderController:
    return irsa.identity_provider_handler.ProviderController(
        clients=clients,
        reporter=irsa.cfn_response.ResponseReporter.from_settings(settings),
    )


SETTINGS = irsa.settings.Settings()
configure_logging(SETTINGS)
CLIENTS = irsa.aws_session.AWSClients(irsa.aws_session.AWSSessionConfig.from_settings(SETTINGS))
ROLE_CONTROLLER = build_role_controller(SETTINGS, CLIENTS)
PROVIDER_CONTROLLER = build_provider_controller(SETTINGS, CLIENTS)


def role_handler(event: irsa.CfnEvent, context: typing.Any) -> None:
    ROLE_CONTROLLER.handle(event, context)


def identity_provider_handler(event: irsa.CfnEvent, context: typing.Any) -> None:
    PROVIDER_CONTROLLER.handle(event, context)
