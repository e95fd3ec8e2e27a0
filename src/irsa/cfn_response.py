from __future__ import annotations

import dataclasses
import json
import logging
import typing

import requests

import irsa
import irsa.events
import irsa.settings

logger = logging.getLogger(__name__)


class ResponseDeliveryError(RuntimeError):
    pass


@dataclasses.dataclass
class TerminalResponse:
    status: irsa.Status
    physical_resource_id: str
    stack_id: str | None = None
    request_id: str | None = None
    logical_resource_id: str | None = None
    data: dict[str, typing.Any] | None = None
    reason: str | None = None

    @classmethod
    def for_event(
        cls,
        event: irsa.events.LifecycleEvent,
        context: irsa.LambdaContext,
        status: irsa.Status,
        physical_resource_id: str | None = None,
        data: dict[str, typing.Any] | None = None,
        reason: str | None = None,
    ) -> TerminalResponse:
        return cls(
            status=status,
            # CloudFormation rejects an empty physical id, so fall back to the log stream
            physical_resource_id=physical_resource_id or context.log_stream_name,
            stack_id=event.stack_id,
            request_id=event.request_id,
            logical_resource_id=event.logical_resource_id,
            data=data,
            reason=reason,
        )

    @property
    def succeeded(self) -> bool:
        return self.status == irsa.Status.SUCCESS

    def body(self) -> irsa.CfnResponseBody:
        body: irsa.CfnResponseBody = {"Status": str(self.status)}
        if self.reason is not None:
            body["Reason"] = self.reason

        body |= {
            "PhysicalResourceId": self.physical_resource_id,
            "StackId": self.stack_id,
            "RequestId": self.request_id,
            "LogicalResourceId": self.logical_resource_id,
            "Data": self.data,
        }
        return body


class ResponseDestination:
    """Chooses where a response goes: the event's own URL, else the configured default."""

    def __init__(self, default_url: str | None = None):
        self.default_url = default_url

    @classmethod
    def from_settings(cls, settings: irsa.settings.Settings) -> ResponseDestination:
        return cls(default_url=settings.default_response_url)

    def resolve(self, event: irsa.events.LifecycleEvent) -> str:
        url = event.response_url or self.default_url
        if not url:
            msg = "no response URL in the event and no default response URL configured"
            raise ResponseDeliveryError(msg)

        return url


class ResponseReporter:
    """
    Delivers a custom resource's terminal response to CloudFormation with a
    single HTTP PUT to the pre-signed response URL. Delivery is never retried.
    """

    def __init__(self, destination: ResponseDestination | None = None, timeout: float = 30.0):
        self.destination = destination or ResponseDestination()
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: irsa.settings.Settings) -> ResponseReporter:
        return cls(ResponseDestination.from_settings(settings), timeout=settings.response_timeout)

    def send(self, event: irsa.events.LifecycleEvent, response: TerminalResponse) -> None:
        """
        :raises ResponseDeliveryError: on a connection error or any non-2xx reply
        """
        url = self.destination.resolve(event)
        body = json.dumps(response.body()).encode("utf-8")

        logger.info(f"Uploading {response.status} response to CloudFormation...")
        try:
            resp = requests.put(
                url,
                data=body,
                headers={
                    # the pre-signed URL is signed without a content type
                    "Content-Type": "",
                    "Content-Length": str(len(body)),
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            msg = f"Failed to deliver response: {e}"
            raise ResponseDeliveryError(msg) from e

        if not 200 <= resp.status_code < 300:  # noqa: PLR2004
            msg = f"Server returned error {resp.status_code}: {resp.reason}"
            raise ResponseDeliveryError(msg)
