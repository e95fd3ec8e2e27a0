from __future__ import annotations

import dataclasses
import logging
import typing
from abc import ABC, abstractmethod

import irsa
import irsa.cfn_response
import irsa.events

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class RequestState:
    """What is known about the managed resource so far in one request."""

    physical_resource_id: str | None = None


@dataclasses.dataclass
class Outcome:
    physical_resource_id: str | None
    data: dict[str, typing.Any] = dataclasses.field(default_factory=dict)


class UnsupportedRequestTypeError(ValueError):
    def __init__(self, request_type: str):
        super().__init__(f"Unsupported request type {request_type}")


class CustomResourceController(ABC):
    """
    Runs one CloudFormation lifecycle request against AWS and reports its
    outcome. Subclasses implement `create`, `update` and `delete`; this class
    owns dispatch and makes sure exactly one response goes back per call to
    `handle`, whatever happens in between.
    """

    reporter: irsa.cfn_response.ResponseReporter

    def __init__(self, reporter: irsa.cfn_response.ResponseReporter):
        self.reporter = reporter

    @abstractmethod
    def create(self, event: irsa.events.LifecycleEvent, state: RequestState) -> Outcome: ...

    @abstractmethod
    def update(self, event: irsa.events.LifecycleEvent, state: RequestState) -> Outcome: ...

    @abstractmethod
    def delete(self, event: irsa.events.LifecycleEvent, state: RequestState) -> Outcome: ...

    def dispatch(self, event: irsa.events.LifecycleEvent, state: RequestState) -> Outcome:
        match event.classify():
            case irsa.RequestType.CREATE:
                return self.create(event, state)
            case irsa.RequestType.UPDATE:
                return self.update(event, state)
            case irsa.RequestType.DELETE:
                return self.delete(event, state)
            case _:
                raise UnsupportedRequestTypeError(event.request_type_label)

    def handle(
        self,
        raw_event: irsa.CfnEvent | dict[str, typing.Any] | None,
        context: irsa.LambdaContext,
    ) -> irsa.cfn_response.TerminalResponse:
        # enough of the event to answer with, should the full parse fail
        event = irsa.events.LifecycleEvent.envelope(raw_event)
        state = RequestState(physical_resource_id=event.physical_resource_id)

        try:
            event = irsa.events.LifecycleEvent.from_dict(raw_event)
            outcome = self.dispatch(event, state)
        except Exception as e:
            logger.exception(f"Caught error {e}. Uploading FAILED message to CloudFormation.")
            response = irsa.cfn_response.TerminalResponse.for_event(
                event,
                context,
                irsa.Status.FAILED,
                physical_resource_id=state.physical_resource_id,
                reason=str(e),
            )
        else:
            response = irsa.cfn_response.TerminalResponse.for_event(
                event,
                context,
                irsa.Status.SUCCESS,
                physical_resource_id=outcome.physical_resource_id,
                data=outcome.data,
            )

        try:
            self.reporter.send(event, response)
        except irsa.cfn_response.ResponseDeliveryError:
            # the request has finished either way; nothing is left to tell CloudFormation
            logger.exception(f"Could not deliver {response.status} response for request {event.request_id}")

        return response
