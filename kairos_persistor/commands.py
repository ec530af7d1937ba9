"""Command routing and the KairosDB handlers behind each action."""

from __future__ import annotations

import logging
from typing import Any, ClassVar, Dict, Mapping, Optional

from .adapters.kairos import KairosUnavailableError
from .core import Command, CommandHandler, CommandResult, KairosTransport
from .validation import validate_data_points, validate_data_points_batch

LOGGER = logging.getLogger(__name__)

BASE_PATH = "/api/v1/"
ADD_DATAPOINTS_PATH = BASE_PATH + "datapoints"
DELETE_DATAPOINTS_PATH = BASE_PATH + "datapoints/delete"
QUERY_DATAPOINTS_PATH = BASE_PATH + "datapoints/query"
QUERY_DATAPOINTS_TAGS_PATH = BASE_PATH + "datapoints/query/tags"
DELETE_METRIC_PATH = BASE_PATH + "metric/{name}"
VERSION_PATH = BASE_PATH + "version"
METRIC_NAMES_PATH = BASE_PATH + "metricnames"
TAG_NAMES_PATH = BASE_PATH + "tagnames"
TAG_VALUES_PATH = BASE_PATH + "tagvalues"


class CommandError(RuntimeError):
    """Base class for failures reported back to the command sender."""


class MissingAction(CommandError):
    def __init__(self) -> None:
        super().__init__("action must be specified")


class UnsupportedAction(CommandError):
    def __init__(self, action: str) -> None:
        super().__init__(f"unsupported action specified: {action}")
        self.action = action


class MissingRequiredField(CommandError):
    """Raised when the action-specific payload field is absent."""


class ValidationFailure(CommandError):
    """Raised when a payload is present but has the wrong shape."""


class BackendError(CommandError):
    """Raised when KairosDB answers with an unexpected status or body."""

    def __init__(self, message: str, *, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class BackendUnreachable(BackendError):
    """Raised when the request never produced a response."""


class KairosCommandHandler:
    """Forwards one action to KairosDB and classifies the response.

    Subclasses declare the HTTP method, the expected success status, whether
    the response body is returned, and the activity used in error messages,
    e.g. ``"querying metrics"``. They override :meth:`prepare` when the action
    needs a payload field or a computed path.
    """

    action: ClassVar[str]
    method: ClassVar[str]
    path: ClassVar[str]
    activity: ClassVar[str]
    success_status: ClassVar[int] = 200
    returns_body: ClassVar[bool] = True

    def __init__(self, client: KairosTransport) -> None:
        self._client = client

    async def handle(self, command: Command) -> CommandResult:
        try:
            return await self.execute(command)
        except BackendError as exc:
            LOGGER.error("%s", exc)
            return CommandResult.error(str(exc))
        except CommandError as exc:
            LOGGER.warning("Rejected %s command: %s", self.action, exc)
            return CommandResult.error(str(exc))

    async def execute(self, command: Command) -> CommandResult:
        """Run the request and raise a :class:`CommandError` on failure."""

        path, body = self.prepare(command.payload)
        try:
            response = await self._client.request(self.method, path, body)
        except KairosUnavailableError as exc:
            raise BackendUnreachable(f"error {self.activity}: {exc}") from exc
        except Exception as exc:
            LOGGER.exception("Unexpected failure %s", self.activity)
            raise BackendError(f"error {self.activity}: {exc}") from exc

        if response.status != self.success_status:
            raise BackendError(
                f"error {self.activity}: {response.status} {response.reason}",
                status=response.status,
            )

        if not self.returns_body:
            return CommandResult.ok()

        try:
            document = response.json()
        except (ValueError, RecursionError) as exc:
            raise BackendError(
                f"error {self.activity}: invalid response body",
                status=response.status,
            ) from exc
        if not isinstance(document, dict):
            raise BackendError(
                f"error {self.activity}: invalid response body",
                status=response.status,
            )
        return CommandResult.ok(document)

    def prepare(self, payload: Mapping[str, Any]) -> tuple[str, Optional[Any]]:
        return self.path, None


class _QueryCommandHandler(KairosCommandHandler):
    method = "POST"

    def prepare(self, payload: Mapping[str, Any]) -> tuple[str, Optional[Any]]:
        query = payload.get("query")
        if query is None:
            raise MissingRequiredField("metric query must be specified")
        if not isinstance(query, Mapping):
            raise ValidationFailure("metric query must be an object")
        return self.path, dict(query)


class AddDataPointsHandler(KairosCommandHandler):
    action = "add_data_points"
    method = "POST"
    path = ADD_DATAPOINTS_PATH
    activity = "adding data points"
    success_status = 204
    returns_body = False

    def prepare(self, payload: Mapping[str, Any]) -> tuple[str, Optional[Any]]:
        data_points = payload.get("datapoints")
        if data_points is None:
            raise MissingRequiredField("data points object is not specified")

        if isinstance(data_points, list):
            valid = validate_data_points_batch(data_points)
        else:
            valid = validate_data_points(data_points)
        if not valid:
            raise ValidationFailure("data points object was incorrectly formatted")
        return self.path, data_points


class DeleteDataPointsHandler(_QueryCommandHandler):
    action = "delete_data_points"
    path = DELETE_DATAPOINTS_PATH
    activity = "deleting data points"
    success_status = 204
    returns_body = False


class DeleteMetricHandler(KairosCommandHandler):
    action = "delete_metric"
    method = "DELETE"
    path = DELETE_METRIC_PATH
    activity = "deleting metric"
    success_status = 204
    returns_body = False

    def prepare(self, payload: Mapping[str, Any]) -> tuple[str, Optional[Any]]:
        metric_name = payload.get("metric_name")
        if not isinstance(metric_name, str) or not metric_name:
            raise MissingRequiredField("metric name must be specified")
        # name goes into the path as-is; callers send URL-safe names
        return self.path.format(name=metric_name), None


class QueryMetricsHandler(_QueryCommandHandler):
    action = "query_metrics"
    path = QUERY_DATAPOINTS_PATH
    activity = "querying metrics"


class QueryMetricTagsHandler(_QueryCommandHandler):
    action = "query_metric_tags"
    path = QUERY_DATAPOINTS_TAGS_PATH
    activity = "querying metric tags"


class ListMetricNamesHandler(KairosCommandHandler):
    action = "list_metric_names"
    method = "GET"
    path = METRIC_NAMES_PATH
    activity = "listing metric names"


class ListTagNamesHandler(KairosCommandHandler):
    action = "list_tag_names"
    method = "GET"
    path = TAG_NAMES_PATH
    activity = "listing tag names"


class ListTagValuesHandler(KairosCommandHandler):
    action = "list_tag_values"
    method = "GET"
    path = TAG_VALUES_PATH
    activity = "listing tag values"


class VersionHandler(KairosCommandHandler):
    action = "version"
    method = "GET"
    path = VERSION_PATH
    activity = "requesting version"


HANDLER_TYPES: tuple[type[KairosCommandHandler], ...] = (
    AddDataPointsHandler,
    DeleteDataPointsHandler,
    DeleteMetricHandler,
    ListMetricNamesHandler,
    ListTagNamesHandler,
    ListTagValuesHandler,
    QueryMetricsHandler,
    QueryMetricTagsHandler,
    VersionHandler,
)


class CommandRouter:
    """Looks up the handler for a command's action and runs it."""

    def __init__(self, handlers: Mapping[str, CommandHandler]) -> None:
        self._handlers: Dict[str, CommandHandler] = dict(handlers)

    @classmethod
    def for_client(cls, client: KairosTransport) -> "CommandRouter":
        """Build the router with one handler per KairosDB action."""
        return cls({handler.action: handler(client) for handler in HANDLER_TYPES})

    @property
    def actions(self) -> list[str]:
        return sorted(self._handlers)

    async def dispatch(self, command: Command) -> CommandResult:
        try:
            handler = self._resolve(command.action)
        except CommandError as exc:
            LOGGER.warning("Rejected command: %s", exc)
            return CommandResult.error(str(exc))

        LOGGER.debug("Dispatching %s command", command.action)
        try:
            return await handler.handle(command)
        except CommandError as exc:
            LOGGER.error("Command %s failed: %s", command.action, exc)
            return CommandResult.error(str(exc))
        except Exception as exc:
            LOGGER.exception("Command %s raised unexpectedly", command.action)
            return CommandResult.error(f"error processing {command.action}: {exc}")

    def _resolve(self, action: Optional[str]) -> CommandHandler:
        if action is None:
            raise MissingAction()
        handler = self._handlers.get(action)
        if handler is None:
            raise UnsupportedAction(action)
        return handler


__all__ = [
    "AddDataPointsHandler",
    "BackendError",
    "BackendUnreachable",
    "CommandError",
    "CommandRouter",
    "DeleteDataPointsHandler",
    "DeleteMetricHandler",
    "HANDLER_TYPES",
    "KairosCommandHandler",
    "ListMetricNamesHandler",
    "ListTagNamesHandler",
    "ListTagValuesHandler",
    "MissingAction",
    "MissingRequiredField",
    "QueryMetricTagsHandler",
    "QueryMetricsHandler",
    "UnsupportedAction",
    "ValidationFailure",
    "VersionHandler",
]
