"""FastAPI middleware and error handlers for ApiProblem responses.

These send an ApiProblem as a JSON response body with the
`application/problem+json` media type, and convert other exceptions raised
by an application into ApiProblems.
"""

import http
import inspect
import logging
from typing import (Any, Awaitable, Callable, Dict, Mapping, Optional,
                    Sequence, Union)

from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.openapi.utils import get_openapi
from starlette.exceptions import HTTPException
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from . import schema
from .problem import MEDIA_TYPE, ApiProblem

logger = logging.getLogger(__name__)

PreHook = Callable[[Request, Exception], Union[Any, Awaitable[Any]]]
PostHook = Callable[[Request, Response, Exception], Union[Any, Awaitable[Any]]]


class ProblemResponse(Response):
    """A Response for ApiProblems."""

    media_type: str = MEDIA_TYPE

    def __init__(self, *args, debug: bool = False, **kwargs) -> None:
        self.debug: bool = debug
        super(ProblemResponse, self).__init__(*args, **kwargs)

    def init_headers(self, headers: Optional[Mapping[str, str]] = None) -> None:
        h = dict(headers) if headers else {}
        if hasattr(self, 'problem') and self.problem.headers:
            h.update(self.problem.headers)

        super(ProblemResponse, self).init_headers(h)

    def render(self, content: Any) -> bytes:
        """Render the provided content as ApiProblem JSON-serialized bytes."""
        if isinstance(content, ApiProblem):
            p = content
        elif isinstance(content, dict):
            p = ApiProblem.from_dict(content)
        elif isinstance(content, HTTPException):
            p = from_http_exception(content)
        elif isinstance(content, RequestValidationError):
            p = from_request_validation_error(content)
        elif isinstance(content, Exception):
            p = from_exception(content)
        else:
            p = ApiProblem(title='Application Error', problem_type='about:blank')
            p.set_http_status(500)
            p.set_detail('Got unexpected content when trying to generate error response')
            p.set_extension('content', str(content))

        # The response status follows the problem's status. A problem with
        # no status set is reported as a server error.
        self.status_code = p.get_http_status() or 500

        logger.debug('rendering problem response: %s', p)
        self.problem = p
        return p.as_json(pretty=self.debug).encode('utf-8')


def _status_phrase(status_code: int) -> str:
    try:
        return http.HTTPStatus(status_code).phrase
    except ValueError:
        return 'Unknown Error'


def from_http_exception(exc: HTTPException) -> ApiProblem:
    """Create a new ApiProblem from an HTTPException.

    The ApiProblem takes on the status code of the HTTPException and uses the
    standard phrase for that status code as its title, or "Unknown Error"
    for codes without one. The HTTPException detail becomes the problem
    detail, and any headers it carries are sent with the response.

    Args:
        exc: The HTTPException to convert into an ApiProblem.

    Returns:
        A new ApiProblem populated from the HTTPException.
    """
    p = ApiProblem(title=_status_phrase(exc.status_code), problem_type='about:blank')
    p.set_http_status(exc.status_code).set_detail(exc.detail)
    if exc.headers:
        p.headers = dict(exc.headers)
    return p


def from_request_validation_error(exc: RequestValidationError) -> ApiProblem:
    """Create a new ApiProblem from a RequestValidationError.

    The ApiProblem takes on a status code of 400 Bad Request, indicating that
    the user provided data which the server will not process. The title will
    be "Validation Error". The specifics of which fields failed validation
    checks are included in the "errors" extension, encoded so that they can
    always be serialized (pydantic errors may carry exception objects).

    Args:
        exc: The RequestValidationError to convert into an ApiProblem.

    Returns:
         A new ApiProblem populated from the RequestValidationError.
    """
    p = ApiProblem(title='Validation Error', problem_type='about:blank')
    p.set_http_status(400).set_detail('One or more user-provided parameters are invalid')
    p.set_extension('errors', jsonable_encoder(exc.errors()))
    return p


def from_exception(exc: Exception) -> ApiProblem:
    """Create a new ApiProblem from a broad-class Exception.

    Converting a general Exception into an ApiProblem is indicative of a
    server error, where some exception is not handled explicitly or not
    wrapped in an ApiProblem/HTTPException. The ApiProblem always uses the
    500 status code with the title "Unexpected Server Error".

    The exception class name is provided in the "exc_type" extension, and
    the exception message is used as the problem detail.

    Args:
        exc: The general Exception to convert into an ApiProblem.

    Returns:
        A new ApiProblem populated from the Exception.
    """
    p = ApiProblem(title='Unexpected Server Error', problem_type='about:blank')
    p.set_http_status(500).set_detail(str(exc))
    p.set_extension('exc_type', exc.__class__.__name__)
    return p


async def run_hooks(hooks: Optional[Sequence[Union[PreHook, PostHook]]], *args) -> None:
    """Call each hook in order with the given arguments.

    A hook may return an awaitable, which is awaited before the next hook
    runs. Errors raised by a hook are not caught.
    """
    for hook in hooks or ():
        result = hook(*args)
        if inspect.isawaitable(result):
            await result


def get_exception_handler(
        debug: bool = False,
        pre_hooks: Optional[Sequence[PreHook]] = None,
        post_hooks: Optional[Sequence[PostHook]] = None,
) -> Callable:
    """Build a FastAPI exception handler which answers with a ProblemResponse.

    Pre-hooks are called with (request, exc) before the response is built;
    post-hooks with (request, response, exc) afterwards, and may alter the
    response (e.g. add headers).

    Args:
        debug: Pretty-print the problem JSON.
        pre_hooks: Called before the ProblemResponse is built.
        post_hooks: Called after the ProblemResponse is built.
    """
    async def exception_handler(request: Request, exc: Exception) -> ProblemResponse:
        await run_hooks(pre_hooks, request, exc)
        response = ProblemResponse(exc, debug=debug)
        await run_hooks(post_hooks, request, response, exc)
        return response
    return exception_handler


def add_openapi_schema(app: FastAPI, name: str = 'Problem') -> None:
    """Publish the compiled ApiProblem shape in the app's OpenAPI components.

    Routes can then reference it while keeping the problem media type:

        @app.get('/', responses={
            404: {'content': {'application/problem+json': {
                'schema': {'$ref': '#/components/schemas/Problem'},
            }}},
        })
    """
    def openapi() -> Dict:
        if not app.openapi_schema:
            app.openapi_schema = get_openapi(
                title=app.title,
                version=app.version,
                openapi_version=app.openapi_version,
                description=app.description,
                routes=app.routes,
                tags=app.openapi_tags,
                servers=app.servers,
            )

        definition = schema.Problem.model_json_schema(ref_template='#/components/schemas/{model}')
        definition['title'] = name
        components = app.openapi_schema.setdefault('components', {})
        components.setdefault('schemas', {})[name] = definition
        return app.openapi_schema

    app.openapi = openapi  # type: ignore


def register(
    app: FastAPI,
    pre_hooks: Optional[Sequence[PreHook]] = None,
    post_hooks: Optional[Sequence[PostHook]] = None,
    add_schema: Union[str, bool] = False,
) -> None:
    """Make a FastAPI application answer every error with an ApiProblem.

    HTTPException and RequestValidationError get exception handlers;
    everything else, raised ApiProblems included, is caught by
    ProblemMiddleware. The app's debug flag selects pretty-printed bodies.

    Args:
        app: The FastAPI application to configure.
        pre_hooks: Called with (request, exc) before a response is built.
        post_hooks: Called with (request, response, exc) after it is built.
        add_schema: Publish the problem schema in the OpenAPI document, under
            this name if a string is given, or as "Problem" if True.
    """
    handler = get_exception_handler(debug=app.debug, pre_hooks=pre_hooks, post_hooks=post_hooks)
    app.add_exception_handler(HTTPException, handler)
    app.add_exception_handler(RequestValidationError, handler)
    app.add_middleware(ProblemMiddleware, debug=app.debug, pre_hooks=pre_hooks, post_hooks=post_hooks)

    if add_schema:
        add_openapi_schema(app, add_schema if isinstance(add_schema, str) else 'Problem')


class ProblemMiddleware:
    """ASGI middleware turning unhandled exceptions into ProblemResponses.

    Nothing is sent if the application had already started its response.
    The exception is re-raised either way, so outer middleware and test
    clients still see it.
    """

    def __init__(
            self,
            app: ASGIApp,
            debug: bool = False,
            pre_hooks: Optional[Sequence[PreHook]] = None,
            post_hooks: Optional[Sequence[PostHook]] = None,
    ) -> None:
        self.app: ASGIApp = app
        self.debug: bool = debug
        self._handler = get_exception_handler(debug=debug, pre_hooks=pre_hooks, post_hooks=post_hooks)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope['type'] != 'http':
            await self.app(scope, receive, send)
            return

        started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal started
            if message['type'] == 'http.response.start':
                started = True
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            _log_exception(exc)
            if not started:
                response = await self._handler(Request(scope), exc)
                await response(scope, receive, send)
            raise exc from None


def _log_exception(exc: Exception) -> None:
    # Client errors raised on purpose are expected; keep them out of the
    # error log.
    if isinstance(exc, ApiProblem) and (exc.get_http_status() or 500) < 500:
        logger.debug('application raised %s', exc)
    else:
        logger.exception('unhandled exception in application')
