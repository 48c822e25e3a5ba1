"""
Hooks around problem responses.

The pre-hook logs the failure, the async post-hook tags the response with
a request id that is also echoed in the logs.

    $ cd examples && uvicorn hooks:app
"""

import logging
import uuid

from fastapi import FastAPI, Request, Response

from api_problem.middleware import register

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger('hooks')


def log_failure(request: Request, exc: Exception) -> None:
    logger.warning('%s %s failed: %r', request.method, request.url.path, exc)


async def tag_response(request: Request, response: Response, exc: Exception) -> None:
    request_id = uuid.uuid4().hex
    response.headers['X-Request-Id'] = request_id
    logger.info('problem response %s sent with status %d', request_id, response.status_code)


app = FastAPI()
register(app, pre_hooks=[log_failure], post_hooks=[tag_response])


@app.get('/divide/{a}/{b}')
async def divide(a: int, b: int):
    return {'result': a / b}


# $ curl -i localhost:8000/divide/1/0
# HTTP/1.1 500 Internal Server Error
# content-type: application/problem+json
# x-request-id: 3f0c...
#
# {"exc_type":"ZeroDivisionError","title":"Unexpected Server Error","problemType":"about:blank","httpStatus":500,"detail":"division by zero","problemInstance":""}
