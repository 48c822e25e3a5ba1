"""
A basic example application showcasing api_problem

Run from the `examples` directory with:
    $ uvicorn basic:app
"""

from fastapi import FastAPI

from api_problem.middleware import register
from api_problem.problem import ApiProblem


app = FastAPI()
register(app)


class AuthenticationError(ApiProblem):
    """An example of how to create a custom subclass of ApiProblem.

    This class also defines additional headers which should be sent with
    the error response.
    """

    headers = {
        'WWW-Authenticate': 'Bearer',
    }

    def __init__(self, msg: str) -> None:
        super(AuthenticationError, self).__init__(
            title='Unauthorized',
            problem_type='https://example.com/probs/unauthenticated',
        )
        self.set_http_status(401).set_detail(msg)


@app.get('/')
async def root():
    return {'message': 'Hello World'}


@app.get('/auth')
async def custom():
    raise AuthenticationError('user is unauthenticated')


@app.get('/credit')
async def credit():
    problem = ApiProblem('Out of credit', 'https://example.com/probs/out-of-credit')
    problem.set_http_status(403).set_detail('Your balance is 30, but that costs 50.')
    problem.set_extension('balance', 30)
    raise problem


@app.get('/error')
async def error():
    raise ValueError('something went wrong')


# Response:
#
# $ curl localhost:8000/error
# {"exc_type":"ValueError","title":"Unexpected Server Error","problemType":"about:blank","httpStatus":500,"detail":"something went wrong","problemInstance":""}
