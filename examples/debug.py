"""
Pretty-printed problem bodies and the published OpenAPI schema.

With debug on, problem JSON is indented. The Problem schema is added to the
OpenAPI components so routes can document their error bodies.

    $ cd examples && uvicorn debug:app
"""

from fastapi import FastAPI

from api_problem import ApiProblem
from api_problem.middleware import register


app = FastAPI(debug=True)
register(app, add_schema=True)

NOT_FOUND = {
    404: {
        'description': 'No such widget',
        'content': {'application/problem+json': {
            'schema': {'$ref': '#/components/schemas/Problem'},
        }},
    },
}


@app.get('/widgets/{widget_id}', responses=NOT_FOUND)
async def get_widget(widget_id: int):
    problem = ApiProblem('Not Found', 'https://example.com/probs/not-found')
    problem.set_http_status(404).set_detail(f'No widget with id {widget_id}')
    problem.set_problem_instance(f'/widgets/{widget_id}')
    raise problem


# $ curl localhost:8000/widgets/7
# {
#   "title": "Not Found",
#   "problemType": "https://example.com/probs/not-found",
#   "httpStatus": 404,
#   "detail": "No widget with id 7",
#   "problemInstance": "/widgets/7"
# }
