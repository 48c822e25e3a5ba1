"""Structured "API problem" error payloads for HTTP APIs."""

__title__ = 'api-problem'
__version__ = '0.1.0'
__description__ = 'Build and serialize API problem error payloads, with FastAPI integration'
__author__ = 'Vapor IO'
__author_email__ = 'vapor@vapor.io'
__url__ = 'https://github.com/vapor-ware/api-problem'
__license__ = 'GNU General Public License v3.0'

from .problem import MEDIA_TYPE, ApiProblem  # noqa: F401
