"""Pydantic model for the ApiProblem response schema."""

from typing import Optional

from pydantic import BaseModel, ConfigDict


class Problem(BaseModel):
    """Model of a compiled ApiProblem response body.

    Any extension fields appear as additional keys.
    """

    model_config = ConfigDict(extra='allow')

    title: str = ''
    problemType: str = ''
    httpStatus: Optional[int] = None
    detail: str = ''
    problemInstance: str = ''
