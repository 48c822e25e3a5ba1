"""The ApiProblem error payload.

An ApiProblem carries a title, a problem type URI, an optional HTTP status,
a detail string, an instance URI and any number of extension fields. It
compiles all of them into one flat dictionary and serializes that as JSON,
suitable for sending as the body of an HTTP error response with the
`application/problem+json` media type.
"""

import json
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

MEDIA_TYPE = 'application/problem+json'


class ApiProblem(Exception):
    """An API error of some form.

    The standard fields are read and written through the get_*/set_* methods.
    The setters mutate the instance in place and return it, so calls may be
    chained:

        problem = ApiProblem('Not Found', 'https://example.com/probs/not-found')
        problem.set_http_status(404).set_detail('No such widget')

    Any other field is an extension, managed with has_extension, get_extension,
    set_extension and remove_extension. When an extension shares a name with a
    standard field, the standard field wins in the compiled output.

    Subclassing to provide defaults for the problem types of an application is
    encouraged. A subclass or instance may also set `headers`, which the HTTP
    layer sends alongside the serialized problem.

    An ApiProblem is a plain mutable record with no locking. Share it across
    threads only if it is no longer being modified. Problems compare by value
    and are therefore unhashable.
    """

    headers: Mapping[str, str] = MappingProxyType({})

    def __init__(self, title: str = '', problem_type: str = '') -> None:
        # A short, human-readable summary of the problem type. It should not
        # change from occurrence to occurrence of the problem.
        self.title: str = title

        # A URI that identifies the problem type.
        self.problem_type: str = problem_type

        # Advisory only; the real HTTP response must use the same status.
        self.http_status: Optional[int] = None

        self.detail: str = ''
        self.problem_instance: str = ''
        self.extensions: Dict[str, Any] = {}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'ApiProblem':
        """Create a new ApiProblem from a compiled dictionary.

        The standard keys populate the standard fields. Every other key is
        kept as an extension.

        Args:
            data: The dictionary to convert into an ApiProblem.

        Returns:
            A new ApiProblem populated from the dictionary.
        """
        extensions = dict(data)
        problem = cls(
            title=extensions.pop('title', ''),
            problem_type=extensions.pop('problemType', ''),
        )
        problem.http_status = extensions.pop('httpStatus', None)
        problem.detail = extensions.pop('detail', '')
        problem.problem_instance = extensions.pop('problemInstance', '')
        problem.extensions = extensions
        return problem

    @classmethod
    def from_json(cls, text: str) -> 'ApiProblem':
        """Create a new ApiProblem from its JSON serialization.

        Raises:
            ValueError: The JSON document is not an object.
        """
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError('API problem JSON must be an object')
        return cls.from_dict(data)

    def get_title(self) -> str:
        return self.title

    def set_title(self, title: str) -> 'ApiProblem':
        self.title = title
        return self

    def get_problem_type(self) -> str:
        return self.problem_type

    def set_problem_type(self, problem_type: str) -> 'ApiProblem':
        self.problem_type = problem_type
        return self

    def get_detail(self) -> str:
        return self.detail

    def set_detail(self, detail: str) -> 'ApiProblem':
        """Set the explanation specific to this occurrence of the problem.

        The detail should help the client correct the problem rather than
        carry debugging information. Machine-readable data belongs in
        extensions.
        """
        self.detail = detail
        return self

    def get_problem_instance(self) -> str:
        return self.problem_instance

    def set_problem_instance(self, problem_instance: str) -> 'ApiProblem':
        self.problem_instance = problem_instance
        return self

    def get_http_status(self) -> Optional[int]:
        """Get the HTTP status code, or None if it was never set."""
        return self.http_status

    def set_http_status(self, status: int) -> 'ApiProblem':
        """Set the HTTP status code of this problem.

        The value is not checked against the range of valid status codes.
        """
        self.http_status = status
        return self

    def has_extension(self, key: str) -> bool:
        return key in self.extensions

    def get_extension(self, key: str) -> Any:
        """Get the value of an extension field.

        Raises:
            KeyError: No extension with the given key is set.
        """
        return self.extensions[key]

    def set_extension(self, key: str, value: Any) -> None:
        self.extensions[key] = value

    def remove_extension(self, key: str) -> None:
        self.extensions.pop(key, None)

    def compile(self) -> Dict[str, Any]:
        """Get the flat dictionary representation of the problem.

        Returns:
            The extensions, overlaid with the five standard fields. The
            standard keys are always present, even when empty or unset.
        """
        d = dict(self.extensions)

        # Standard fields are written last so they take precedence over
        # any extension using the same key.
        d['title'] = self.title
        d['problemType'] = self.problem_type
        d['httpStatus'] = self.http_status
        d['detail'] = self.detail
        d['problemInstance'] = self.problem_instance
        return d

    def as_json(self, pretty: bool = False) -> str:
        """Render the problem as a JSON string.

        Args:
            pretty: Indent the output for human readers. Otherwise the most
                compact encoding is used.

        Returns:
            The JSON-serialized problem.
        """
        if pretty:
            return json.dumps(self.compile(), indent=2)
        return json.dumps(self.compile(), separators=(',', ':'))

    def as_xml(self) -> str:
        """Render the problem as XML.

        Placeholder for a future XML encoding; always raises.
        """
        raise NotImplementedError('Not yet implemented.')

    def __str__(self) -> str:
        return f'ApiProblem:<{self.compile()}>'

    def __repr__(self) -> str:
        return str(self)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ApiProblem):
            return False
        return self.compile() == other.compile() and self.extensions == other.extensions
