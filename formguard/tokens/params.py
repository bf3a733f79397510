"""Where a submitted token is looked up when validate() is not handed one."""

from typing import Any, Mapping, Optional, Protocol

from starlette.requests import Request

BODY_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


class ParameterSource(Protocol):
    def get(self, name: str) -> Optional[Any]: ...


class RequestParameters:
    """Submitted fields of one request: the form body first, then the query string."""

    def __init__(
        self,
        post: Optional[Mapping[str, Any]] = None,
        query: Optional[Mapping[str, Any]] = None,
    ):
        self.post = post or {}
        self.query = query or {}

    def get(self, name: str) -> Optional[Any]:
        if name in self.post:
            return self.post[name]
        if name in self.query:
            return self.query[name]
        return None

    @classmethod
    async def from_request(cls, request: Request) -> "RequestParameters":
        """Collect form and query fields from a Starlette request.

        The body is only parsed for methods that carry one. Starlette caches
        the parsed form, so route handlers can still read it afterwards.
        """
        post: Mapping[str, Any] = {}
        if request.method in BODY_METHODS:
            content_type = request.headers.get("content-type", "").lower()
            if content_type.startswith(
                ("application/x-www-form-urlencoded", "multipart/form-data")
            ):
                post = await request.form()
        return cls(post=post, query=request.query_params)
