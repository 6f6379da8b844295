"""Query-string parsing into the camelCase query models."""

from collections.abc import Callable
from typing import TypeVar, get_origin

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError

Q = TypeVar("Q", bound=BaseModel)


def query_params(model: type[Q]) -> Callable[[Request], Q]:
    """Dependency validating the query string against ``model``.

    List fields take repeated keys (``?speciesIds=1&speciesIds=2``).
    """
    list_fields = {
        name
        for name, field in model.model_fields.items()
        if get_origin(field.annotation) is list
    }

    def dependency(request: Request) -> Q:
        raw: dict[str, object] = {}
        for name, field in model.model_fields.items():
            key = field.alias or name
            if name in list_fields:
                values = request.query_params.getlist(key)
                if values:
                    raw[key] = values
            elif key in request.query_params:
                raw[key] = request.query_params[key]

        try:
            return model.model_validate(raw)
        except ValidationError as e:
            raise RequestValidationError(e.errors(include_url=False)) from e

    return dependency
