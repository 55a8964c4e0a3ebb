# Overview: View decorators that validate request input before the handler runs.

from __future__ import annotations

from functools import wraps

from flask import current_app, request
from marshmallow import EXCLUDE
from werkzeug.exceptions import BadRequest

from ..errors import ValidationError
from ..http import bad_request, error_response, request_context
from .schemas import validate

SOURCES = ("body", "query", "params", "headers")


def _query_args() -> dict:
    out = {}
    for key in request.args:
        values = request.args.getlist(key)
        out[key] = values if len(values) > 1 else values[0]
    return out


def extract(source: str, view_kwargs: dict):
    """Raw input for ``source``. Raises BadRequest on malformed JSON."""
    if source == "body":
        return request.get_json(force=True)
    if source == "query":
        return _query_args()
    if source == "params":
        return dict(view_kwargs)
    if source == "headers":
        return {key.lower(): value for key, value in request.headers.items()}
    raise ValueError(f"Unknown validation source: {source}")


def with_validation(schema, source: str = "body", partial: bool | None = None):
    """
    Validate one request source against ``schema``.

    The cleaned dict is passed to the view as its first positional argument;
    stacked decorators prepend in order, so the innermost decorator's data
    comes first. Failures short-circuit with a 400 envelope.
    """
    if source not in SOURCES:
        raise ValueError(f"Unknown validation source: {source}")

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            try:
                raw = extract(source, kwargs)
            except BadRequest:
                current_app.logger.warning("Invalid JSON in request body", extra=request_context())
                return bad_request("Invalid JSON in request body", "INVALID_JSON")

            try:
                data = validate(
                    schema,
                    raw,
                    partial,
                    unknown=EXCLUDE if source == "headers" else None,
                )
            except ValidationError as exc:
                current_app.logger.warning(
                    "Validation failed (%s): %s",
                    source,
                    exc.errors,
                    extra=request_context(),
                )
                return error_response(exc.message, exc.code, 400, exc.errors)

            return f(data, *args, **kwargs)

        return decorated_function

    return decorator


def validate_body(schema):
    return with_validation(schema, "body")


def validate_body_partial(schema):
    return with_validation(schema, "body", partial=True)


def validate_query(schema):
    return with_validation(schema, "query")


def validate_params(schema):
    return with_validation(schema, "params")


def validate_headers(schema):
    return with_validation(schema, "headers")
