from .schemas import validate, validate_safe, flatten_errors
from .middleware import (
    with_validation,
    validate_body,
    validate_body_partial,
    validate_query,
    validate_params,
    validate_headers,
)

__all__ = [
    'validate', 'validate_safe', 'flatten_errors',
    'with_validation', 'validate_body', 'validate_body_partial',
    'validate_query', 'validate_params', 'validate_headers',
]
