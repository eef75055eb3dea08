"""
SGLD Project Planning
Blueprint registry helpers: pagination and the shared error mapping.
"""

import logging

from flask import request

from sgld.core.exceptions import (
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    PersistenceError,
    RenderError,
    ValidationError,
)
from sgld.utils.errors import E, api_error
from sgld.utils.helpers import parse_int_arg

logger = logging.getLogger(__name__)


def paginate_query(query, default_limit=50, max_limit=500):
    """Apply limit/offset pagination to a SQLAlchemy query.

    Query params:
        limit  — max items (default 50, capped at max_limit)
        offset — starting position (default 0)

    Returns:
        (items_list, total_count)
    """
    total = query.count()
    limit = parse_int_arg(request.args.get("limit"), default_limit, minimum=1, maximum=max_limit)
    offset = parse_int_arg(request.args.get("offset"), 0)
    items = query.limit(limit).offset(offset).all()
    return items, total


def json_body() -> dict:
    """Request JSON object, or ValidationError when the body is not an object."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def register_error_handlers(bp):
    """Map the core exception hierarchy to api_error responses on ``bp``."""

    @bp.errorhandler(ValidationError)
    def _handle_validation(error: ValidationError):
        return api_error(E.VALIDATION_INVALID, str(error), details=error.details)

    @bp.errorhandler(AuthorizationError)
    def _handle_forbidden(error: AuthorizationError):
        if error.actor_id is None:
            return api_error(E.UNAUTHENTICATED, str(error))
        return api_error(E.FORBIDDEN, str(error))

    @bp.errorhandler(InvalidStateError)
    def _handle_state(error: InvalidStateError):
        return api_error(E.CONFLICT_STATE, str(error), details={"status": error.current_status})

    @bp.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        return api_error(E.NOT_FOUND, str(error))

    @bp.errorhandler(PersistenceError)
    def _handle_persistence(error: PersistenceError):
        return api_error(E.DATABASE, str(error))

    @bp.errorhandler(RenderError)
    def _handle_render(error: RenderError):
        logger.error("Report rendering failed endpoint=%s: %s", request.endpoint, error)
        return api_error(E.RENDER, str(error))

    return bp
