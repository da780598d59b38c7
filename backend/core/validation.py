"""Request body helpers shared by the route modules."""

from typing import Any, TypeVar

from pydantic import BaseModel

RequestModel = TypeVar('RequestModel', bound=BaseModel)


def read_body(model: type[RequestModel], payload: Any) -> RequestModel:
    """Build ``model`` from a JSON body, treating anything but an object as empty.

    The request models declare ``Any`` fields, so this never raises; the
    handlers decide which values are usable and answer 400 themselves.
    """
    if not isinstance(payload, dict):
        payload = {}
    return model.model_validate(payload)


def normalize_email(email: str) -> str:
    return email.strip()
