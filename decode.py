import logging

import pydantic

from exc import BadContentType, MalformedEnvelope, MissingRequest
from models import AdmissionReview

LOG = logging.getLogger(__name__)

CONTENT_TYPE = "application/json"


def media_type(content_type: str | None) -> str:
    """Return the bare media type from a content-type header value,
    without any parameters such as charset."""

    if not content_type:
        return ""

    return content_type.split(";", 1)[0].strip().lower()


def decode_request(content_type: str | None, body: bytes | str) -> AdmissionReview:
    """Parse an AdmissionReview. The media type must be application/json;
    case and parameters such as charset are ignored."""

    if media_type(content_type) != CONTENT_TYPE:
        raise BadContentType(
            f"invalid Content-Type {content_type!r}, expected {CONTENT_TYPE}"
        )

    try:
        review = AdmissionReview.model_validate_json(body)
    except pydantic.ValidationError as err:
        LOG.debug("failed to decode admission review: %s", err)
        raise MalformedEnvelope(f"failed to decode admission review: {err}")

    if review.request is None:
        raise MissingRequest("invalid admission review: missing request field")

    return review
