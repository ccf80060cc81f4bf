class ApplicationError(Exception):
    status_code = 500


class DecodeError(ApplicationError):
    """The inbound admission review could not be decoded."""

    status_code = 400


class BadContentType(DecodeError):
    status_code = 415


class MalformedEnvelope(DecodeError):
    pass


class MissingRequest(DecodeError):
    pass


class EngineError(ApplicationError):
    """The admission decision could not be made."""


class ProjectionFailed(EngineError):
    pass


class NamespaceUnavailable(EngineError):
    pass


class ProviderError(ApplicationError):
    pass


class NamespaceNotFound(ProviderError):
    pass
