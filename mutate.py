import logging

from flask import Flask, request, jsonify, g
from pythonjsonlogger.json import JsonFormatter

from models import BaseModel, AdmissionReview
from decode import decode_request
from engine import decide
from providers import KubernetesProvider
from exc import ApplicationError, ProviderError

LOG = logging.getLogger(__name__)

TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s uid=%(uid)s: %(message)s"
JSON_FORMAT = "%(asctime)s %(levelname)s %(name)s %(uid)s %(message)s"


class UidFilter(logging.Filter):
    """Give every record a uid, so records logged outside of a request
    still format."""

    def filter(self, record):
        if getattr(record, "uid", None) is None:
            record.uid = "-"
        return True


class DEFAULTS:
    PROVIDER = KubernetesProvider
    BIND_ADDRESS = "0.0.0.0"
    PORT = 8080
    TLS = False
    TLS_CERT_FILE = "/etc/mutating-webhook/tls/tls.crt"
    TLS_KEY_FILE = "/etc/mutating-webhook/tls/tls.key"
    LOG_LEVEL = "DEBUG"
    LOG_JSON = False


def configure_logging(level="DEBUG", json_format=False):
    """Send all log records to stderr, as plain text or as one JSON object
    per line. An unknown level name leaves the level at DEBUG."""

    levelno = logging.getLevelNamesMapping().get(str(level).upper())
    handler = logging.StreamHandler()
    handler.addFilter(UidFilter())
    if json_format:
        handler.setFormatter(JsonFormatter(JSON_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    logging.basicConfig(
        level=levelno if levelno is not None else logging.DEBUG,
        handlers=[handler],
        force=True,
    )

    if levelno is None:
        LOG.warning("unknown log level %s, using DEBUG", level)

    return handler


def jsonresponse():
    """Transforms the response from a view function into a JSON object."""

    def _outer(func):
        def _inner(*args, **kwargs):
            res = func(*args, **kwargs)
            if isinstance(res, BaseModel):
                return jsonify(res.model_dump(mode="json", exclude_none=True))
            else:
                return jsonify(res)

        return _inner

    return _outer


@jsonresponse()
def add_label():
    review = decode_request(request.content_type, request.get_data())
    g.uid = review.request.uid

    LOG.debug(
        "admission request %s for %s %s/%s",
        review.request.operation,
        review.request.kind.kind if review.request.kind else None,
        review.request.namespace,
        review.request.name,
        extra={"uid": g.uid},
    )

    decision = decide(review.request, g.provider)

    res = AdmissionReview(
        apiVersion=review.apiVersion,
        response=decision.to_response(),
    )
    LOG.debug(
        "admission response: %s",
        res.model_dump_json(exclude_none=True),
        extra={"uid": g.uid},
    )
    return res


def handle_applicationerror(err):
    LOG.error(
        "%s: %s",
        type(err).__name__,
        err,
        extra={"uid": g.get("uid"), "uri": request.path},
    )
    return str(err), err.status_code, {"content-type": "text/plain"}


def health():
    return "OK", 200, {"content-type": "text/plain"}


def create_app(**config) -> Flask:
    """Use an application factory [1] to create the Flask app.

    This makes it much easier to write tests for the application, since we can
    set up the test environment before instantiating the app. This is difficult
    to do if the app is created at `import` time.

    The namespace provider is created here, once, and shared by all requests.

    [1]: https://flask.palletsprojects.com/en/3.0.x/patterns/appfactories/
    """

    app = Flask(__name__)
    app.config.from_object(DEFAULTS)
    app.config.from_prefixed_env("WEBHOOK")
    if config:
        app.config.update(config)

    if not app.testing:
        configure_logging(app.config["LOG_LEVEL"], app.config["LOG_JSON"])

    app.provider = app.config["PROVIDER"]()

    @app.before_request
    def attach_provider():
        g.provider = app.provider

    app.errorhandler(ApplicationError)(handle_applicationerror)
    app.add_url_rule("/health", view_func=health)
    app.add_url_rule("/healthz", view_func=health)
    app.add_url_rule("/add-label", view_func=add_label, methods=["POST"])
    app.add_url_rule("/mutate", view_func=add_label, methods=["POST"])

    return app


def main():
    try:
        app = create_app()
    except ProviderError as err:
        LOG.error("failed to start webhook: %s", err)
        exit(1)

    ssl_context = None
    if app.config["TLS"]:
        ssl_context = (app.config["TLS_CERT_FILE"], app.config["TLS_KEY_FILE"])

    LOG.info(
        "starting server on %s:%s%s",
        app.config["BIND_ADDRESS"],
        app.config["PORT"],
        " with TLS" if ssl_context else "",
    )
    app.run(
        host=app.config["BIND_ADDRESS"],
        port=app.config["PORT"],
        ssl_context=ssl_context,
        threaded=True,
    )


if __name__ == "__main__":
    main()
