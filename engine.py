"""Decide whether a submitted Pod needs its "service" label patched.

The "service" label is derived from the "appName" and "car_id" labels:

    appName=nginx, car_id=01234  ->  service=nginx-01234
    appName=nginx                ->  service=nginx
    car_id=01234                 ->  service=01234

Pods with neither source label, and objects that are not Pods, are admitted
unchanged. The webhook never denies a request.
"""

import logging

import pydantic

from exc import NamespaceUnavailable, ProjectionFailed
from models import (
    AdmissionDecision,
    AdmissionRequest,
    Patch,
    PatchAction,
    PatchOp,
    PodView,
)
from providers import Provider

LOG = logging.getLogger(__name__)

APP_NAME_LABEL = "appName"
CAR_ID_LABEL = "car_id"
SERVICE_LABEL = "service"
DEFAULT_NAMESPACE = "default"


def json_patch_escape(val):
    return val.replace("~", "~0").replace("/", "~1")


LABELS_PATH = "/metadata/labels"
SERVICE_LABEL_PATH = f"{LABELS_PATH}/{json_patch_escape(SERVICE_LABEL)}"


def project(request: AdmissionRequest) -> PodView:
    if not isinstance(request.object, dict):
        raise ProjectionFailed(
            f"failed to convert object: expected a mapping, got {type(request.object).__name__}"
        )

    try:
        return PodView.model_validate(request.object)
    except pydantic.ValidationError as err:
        raise ProjectionFailed(f"failed to convert object: {err}")


def effective_namespace(request: AdmissionRequest, pod: PodView) -> str:
    return request.namespace or pod.namespace or DEFAULT_NAMESPACE


def service_label_value(labels: dict[str, str] | None) -> str | None:
    labels = labels or {}
    app_name = labels.get(APP_NAME_LABEL)
    car_id = labels.get(CAR_ID_LABEL)

    if app_name is not None and car_id is not None:
        return f"{app_name}-{car_id}"
    if app_name is not None:
        return app_name
    if car_id is not None:
        return car_id

    return None


def service_label_patch(labels: dict[str, str] | None, value: str) -> Patch | None:
    """Build the smallest patch that sets the service label to value.

    Returns None if the label already has that value.
    """

    if labels is None:
        # A JSON Patch cannot add a key under a parent that does not exist.
        return Patch(
            [
                PatchAction(op=PatchOp.ADD, path=LABELS_PATH, value={}),
                PatchAction(op=PatchOp.ADD, path=SERVICE_LABEL_PATH, value=value),
            ]
        )

    if SERVICE_LABEL not in labels:
        return Patch([PatchAction(op=PatchOp.ADD, path=SERVICE_LABEL_PATH, value=value)])

    if labels[SERVICE_LABEL] != value:
        return Patch(
            [PatchAction(op=PatchOp.REPLACE, path=SERVICE_LABEL_PATH, value=value)]
        )

    return None


def decide(request: AdmissionRequest, provider: Provider) -> AdmissionDecision:
    pod = project(request)

    if pod.kind != "Pod":
        LOG.debug("ignoring %s %s", pod.kind, pod.name, extra={"uid": request.uid})
        return AdmissionDecision(uid=request.uid)

    LOG.debug(
        "incoming object labels",
        extra={
            "uid": request.uid,
            "pod_kind": pod.kind,
            "pod_name": pod.name,
            "labels": pod.labels,
        },
    )

    namespace = effective_namespace(request, pod)
    try:
        provider.namespace(namespace)
    except Exception as err:
        raise NamespaceUnavailable(
            f"failed to fetch namespace {namespace}: {err}"
        ) from err

    value = service_label_value(pod.labels)
    if value is None:
        return AdmissionDecision(uid=request.uid)

    patch = service_label_patch(pod.labels, value)
    if patch is None:
        return AdmissionDecision(uid=request.uid)

    LOG.info(
        "patching %s label to %s on pod %s in namespace %s",
        SERVICE_LABEL,
        value,
        pod.name,
        namespace,
        extra={"uid": request.uid},
    )
    return AdmissionDecision(uid=request.uid, patch=patch)
