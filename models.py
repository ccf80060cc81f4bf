import base64
from typing import Any, Literal
from pydantic import (
    BaseModel,
    ConfigDict,
    RootModel,
    model_validator,
    field_validator,
)
from enum import StrEnum


class ApiVersion(StrEnum):
    V1 = "admission.k8s.io/v1"
    V1BETA1 = "admission.k8s.io/v1beta1"


class Operation(StrEnum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    CONNECT = "CONNECT"


class PatchType(StrEnum):
    JSONPatch = "JSONPatch"


class PatchOp(StrEnum):
    REPLACE = "replace"
    ADD = "add"
    REMOVE = "remove"


class PatchAction(BaseModel):
    op: PatchOp
    path: str
    value: Any


# https://jsonpatch.com/
Patch = RootModel[list[PatchAction]]


# https://kubernetes.io/docs/reference/config-api/apiserver-admission.v1/#admission-k8s-io-v1-AdmissionResponse
class AdmissionResponse(BaseModel):
    allowed: bool
    uid: str
    patchType: PatchType | None = None
    patch: str | None = None

    @field_validator("patch", mode="before")
    @classmethod
    def validate_patch(cls, val):
        if isinstance(val, Patch):
            val = base64.b64encode(val.model_dump_json().encode()).decode()
        return val

    @model_validator(mode="after")
    def validate_model(self):
        if self.patch and not self.patchType:
            raise ValueError("missing patchType field")
        if self.patchType and not self.patch:
            raise ValueError(f"patchType is {self.patchType} but there is no patch")

        return self


# https://kubernetes.io/docs/reference/generated/kubernetes-api/v1.30/#groupversionkind-v1-meta
class GroupVersionKind(BaseModel):
    group: str = ""
    version: str = ""
    kind: str = ""


# https://kubernetes.io/docs/reference/config-api/apiserver-admission.v1/#admission-k8s-io-v1-AdmissionRequest
class AdmissionRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    uid: str
    kind: GroupVersionKind | None = None
    name: str | None = None
    namespace: str = ""
    operation: Operation = Operation.CREATE

    # Left untyped here; see PodView for the part we actually look at.
    object: Any = None


# https://kubernetes.io/docs/reference/config-api/apiserver-admission.v1/#admission-k8s-io-v1-AdmissionReview
class AdmissionReview(BaseModel):
    apiVersion: ApiVersion = ApiVersion.V1
    kind: Literal["AdmissionReview"] = "AdmissionReview"
    request: AdmissionRequest | None = None
    response: AdmissionResponse | None = None


class ObjectMeta(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str | None = None
    namespace: str | None = None

    # None means the object has no labels map at all, which is not the same
    # thing as an empty one when building a patch.
    labels: dict[str, str] | None = None


class PodView(BaseModel):
    """The fields of a submitted object that the webhook cares about.

    Everything else in the object (spec, status, ...) is ignored.
    """

    model_config = ConfigDict(frozen=True)

    kind: str | None = None
    metadata: ObjectMeta = ObjectMeta()

    @property
    def name(self) -> str | None:
        return self.metadata.name

    @property
    def namespace(self) -> str | None:
        return self.metadata.namespace

    @property
    def labels(self) -> dict[str, str] | None:
        return self.metadata.labels


class AdmissionDecision(BaseModel):
    uid: str
    allowed: bool = True
    patch: Patch | None = None

    @property
    def patchType(self) -> PatchType | None:
        return PatchType.JSONPatch if self.patch is not None else None

    def to_response(self) -> AdmissionResponse:
        return AdmissionResponse(
            uid=self.uid,
            allowed=self.allowed,
            patchType=self.patchType,
            patch=self.patch,
        )
