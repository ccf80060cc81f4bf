import logging

from kubernetes import config, client
from openshift.dynamic import DynamicClient
from kubernetes.dynamic.exceptions import NotFoundError
from typing import Any
from typing_extensions import Protocol

from exc import NamespaceNotFound, ProviderError

LOG = logging.getLogger(__name__)


class Provider(Protocol):
    def namespace(self, name: str) -> Any: ...


class KubernetesProvider(Provider):
    def __init__(self):
        """Allocate a Kubernetes dynamic client and Namespace API client.

        The client is created once and shared by every request the
        application handles.
        """

        super().__init__()

        try:
            # Tries the kubeconfig first, then the in-cluster service account.
            config.load_config()
        except config.ConfigException as err:
            LOG.warning("unable to configure Kubernetes client: %s", err)
            raise ProviderError("unable to configure Kubernetes client")

        try:
            # DynamicClient and resources.get both query the API server.
            k8s_client = client.ApiClient()
            dyn_client = DynamicClient(k8s_client)
            namespace_resource = dyn_client.resources.get(
                api_version="v1", kind="Namespace"
            )
        except Exception as err:
            LOG.warning("unable to discover Namespace API: %s", err)
            raise ProviderError("unable to discover Namespace API") from err

        self._client = dyn_client
        self._namespace_resource = namespace_resource
        LOG.info("Kubernetes client initialized successfully")

    def namespace(self, name):
        try:
            return self._namespace_resource.get(name=name)
        except NotFoundError:
            raise NamespaceNotFound(f"namespace {name} does not exist")
