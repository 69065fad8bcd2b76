"""Kubernetes client for ArgoCD Application custom resources."""

from typing import Any

from urllib3.exceptions import HTTPError

from logstackctl.config import K8sConfig
from logstackctl.core.exceptions import AuthenticationError, K8sError
from logstackctl.core.logging import StructuredLogger

logger = StructuredLogger(__name__)

APPLICATION_GROUP = "argoproj.io"
APPLICATION_VERSION = "v1alpha1"
APPLICATION_PLURAL = "applications"

MERGE_PATCH = "application/merge-patch+json"

# Raised by the kubernetes client before any API response exists
TRANSPORT_ERRORS = (HTTPError, OSError)


class K8sClient:
    """Client for the Kubernetes API operations the rollout needs."""

    def __init__(self, config: K8sConfig):
        self._config = config
        self._core_v1: Any = None
        self._custom_objects: Any = None
        self._loaded = False

    def _load_config(self) -> None:
        """Load kubernetes configuration."""
        if self._loaded:
            return

        from kubernetes import config

        kubeconfig = self._config.get_kubeconfig()
        context = self._config.get_context()

        try:
            if kubeconfig:
                config.load_kube_config(config_file=kubeconfig, context=context)
            else:
                # Try in-cluster config first, then default kubeconfig
                try:
                    config.load_incluster_config()
                except config.ConfigException:
                    config.load_kube_config(context=context)

            self._loaded = True
            logger.debug("Loaded k8s config", context=context)
        except Exception as e:
            raise AuthenticationError(f"Failed to load k8s config: {e}")

    @property
    def core_v1(self) -> Any:
        """Get CoreV1Api client (namespaces)."""
        if self._core_v1 is None:
            self._load_config()
            from kubernetes import client

            self._core_v1 = client.CoreV1Api()
        return self._core_v1

    @property
    def custom_objects(self) -> Any:
        """Get CustomObjectsApi client (argoproj.io Applications)."""
        if self._custom_objects is None:
            self._load_config()
            from kubernetes import client

            self._custom_objects = client.CustomObjectsApi()
        return self._custom_objects

    def namespace_exists(self, name: str) -> bool:
        """Check whether a namespace exists."""
        from kubernetes.client.rest import ApiException

        try:
            self.core_v1.read_namespace(name)
            return True
        except ApiException as e:
            if e.status == 404:
                return False
            raise K8sError(f"Failed to read namespace {name}: {e.reason}", status_code=e.status)
        except TRANSPORT_ERRORS as e:
            raise K8sError(f"Failed to read namespace {name}: {e}")

    # Application operations
    def get_application(self, name: str, namespace: str) -> dict[str, Any] | None:
        """Get an Application resource, or None if it does not exist."""
        from kubernetes.client.rest import ApiException

        try:
            return self.custom_objects.get_namespaced_custom_object(
                APPLICATION_GROUP,
                APPLICATION_VERSION,
                namespace,
                APPLICATION_PLURAL,
                name,
            )
        except ApiException as e:
            if e.status == 404:
                return None
            raise K8sError(
                f"Failed to get application {name}: {e.reason}",
                status_code=e.status,
            )
        except TRANSPORT_ERRORS as e:
            raise K8sError(f"Failed to get application {name}: {e}")

    def patch_application(
        self,
        name: str,
        namespace: str,
        patch: dict[str, Any],
    ) -> dict[str, Any]:
        """Apply a JSON merge patch to an Application resource."""
        from kubernetes.client.rest import ApiException

        try:
            return self.custom_objects.patch_namespaced_custom_object(
                APPLICATION_GROUP,
                APPLICATION_VERSION,
                namespace,
                APPLICATION_PLURAL,
                name,
                patch,
                _content_type=MERGE_PATCH,
            )
        except ApiException as e:
            raise K8sError(
                f"Failed to patch application {name}: {e.reason}",
                status_code=e.status,
            )
        except TRANSPORT_ERRORS as e:
            raise K8sError(f"Failed to patch application {name}: {e}")

    def apply_application(self, manifest: dict[str, Any], namespace: str) -> dict[str, Any]:
        """Create an Application, or replace it if it already exists."""
        from kubernetes.client.rest import ApiException

        name = manifest.get("metadata", {}).get("name", "")
        try:
            return self.custom_objects.create_namespaced_custom_object(
                APPLICATION_GROUP,
                APPLICATION_VERSION,
                namespace,
                APPLICATION_PLURAL,
                manifest,
            )
        except ApiException as e:
            if e.status != 409:
                raise K8sError(
                    f"Failed to create application {name}: {e.reason}",
                    status_code=e.status,
                )
        except TRANSPORT_ERRORS as e:
            raise K8sError(f"Failed to create application {name}: {e}")

        # Already exists: replace, carrying over the live resourceVersion
        existing = self.get_application(name, namespace) or {}
        body = {
            **manifest,
            "metadata": {
                **manifest.get("metadata", {}),
                "resourceVersion": existing.get("metadata", {}).get("resourceVersion"),
            },
        }
        try:
            return self.custom_objects.replace_namespaced_custom_object(
                APPLICATION_GROUP,
                APPLICATION_VERSION,
                namespace,
                APPLICATION_PLURAL,
                name,
                body,
            )
        except ApiException as e:
            raise K8sError(
                f"Failed to replace application {name}: {e.reason}",
                status_code=e.status,
            )
        except TRANSPORT_ERRORS as e:
            raise K8sError(f"Failed to replace application {name}: {e}")
