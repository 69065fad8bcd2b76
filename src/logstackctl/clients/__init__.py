"""Clients for external systems (ArgoCD, Kubernetes, AWS)."""

from logstackctl.clients.argocd import ArgoCDClient
from logstackctl.clients.aws import AWSClientFactory
from logstackctl.clients.k8s import K8sClient

__all__ = ["ArgoCDClient", "AWSClientFactory", "K8sClient"]
