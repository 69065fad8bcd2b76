"""logstackctl - phased GitOps rollout of the OpenShift logging stack."""

__version__ = "0.3.0"
