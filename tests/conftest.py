import pytest

from addon_validator.models import CanonicalEntry, DetectedWorkload


@pytest.fixture
def make_entry():
    def _make_entry(name="Example Addon", matrix=None, min_version="", max_version="", source_url=""):
        return CanonicalEntry(
            name=name,
            compatibility_matrix=matrix or {},
            min_platform_version=min_version,
            max_platform_version=max_version,
            source_url=source_url,
        )
    return _make_entry


@pytest.fixture
def make_workload():
    def _make_workload(name, namespace="kube-system", version="", source="deployment"):
        return DetectedWorkload(name=name, namespace=namespace, installed_version=version, source=source)
    return _make_workload


@pytest.fixture
def sample_catalog():
    return [
        CanonicalEntry(name="Istio"),
        CanonicalEntry(name="Cert Manager"),
        CanonicalEntry(name="AWS EBS CSI Driver"),
        CanonicalEntry(name="AWS EFS CSI Driver"),
        CanonicalEntry(name="AWS VPC CNI"),
        CanonicalEntry(name="AWS Network Policy Agent"),
        CanonicalEntry(name="Prometheus"),
        CanonicalEntry(name="Prometheus Node Exporter"),
        CanonicalEntry(name="Redis"),
        CanonicalEntry(name="NodeLocal DNSCache"),
        CanonicalEntry(name="aws-alb-controller"),
    ]
