"""
Addon Compatibility Validator

A Python tool for reconciling Kubernetes addon workloads against a canonical
catalog and determining whether they are compatible with the cluster's
Kubernetes version.
"""

__version__ = "0.1.0"
__author__ = "Addon Compatibility Team"

# Make version easily importable
def get_version():
    """Get the current version of the Addon Compatibility Validator."""
    return __version__

__all__ = ['get_version']
