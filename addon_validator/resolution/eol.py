"""
End-of-life status resolution against endoflife.date release cycles.

Also maps addon names to endoflife.date product slugs, from a live product
catalog when one was fetched and from a static alias table otherwise.
"""

import logging
from datetime import date
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Sequence, Tuple

from ..catalog.name_matcher import normalize_name
from ..catalog.version_comparator import strip_v_prefix
from ..models import EOLCycle, EOLProduct, EOLState

logger = logging.getLogger(__name__)

# endoflife.date product slug -> addon names known to ship under it
EOL_SLUG_ALIAS_GROUPS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ('argo-cd', ('argo-cd', 'argocd', 'argo cd')),
    ('argo-workflows', ('argo-workflows',)),
    ('calico', ('calico', 'project calico', 'kubernetes network policy (calico)')),
    ('cert-manager', ('cert-manager', 'cert manager', 'cert-manager trust manager', 'cert-manager approver-policy')),
    ('cilium', ('cilium', 'cilium clustermesh', 'cilium network policy', 'cilium hubble',
                'cilium service mesh', 'network policy editor (cilium)')),
    ('containerd', ('containerd',)),
    ('contour', ('contour',)),
    ('envoy', ('envoy', 'envoy gateway')),
    ('etcd', ('etcd',)),
    ('flux', ('flux', 'fluxcd', 'flux notification controller', 'flux image automation')),
    ('gatekeeper', ('gatekeeper', 'opa gatekeeper')),
    ('grafana', ('grafana', 'grafana oncall', 'grafana mimir', 'grafana pyroscope', 'grafana tempo', 'grafana alloy')),
    ('grafana-loki', ('grafana-loki', 'grafana loki', 'loki')),
    ('harbor', ('harbor',)),
    ('istio', ('istio', 'istio ambient mesh', 'istio operator')),
    ('keda', ('keda', 'keda http add-on')),
    ('kuma', ('kuma',)),
    ('kyverno', ('kyverno', 'kyverno policy reporter')),
    ('prometheus', ('prometheus', 'prometheus operator / kube-prometheus-stack', 'prometheus adapter',
                    'prometheus pushgateway', 'prometheus blackbox exporter')),
    ('traefik', ('traefik', 'traefik mesh')),
    ('kubernetes', ('kube-proxy',)),
    ('redis', ('redis', 'redis-master', 'redis-node', 'redis-replicas')),
)


def _build_static_slug_lookup() -> Mapping[str, str]:
    lookup: Dict[str, str] = {}
    for slug, addon_names in EOL_SLUG_ALIAS_GROUPS:
        for addon_name in addon_names:
            lookup[normalize_name(addon_name)] = slug
    return MappingProxyType(lookup)


STATIC_SLUG_LOOKUP = _build_static_slug_lookup()


def build_runtime_slug_lookup(products: Iterable[EOLProduct]) -> Dict[str, str]:
    """
    Build a normalized name -> slug map from the live endoflife.date product catalog.

    Each product registers its slug, label and aliases. When two products
    claim the same normalized name the first one keeps it.

    Args:
        products: Products from the v1 catalog

    Returns:
        Dictionary of normalized name to product slug
    """
    lookup: Dict[str, str] = {}
    for product in products:
        slug = product.name.strip().lower()
        if not slug:
            continue
        for raw_name in (slug, product.label, *product.aliases):
            normalized = normalize_name(raw_name or "")
            if normalized:
                lookup.setdefault(normalized, slug)
    return lookup


def lookup_eol_slug(addon_name: str, runtime_lookup: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """Resolve an addon name to a product slug, live catalog first, then the static table."""
    normalized = normalize_name(addon_name)
    if runtime_lookup and normalized in runtime_lookup:
        return runtime_lookup[normalized]
    return STATIC_SLUG_LOOKUP.get(normalized)


def version_matches_cycle(version: str, cycle: str) -> bool:
    """
    True if an installed version belongs to a release cycle.

    A cycle label matches when it equals the version, or when it is the
    version's major (single-component label) or major.minor (two or more
    components). Versions with fewer than two components only match exactly.
    """
    version = strip_v_prefix(version)
    if version == cycle:
        return True

    version_parts = version.split('.', 2)
    cycle_parts = cycle.split('.', 2)
    if len(version_parts) < 2 or not cycle:
        return False

    if len(cycle_parts) == 1:
        return version_parts[0] == cycle_parts[0]
    return version_parts[0] == cycle_parts[0] and version_parts[1] == cycle_parts[1]


def find_matching_cycle(installed_version: str, cycles: Sequence[EOLCycle]) -> Optional[EOLCycle]:
    """First cycle, in input order, that the installed version belongs to."""
    for cycle in cycles:
        if version_matches_cycle(installed_version, cycle.cycle):
            return cycle
    return None


class EOLStatusResolver:
    """Derives support status and end-of-support date for an installed version."""

    def resolve(self, installed_version: str, cycles: Sequence[EOLCycle],
                today: Optional[date] = None) -> Tuple[Optional[bool], str]:
        """
        Resolve support status of the installed version.

        Args:
            installed_version: Installed addon version
            cycles: Release cycles in the order the API returned them
            today: Reference date, defaults to the current date

        Returns:
            Tuple of (supported, supported_until). supported is None when
            unknown; supported_until is the ISO date or an empty string.
        """
        cycle = find_matching_cycle(installed_version, cycles)
        if cycle is None:
            return None, ""

        status = cycle.eol
        if status.state == EOLState.STILL_SUPPORTED:
            return True, ""
        if status.state == EOLState.ALREADY_UNSUPPORTED:
            return False, ""
        if status.state == EOLState.SUPPORTED_UNTIL:
            reference = today or date.today()
            return reference < status.until, status.raw_date
        return None, ""


def summarize_eol(installed_version: str, cycles: Sequence[EOLCycle],
                  today: Optional[date] = None) -> str:
    """
    Summarize release-cycle data for the installed version.

    Returns:
        A short sentence such as "Latest release v8.0.2 (cycle 8.0). Supported until 2026-01-01.",
        or an empty string when no cycle data applies
    """
    if not cycles:
        return ""

    cycle = find_matching_cycle(installed_version, cycles)
    if cycle is None:
        latest = cycles[0]
        if latest.latest:
            return f"Latest release {latest.latest} (cycle {latest.cycle})."
        return ""

    parts = []
    if cycle.latest:
        parts.append(f"Latest release {cycle.latest} (cycle {cycle.cycle}).")
    else:
        parts.append(f"Installed version is in cycle {cycle.cycle}.")

    supported, until = EOLStatusResolver().resolve(installed_version, [cycle], today=today)
    if until:
        parts.append(f"Supported until {until}." if supported else f"End of life since {until}.")
    elif supported is True:
        parts.append("Still supported.")
    elif supported is False:
        parts.append("No longer supported.")
    return ' '.join(parts)
