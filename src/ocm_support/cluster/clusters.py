"""Module responsible for querying clusters from the clusters management API."""

import logging
from typing import Any, Dict, Iterable, List

import requests
import tenacity

from ocm_support.cluster.classes import Cluster, MachinePool

log = logging.getLogger(__name__)

CLUSTERS_PATH = "/api/clusters_mgmt/v1/clusters"
REQUEST_TIMEOUT = 30

Json = Dict[str, Any]


class ClusterQueryError(Exception):
    """Exception for when clusters or machine pools could not be retrieved."""

    pass


class RetryableResponseError(Exception):
    """Exception for server side errors that are worth retrying."""

    pass


def build_search_query(key: str, search: str = "") -> str:
    """Return the search expression matching clusters by any of their identifiers.

    The key is matched against the cluster ID, the external cluster ID, the
    organization ID and the subscription ID.

    Args:
        key: The identifier to match.
        search: An optional extra search expression, joined with `and`.

    Raises:
        ValueError: If the key is empty.
    """
    if not key:
        raise ValueError("organization ID cannot be empty")

    query = f"(id = '{key}'"
    query += f" or external_id = '{key}'"
    query += f" or organization.id = '{key}'"
    query += f" or subscription.id = '{key}')"
    if search:
        query += f" and {search}"

    return query


class ClustersManagementClient:
    """Minimal client for the clusters management API.

    Args:
        url: The base URL of the API, e.g. https://api.openshift.com
        token: The bearer token to authenticate with.
        session: The requests Session to use. A new one is created if not given.
    """

    def __init__(self, url: str, token: str, session: requests.Session | None = None):
        self.url = url.rstrip("/")
        self._session = session or requests.Session()
        self._session.headers.update({"Authorization": f"Bearer {token}"})

    def list_clusters(self, search: str, size: int) -> List[Json]:
        """Return the clusters matching a search expression.

        Args:
            search: The search expression.
            size: Maximum number of clusters to return.

        Raises:
            ClusterQueryError: If the clusters could not be retrieved.
        """
        payload = self._get(CLUSTERS_PATH, {"search": search, "size": size})
        return payload.get("items", [])

    def list_machine_pools(self, cluster_id: str) -> List[Json]:
        """Return the machine pools of a cluster.

        Raises:
            ClusterQueryError: If the machine pools could not be retrieved.
        """
        payload = self._get(f"{CLUSTERS_PATH}/{cluster_id}/machine_pools", {})
        return payload.get("items", [])

    @tenacity.retry(
        retry=tenacity.retry_if_exception_type(
            (requests.ConnectionError, requests.Timeout, RetryableResponseError)
        ),
        stop=tenacity.stop_after_attempt(3),
        wait=tenacity.wait_fixed(2),
        reraise=True,
    )
    def _request(self, path: str, params: Json) -> requests.Response:
        """Send a GET request, retrying on network errors and 5xx responses."""
        log.info("GET %s%s", self.url, path)
        response = self._session.get(f"{self.url}{path}", params=params, timeout=REQUEST_TIMEOUT)
        if response.status_code >= 500:
            log.info("Got status %s, retrying...", response.status_code)
            raise RetryableResponseError(f"{response.status_code}: {response.text}")

        return response

    def _get(self, path: str, params: Json) -> Json:
        try:
            response = self._request(path, params)
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, RetryableResponseError, ValueError) as e:
            raise ClusterQueryError(f"failed to retrieve {path}: {e}") from e


def get_clusters(
    key: str, search: str, limit: int, client: ClustersManagementClient
) -> List[Json]:
    """Return the raw clusters matching a key and an optional search expression.

    Args:
        key: A cluster, external cluster, organization or subscription ID.
        search: An optional extra search expression.
        limit: Maximum number of clusters to return.
        client: The ClustersManagementClient to use.

    Raises:
        ValueError: If the key is empty.
        ClusterQueryError: If the clusters could not be retrieved.
    """
    query = build_search_query(key, search)
    log.info("Searching clusters: %s", query)
    try:
        return client.list_clusters(query, limit)
    except ClusterQueryError as e:
        raise ClusterQueryError(f"failed to retrieve clusters: {e}") from e


def _nested_id(record: Json, field: str, attribute: str = "id") -> str:
    nested = record.get(field) or {}
    return nested.get(attribute) or ""


def present_machine_pools(machine_pools: Iterable[Json]) -> List[MachinePool]:
    """Flatten raw machine pools into MachinePool objects."""
    presented = []
    for pool in machine_pools:
        autoscaling = pool.get("autoscaling") or {}
        presented.append(
            MachinePool(
                id=pool.get("id") or "",
                href=pool.get("href") or "",
                instance_type=pool.get("instance_type") or "",
                replicas=pool.get("replicas") or 0,
                availability_zones=pool.get("availability_zones") or [],
                labels=pool.get("labels") or {},
                autoscaling_min_replicas=autoscaling.get("min_replicas"),
                autoscaling_max_replicas=autoscaling.get("max_replicas"),
            )
        )

    return presented


def present_cluster(cluster: Json, machine_pools: Iterable[Json] = ()) -> Cluster:
    """Flatten a raw cluster, and its raw machine pools, into a Cluster.

    Missing fields are presented as empty values.
    """
    return Cluster(
        id=cluster.get("id") or "",
        href=cluster.get("href") or "",
        name=cluster.get("name") or "",
        external_id=cluster.get("external_id") or "",
        # Display name is the same as name
        display_name=cluster.get("name") or "",
        subscription_id=_nested_id(cluster, "subscription"),
        state=cluster.get("state") or "",
        cloud_provider=_nested_id(cluster, "cloud_provider"),
        version=cluster.get("openshift_version") or "",
        region_id=_nested_id(cluster, "region"),
        multi_az=bool(cluster.get("multi_az")),
        machine_pools=present_machine_pools(machine_pools),
        product_id=_nested_id(cluster, "product"),
        managed=bool(cluster.get("managed")),
        console_url=_nested_id(cluster, "console", "url"),
        creation_timestamp=cluster.get("creation_timestamp"),
    )


def get_presented_clusters(
    key: str,
    search: str,
    limit: int,
    fetch_machine_pools: bool,
    client: ClustersManagementClient,
) -> List[Cluster]:
    """Return the clusters matching a key, ready for presentation.

    Args:
        key: A cluster, external cluster, organization or subscription ID.
        search: An optional extra search expression.
        limit: Maximum number of clusters to return.
        fetch_machine_pools: If the machine pools of every cluster should be retrieved too.
        client: The ClustersManagementClient to use.

    Raises:
        ValueError: If the key is empty.
        ClusterQueryError: If clusters or machine pools could not be retrieved.
    """
    presented = []
    for cluster in get_clusters(key, search, limit, client):
        machine_pools: List[Json] = []
        if fetch_machine_pools and cluster.get("id"):
            machine_pools = client.list_machine_pools(cluster["id"])
        presented.append(present_cluster(cluster, machine_pools))

    return presented
