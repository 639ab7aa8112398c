"""Classes for presenting clusters and machine pools of the clusters management API.

The API returns deeply nested records. These classes flatten them into what an
operator usually needs to look at, and serialize with the same field names.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, field_serializer


class MachinePool(BaseModel):
    """Class representing a machine pool of a cluster.

    Args:
        id: The ID of the machine pool.
        href: The API link of the machine pool.
        instance_type: The cloud instance type of its nodes.
        replicas: The number of nodes, when autoscaling is disabled.
        availability_zones: The availability zones the nodes are spread over.
        labels: Labels applied to the nodes.
        autoscaling_min_replicas: Lower bound of nodes, when autoscaling is enabled.
        autoscaling_max_replicas: Upper bound of nodes, when autoscaling is enabled.
    """

    id: str = ""
    href: str = ""
    instance_type: str = ""
    replicas: int = 0
    availability_zones: List[str] = []
    labels: Dict[str, str] = {}
    autoscaling_min_replicas: Optional[int] = None
    autoscaling_max_replicas: Optional[int] = None


class Cluster(BaseModel):
    """Class representing a cluster, flattened for presentation.

    Args:
        id: The ID of the cluster.
        href: The API link of the cluster.
        name: The name of the cluster.
        external_id: The ID of the cluster inside OpenShift.
        display_name: The name shown to users. Always the same as the name.
        subscription_id: The ID of the cluster's subscription.
        state: The installation state of the cluster.
        cloud_provider: The ID of the cloud provider.
        version: The OpenShift version.
        region_id: The ID of the cloud region.
        multi_az: If the cluster spans multiple availability zones.
        machine_pools: The presented machine pools, omitted when there are none.
        product_id: The ID of the product, e.g. osd or rosa.
        managed: If the cluster is managed.
        console_url: The URL of the web console.
        creation_timestamp: When the cluster was created.
    """

    id: str = ""
    href: str = ""
    name: str = ""
    external_id: str = ""
    display_name: str = ""
    subscription_id: str = ""
    state: str = ""
    cloud_provider: str = ""
    version: str = ""
    region_id: str = ""
    multi_az: bool = False
    machine_pools: List[MachinePool] = []
    product_id: str = ""
    managed: bool = False
    console_url: str = ""
    creation_timestamp: Optional[datetime] = None

    @field_serializer("creation_timestamp")
    def serialize_creation_timestamp(self, value: Optional[datetime]) -> Optional[str]:
        """Serialize the timestamp in RFC 3339."""
        return value.isoformat() if value else None

    def to_dict(self) -> dict:
        """Return the cluster as a dict, without machine_pools if it has none."""
        data = self.model_dump(mode="json")
        if not self.machine_pools:
            del data["machine_pools"]
        return data
