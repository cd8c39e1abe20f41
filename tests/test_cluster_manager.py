import socket
import socketserver
import struct
import threading
from datetime import datetime, timedelta

import pytest

from fdfsmigrate.fastdfs.cluster_manager import (
    ClusterManager,
    check_connection,
    get_cluster_info,
)
from fdfsmigrate.fastdfs.protocol import FastDFSError
from fdfsmigrate.models.cluster import Cluster


class _Handler(socketserver.StreamRequestHandler):
    def handle(self):
        while True:
            raw = self.rfile.read(10)
            if len(raw) < 10:
                return
            length, command, _ = struct.unpack(">qBB", raw)
            if length:
                self.rfile.read(length)
            self.server.commands.append(command)
            self.wfile.write(struct.pack(">qBB", 0, 100, self.server.status))
            self.wfile.flush()


class _FakeTracker(socketserver.ThreadingTCPServer):
    allow_reuse_address = True
    daemon_threads = True

    def __init__(self):
        super().__init__(("127.0.0.1", 0), _Handler)
        self.status = 0
        self.commands = []


@pytest.fixture
def tracker():
    server = _FakeTracker()
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server
    server.shutdown()
    server.server_close()


@pytest.fixture
def dead_port():
    sock = socket.socket()
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


def _cluster(port):
    return Cluster(
        id="test-cluster",
        name="Test Cluster",
        tracker_addr="127.0.0.1",
        tracker_port=port,
    )


def test_add_cluster_without_server_fails(dead_port):
    manager = ClusterManager()
    with pytest.raises(FastDFSError, match="failed to connect to cluster Test Cluster"):
        manager.add_cluster(_cluster(dead_port))
    assert manager.list_clusters() == []
    manager.close()


def test_add_get_remove_cluster(tracker):
    manager = ClusterManager()
    cluster = _cluster(tracker.server_address[1])
    manager.add_cluster(cluster)
    try:
        assert manager.list_clusters() == [cluster]
        connection = manager.get_cluster("test-cluster")
        assert connection.cluster is cluster
        assert connection.is_healthy() is True
        assert manager.get_client("test-cluster") is connection.client
        manager.remove_cluster("test-cluster")
        assert connection.pool.closed is True
        with pytest.raises(FastDFSError, match="cluster test-cluster not found"):
            manager.get_cluster("test-cluster")
    finally:
        manager.close()


def test_remove_missing_cluster():
    manager = ClusterManager()
    with pytest.raises(FastDFSError, match="cluster nope not found"):
        manager.remove_cluster("nope")


def test_connection_stats(tracker):
    manager = ClusterManager()
    port = tracker.server_address[1]
    manager.add_cluster(_cluster(port))
    try:
        stats = manager.get_cluster("test-cluster").connection_stats()
        assert stats["cluster_id"] == "test-cluster"
        assert stats["cluster_name"] == "Test Cluster"
        assert stats["tracker_addr"] == "127.0.0.1"
        assert stats["tracker_port"] == port
        assert stats["is_healthy"] is True
        assert stats["pool_size"] == 10
        assert 0 <= stats["available_conn"] <= 10
    finally:
        manager.close()


def test_health_check_healthy_and_unhealthy(tracker):
    manager = ClusterManager()
    manager.add_cluster(_cluster(tracker.server_address[1]))
    try:
        assert manager.health_check() == {}
        connection = manager.get_cluster("test-cluster")
        connection.last_check = datetime.now() - timedelta(minutes=1)
        tracker.status = 2
        results = manager.health_check()
        assert list(results) == ["test-cluster"]
        assert isinstance(results["test-cluster"], FastDFSError)
        assert connection.is_healthy() is False
        with pytest.raises(FastDFSError, match="is unhealthy"):
            manager.get_cluster("test-cluster")
    finally:
        manager.close()


def test_recent_healthy_check_is_cached(tracker):
    manager = ClusterManager()
    manager.add_cluster(_cluster(tracker.server_address[1]))
    try:
        tracker.status = 2
        connection = manager.get_cluster("test-cluster")
        assert connection.is_healthy() is True
    finally:
        manager.close()


def test_close_empties_manager(tracker):
    manager = ClusterManager()
    manager.add_cluster(_cluster(tracker.server_address[1]))
    connection = manager.get_cluster("test-cluster")
    manager.close()
    assert manager.list_clusters() == []
    assert connection.pool.available() == 0


def test_check_connection_pings(tracker):
    check_connection(_cluster(tracker.server_address[1]))
    assert tracker.commands == [111]


def test_check_connection_ping_failure(tracker):
    tracker.status = 1
    with pytest.raises(FastDFSError, match="ping failed"):
        check_connection(_cluster(tracker.server_address[1]))


def test_check_connection_without_server(dead_port):
    with pytest.raises(FastDFSError, match="failed to connect"):
        check_connection(_cluster(dead_port))


def test_get_cluster_info(tracker):
    info = get_cluster_info(_cluster(tracker.server_address[1]))
    assert info.group_name == "group1"
    assert info.storage_port == 23000
    assert info.storage_count == 1
    assert info.active_count == 1
    assert info.store_path_count == 1
    assert info.total_mb == 0


def test_get_cluster_info_without_server(dead_port):
    with pytest.raises(FastDFSError, match="failed to connect"):
        get_cluster_info(_cluster(dead_port))