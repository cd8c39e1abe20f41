# fdfsmigrate

Building blocks for moving files between FastDFS clusters, for example from a
5.0.x cluster to a 6.0.x one:

- `fdfsmigrate.fastdfs.client.Client`: a blocking FastDFS client. It pings a
  tracker, asks it for a storage server, and lists, downloads, uploads, deletes
  and inspects files on that storage server.
- `fdfsmigrate.fastdfs.connection_pool.ConnectionPool` and `PooledClient`: a
  bounded pool of tracker connections, and a client that borrows one
  connection per operation.
- `fdfsmigrate.fastdfs.cluster_manager.ClusterManager`: a registry of clusters
  keyed by id, each with its own pool and a health check that is cached for
  30 seconds. The module also has `check_connection(cluster)` and
  `get_cluster_info(cluster)`.
- `fdfsmigrate.models`: dataclasses for clusters, migrations, scheduled tasks,
  task logs and resumable transfer states. They provide validation, status
  checks, progress arithmetic, and `to_dict` / `from_dict` conversion.
- `fdfsmigrate.config.load()`: configuration from built-in defaults, an
  optional YAML file and the environment.
- `fdfsmigrate.logger.init_logging()`: JSON log lines written to stdout and to
  a log file.
- `fdfsmigrate.server.Server`: a small Flask HTTP server.

## Installation

```
pip install .
```

To run the tests as well:

```
pip install ".[test]"
pytest
```

## Running the server

```
fdfsmigrate
```

The server serves these routes:

- `GET /health` returns `{"status":"ok","time":<unix seconds>}`.
- `GET /api/v1/ping` returns `{"message":"pong"}`.
- `GET /` renders `web/templates/index.html` if that file exists. Otherwise it
  returns `{"title":"FastDFS Migration System","status":"running"}`.
- `/static/...` serves files from `./web/static`.

It runs until it receives SIGINT or SIGTERM, then shuts down.

### Configuration

The first of `config.yaml`, `config.yml` or `config` found in the current
directory, then in `./configs/`, is read as YAML. A missing file is not an
error. The built-in defaults are:

```yaml
server:
  host: 0.0.0.0
  port: "8080"
database:
  type: sqlite
  dsn: ./migration.db
redis:
  addr: localhost:6379
  password: ""
  db: 0
migration:
  default_workers: 5
  chunk_size: 1048576
  max_retry: 3
  retry_interval: 30s
logging:
  level: info
  file: ./logs/migration.log
  max_size: 100
  max_backups: 5
```

An environment variable named after the upper-cased dotted key overrides both
the file and the defaults. Because the name contains a dot, it has to be set
with `env`:

```
env SERVER.PORT=9000 fdfsmigrate
```

Durations such as `retry_interval` accept forms like `30s`, `1m30s` or `500ms`.
A bare number is read as nanoseconds. The log level is one of `debug`, `info`,
`warn`/`warning`, `error`, `fatal`, `panic` or `trace`. With `logging.file`
set, its directory is created and each log line is written both to stdout and
to that file.

## Using the library

```python
from fdfsmigrate.fastdfs.client import Client, parse_file_id
from fdfsmigrate.fastdfs.cluster_manager import ClusterManager, check_connection
from fdfsmigrate.fastdfs.protocol import FastDFSError
from fdfsmigrate.models.cluster import Cluster

cluster = Cluster(
    id="source",
    name="source cluster",
    version="5.0.7",
    tracker_addr="192.168.1.100",
    tracker_port=22122,
)
cluster.validate()          # raises ValidationError if incomplete

try:
    check_connection(cluster)
except FastDFSError as exc:
    print("tracker unreachable:", exc)

# A single connection, used as a context manager
with Client(cluster.tracker_addr, cluster.tracker_port) as client:
    file_id = client.upload_file("group1", "hello.txt", b"Hello")
    print(client.download_file(file_id))
    print(client.get_file_info(file_id).file_size)
    client.delete_file(file_id)

# Several clusters with pooled, health-checked connections
manager = ClusterManager()
manager.add_cluster(cluster)                     # raises FastDFSError if the ping fails
pooled = manager.get_client("source")
for info in pooled.list_files("group1", "", 10):
    print(info.file_id(), info.file_size, info.created_at())
print(manager.health_check())                    # {cluster_id: error} for unhealthy clusters
manager.close()

print(parse_file_id("group1/M00/00/00/test.jpg"))  # ('group1', 'M00/00/00/test.jpg')
```

The models work on their own:

```python
from fdfsmigrate.models.common import Pagination
from fdfsmigrate.models.transfer_state import ChunkState, TransferState

state = TransferState(
    total_size=1000,
    transferred_size=500,
    chunk_states=[ChunkState(index=0, completed=True), ChunkState(index=1)],
)
print(state.progress_string())      # 50.00% (1/2 chunks)
print(state.next_incomplete_chunk().index)

page = Pagination(page=2, page_size=150)
print(page.offset(), page.limit())  # 150 100
```

Errors are raised as exceptions. `fdfsmigrate.models.common.ValidationError`
covers invalid models, `fdfsmigrate.fastdfs.protocol.FastDFSError` covers
protocol and connection failures, and `fdfsmigrate.config.ConfigError` covers
unreadable configuration.

## What the package does not do

- It does not store anything. The models convert to and from dicts and JSON,
  but nothing writes them to a database. The `database` settings in the
  configuration are read and then left unused, and the `fdfsmigrate.repository`
  package holds no modules.
- It does not run migrations. No code copies files from one cluster to
  another, or schedules or resumes such copies. The models only describe
  them.
- The HTTP server offers no API for clusters, files or migrations beyond the
  health and ping routes listed above.