# eventmesh

Building blocks for an event mesh server, for Python 3.10 and later.

| Module | What it holds |
| --- | --- |
| `eventmesh.config` | Server configuration: defaults, loading from YAML, the global instance |
| `eventmesh.logger` | Loggers with several outputs, the named logger registry, module-level logging |
| `eventmesh.log_config` | `OutputConfig`, `WriteConfig`, `FormatConfig`, `WriteMode`, `TimeUnit` |
| `eventmesh.levels` | `Level`, `Field`, `parse_level` |
| `eventmesh.writers` | Console and file writer factories and the writer registry |
| `eventmesh.formatting` | `ConsoleFormatter`, `JsonFormatter` and time encoders |
| `eventmesh.rollwriter` | `RollWriter`, a log file writer that rolls by size or time |
| `eventmesh.async_writer` | `AsyncRollWriter`, a batching background writer |
| `eventmesh.protocol_tcp` | `Command`, `Header`, `Package` of the TCP protocol |
| `eventmesh.naming` | Service instances, registries and selectors |
| `eventmesh.util` | Client identifiers, process id, host IPv4 address |
| `eventmesh.webhook` | A small HTTP server that prints event callbacks |

## Install

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Configuration

```python
from eventmesh.config import load_config, set_global_config, global_config

cfg = load_config("./configs/eventmesh-server.yaml")
set_global_config(cfg)
print(global_config().server.grpc.port)
```

`load_config` reads the YAML file over `default_config()`: values missing from the file
keep their defaults. A file that cannot be read or parsed, or a value of the wrong type,
raises an exception. `load_global_config(path)` loads and installs in one step.
Durations such as `send-message-timeout: 5s` are read with `parse_duration`, which
accepts strings like `"5s"`, `"1h30m"` or `"100ms"` and returns a `timedelta`.

## Logging

The default logger writes console-format lines to standard output at debug level:

```python
from eventmesh import logger
from eventmesh.levels import Field

logger.infof("server listening on %s", "10010")
logger.bind(Field("topic", "orders")).warn("consumer lagging")
```

Each level has a print-style method (`debug`, `info`, `warn`, `error`, `fatal`) and a
printf-style one (`debugf`, `infof`, ...); `Logger` also has `trace` and `tracef`.
`fatal` and `fatalf` flush the outputs and raise `SystemExit(1)`. `Logger.bind` adds
`Field` values to every entry; `Logger.with_fields("uid", "42")` adds string pairs.

Named loggers are built from a list of outputs:

```python
from eventmesh.logger import DEFAULT_LOG_FACTORY, get

DEFAULT_LOG_FACTORY.setup("app", [
    {"writer": "console", "level": "info", "formatter": "console"},
    {
        "writer": "file",
        "level": "debug",
        "formatter": "json",
        "writer_config": {"filename": "logs/app.log", "max_size": 10, "max_backups": 5},
    },
])
get("app").infof("ready after %d ms", 12)
```

Writers are `console` and `file`; formatters are `console` (tab-separated) and `json`.
Level names are `debug`, `info`, `warn`, `error` and `fatal`. A file output rolls by size
(`max_size` in megabytes) unless `roll_type` is `time`, in which case `time_unit`
(`minute`, `hour`, `day`, `month`, `year`) is appended to the file name as a date
suffix. `write_mode` 1 writes synchronously, 2 asynchronously, and 3 (the default)
asynchronously, dropping lines when the queue is full.

Levels of a logger's outputs are addressed by position, as strings:

```python
from eventmesh.levels import Level

logger.set_level("0", Level.INFO)
logger.get_level("0")   # Level.INFO
```

`redirect_std_log(logger, level)` sends records of the standard `logging` root logger
to a `Logger` and returns a function that undoes it.

## Rolling files

```python
from eventmesh.rollwriter import RollOptions, RollWriter
from eventmesh.async_writer import AsyncOptions, AsyncRollWriter

options = RollOptions(max_backups=3, compress=True).with_max_size_mb(50)
with AsyncRollWriter(RollWriter("logs/server.log", options), AsyncOptions(drop_log=True)) as out:
    out.write(b"hello\n")
```

`RollWriter` renames a full file with a `bk-` timestamp suffix, removes old files
beyond `max_backups` or older than `max_age` days, and gzips the rest when `compress`
is set. `AsyncRollWriter` raises `LogQueueFullError` when `drop_log` is set and its
queue is full; `sync()` writes out everything queued.

## Client identifiers

```python
from eventmesh.util import build_mesh_client_id, build_mesh_tcp_client_id, get_ip

build_mesh_client_id(" test-group ", "idc")    # "test-group-(idc)-v0.0.1-<pid>"
build_mesh_tcp_client_id("1234", "test", "c1")  # "1234-test-c1-v0.0.1-<pid>"
get_ip()                                        # first non-loopback IPv4 address
```

`get_ip` raises `RuntimeError` when the host has no such address.

## Naming and TCP protocol

`eventmesh.naming` keeps named registries (`register_registry`, `get_registry`) and
selectors (`register_selector`, `get_selector`). The default registry is a
`NoopRegistry`, whose `register` and `deregister` raise `RegistryNotImplementedError`.

`eventmesh.protocol_tcp` defines the `Command` codes, and `Header` converts to and from
its JSON object with `to_dict` and `from_dict`.

## Webhook receiver

A small HTTP server for inspecting event callbacks. It accepts any method on any path,
URL-decodes the body, prints it on one line and answers with
`{"retCode":"0","errMsg":"OK"}`; a body with a bad escape is answered with `retCode`
`"-1"` and the error message.

```
eventmesh-webhook
```

The server listens on port 18080.

## What this package does not do

It does not run an event mesh server: the configuration describes HTTP, gRPC and TCP
listeners, connectors and plugins, but nothing here starts those listeners, loads
plugins or moves messages. It defines no gRPC status codes or message types.