# kangal

Building blocks for a proxy that accepts load-test definitions over HTTP
and serves their reports. It has no dependencies outside the standard
library.

## Install

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Modules

### `kangal.request`

This module validates the form that creates a load test.

- `parse_multipart(body, content_type)` parses a `multipart/form-data`
  body into a `Form`. It also accepts an
  `application/x-www-form-urlencoded` body. Any other media type, or a
  missing boundary, raises `RequestError`.
- `Form.value(name)` returns the first value of a field, or `""` when the
  field is absent.
- `Form.file(name)` returns the first uploaded `FormFile` (`filename`,
  `content`). When no file was uploaded under that name it raises
  `MissingFileError`.

The form readers:

| Function | Field | Returns | Behaviour |
| --- | --- | --- | --- |
| `get_load_test_type(form)` | `type` | the type | Raises `EmptyTypeError` when the field is empty. |
| `get_distributed_pods(form)` | `distributedPods` | an integer | The value must fit in 32 bits. |
| `get_overwrite(form)` | `overwrite` | a boolean | A missing value gives `False`. Accepts `1`/`t`/`true`/`0`/`f`/`false` and their case variants. |
| `get_target_url(form)` | `targetURL` | the URL | Optional. When given, it must have a scheme and a host, otherwise `WrongURLFormatError`. |
| `get_duration(form)` | `duration` | a `timedelta` | Zero when the field is missing. |
| `get_image(form, role)` | `role` | `ImageDetails(image, tag)` | Splits forms such as `image:tag`, `registry/image:tag` and `host:port/registry/image:tag`. |
| `get_test_file(form)` | `testFile` | the file text | Required. The extension must be `jmx`, `py`, `json`, `toml` or `js`. |
| `get_test_data(form)` | `testData` | the file text | Optional; returns `""` when absent. The extension must be `csv` or `protoset`. CSV content must be well formed. |
| `get_env_vars(form)` | `envVars` | a dict | Optional; returns `None` when absent. Must be a `.csv` file of `key,value` rows. |

An uploaded file that is empty raises `FileEmptyError`. A file with an
extension that is not accepted raises `WrongFileFormatError`. All errors
from this module derive from `RequestError`, which is a `ValueError`.

Two helpers are also available. `get_type_from_name(filename)` returns
the text after the last dot, or `""` when the name has no dot.
`check_csv_file(text)` raises `RequestError` unless the text is valid
CSV.

### `kangal.envs`

`read_envs(text)` reads `key,value` CSV rows into a dict; when a key
repeats, the later row wins. A row that does not have exactly two columns
raises `InvalidCSVFormatError`.

### `kangal.durations`

`parse_duration(value)` parses strings such as `"1m"`, `"1h30m"`,
`"1.5s"` or `"250ms"` into a `datetime.timedelta`. The accepted units are
`ns`, `us`/`µs`, `ms`, `s`, `m` and `h`, and a leading sign is allowed.
Malformed input, for example `"1d"`, raises `ValueError`.

### `kangal.config`

`load_proxy_config(environ=None)`, `load_openapi_config(environ=None)`
and `load_report_config(environ=None)` build `ProxyConfig`,
`OpenAPIConfig` and `ReportConfig` from a mapping of environment
variables. When no mapping is given they read `os.environ`.

Defaults:

| Setting | Variable | Default |
| --- | --- | --- |
| HTTP port | `WEB_HTTP_PORT` | `8080` |
| Maximum list limit | `MAX_LIST_LIMIT` | `50` |
| Kube client timeout | `KUBE_CLIENT_TIMEOUT` | `5s` |
| Custom images allowed | `ALLOWED_CUSTOM_IMAGES` | `false` |
| OpenAPI spec path | `OPEN_API_SPEC_PATH` | `/etc/kangal` |
| OpenAPI spec file | `OPEN_API_SPEC_FILE` | `openapi.json` |
| CORS allowed origins | `OPEN_API_CORS_ALLOW_ORIGIN` | `*` |
| CORS allowed headers | `OPEN_API_CORS_ALLOW_HEADERS` | `Content-Type,api_key,Authorization` |
| Report storage | `AWS_*` | empty strings; `AWS_USE_HTTPS` defaults to `false` |

A value that cannot be parsed raises `ConfigError`.

### `kangal.openapi`

This module provides WSGI applications for the OpenAPI spec and its UI.

- `openapi_spec_app(config)` serves the spec file. When
  `config.server_url` is empty, the file is served as it is. Otherwise
  `servers[0].url` in the spec is replaced with that URL, and when
  `server_description` is set, `servers[0].description` is replaced too.
  A missing or unreadable file produces a 404, 403 or 500 response.
- `openapi_ui_app(config)` redirects with a 302 to `config.ui_url`. When
  no UI URL is configured it answers 404.
- `openapi_spec_cors_middleware(config)` returns a function that wraps a
  WSGI app in a `CORSMiddleware`. The middleware allows GET, HEAD and
  OPTIONS with credentials, exposes all headers, and passes every
  request, preflight ones included, on to the wrapped app.

### `kangal.archive`

`untar(prefix, stream)` unpacks an uncompressed tar archive below
`prefix`. Only directories and regular files are written. If `prefix`
already exists, nothing is done.

### `kangal.objectstore`

- `ObjectStore` is an abstract bucket with `stat`, `get_object` and
  `list_objects`. `MemoryObjectStore` implements it in memory and adds
  `put(key, data, content_type)`.
- `ObjectFileSystem(store).open(name)` returns an `ObjectFile`:
  - A name ending in `/` opens a directory, which can be listed with
    `readdir`.
  - A name with a single path segment, such as `/report`, opens
    `report/index.html`.
  - A missing object raises `FileNotFoundError`.
- `MemoryFile` wraps a reader as a file with `read`, `seek`, `stat`,
  `readdir` and `close`.

## Example

```python
from kangal.request import parse_multipart, get_load_test_type, get_distributed_pods, get_test_file

body = (
    b"--b\r\n"
    b'Content-Disposition: form-data; name="type"\r\n\r\n'
    b"JMeter\r\n"
    b"--b\r\n"
    b'Content-Disposition: form-data; name="distributedPods"\r\n\r\n'
    b"2\r\n"
    b"--b\r\n"
    b'Content-Disposition: form-data; name="testFile"; filename="plan.jmx"\r\n\r\n'
    b"<jmeterTestPlan/>\r\n"
    b"--b--\r\n"
)
form = parse_multipart(body, "multipart/form-data; boundary=b")

get_load_test_type(form)    # "JMeter"
get_distributed_pods(form)  # 2
get_test_file(form)         # "<jmeterTestPlan/>"
```

## What this package does not do

This package contains only the pieces listed above. It does not:

- run an HTTP server;
- route the load-test endpoints;
- create, list or delete load tests on a cluster;
- fetch pod logs;
- talk to a real S3-compatible storage service. `MemoryObjectStore` is
  the only `ObjectStore` it ships.

It also has no command-line entry point.