"""Load-test proxy helpers: form parsing, configuration, OpenAPI WSGI apps, tar unpacking and object storage."""

__version__ = "0.1.0"