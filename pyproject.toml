[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "kangal"
version = "0.1.0"
description = "Request parsing, configuration, OpenAPI serving and report storage helpers for a load-test proxy"
requires-python = ">=3.10"
dependencies = []
keywords = ["load-testing", "proxy", "openapi", "wsgi", "cors", "multipart", "reports", "object-storage"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Software Development :: Testing :: Traffic Generation",
    "Topic :: Internet :: WWW/HTTP :: WSGI :: Middleware",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["kangal"]

[tool.pytest.ini_options]
addopts = "-ra"
