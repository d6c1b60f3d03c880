[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ofproviders"
version = "0.1.0"
description = "Feature-flag providers for a GO Feature Flag relay proxy and for Harness, LaunchDarkly and Unleash clients, with a shared evaluation model"
requires-python = ">=3.10"
dependencies = []
keywords = ["feature-flags", "feature-toggles", "openfeature", "providers"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["ofproviders"]

[tool.pytest.ini_options]
addopts = "-ra"
