[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "terralsp"
version = "0.1.0"
description = "In-memory document storage, LSP position mapping and request context for a Terraform language server"
requires-python = ">=3.10"
dependencies = []
keywords = ["terraform", "lsp", "language-server", "hcl", "virtual-filesystem"]
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
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
terralsp = "terralsp.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["terralsp"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
