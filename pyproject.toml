[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rustadvisor"
version = "0.1.0"
description = "HTTP service that plans tool use, searches crates, repositories and curated notes, and answers questions about Rust backend tooling with a local LLM"
requires-python = ">=3.10"
keywords = ["rust", "crates", "llm", "ollama", "agent", "fastapi", "redis", "research"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Framework :: FastAPI",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]
dependencies = [
    "fastapi>=0.110",
    "uvicorn>=0.27",
    "httpx>=0.27",
    "redis>=5.0",
    "python-dotenv>=1.0",
    "pydantic>=2.5",
]

[project.optional-dependencies]
test = [
    "pytest>=7.4",
    "pytest-asyncio>=0.23",
    "respx>=0.21",
]

[project.scripts]
rustadvisor = "rustadvisor.app:main"

[tool.hatch.build.targets.wheel]
packages = ["rustadvisor"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
