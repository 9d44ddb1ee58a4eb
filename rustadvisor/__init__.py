"""HTTP research assistant for Rust backend tooling: planning, crate, repository and knowledge search, and LLM answers."""

__version__ = "0.1.0"