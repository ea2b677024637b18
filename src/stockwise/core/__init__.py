"""Shared infrastructure: config, errors, logging, storage, LLM helpers, CLI."""
