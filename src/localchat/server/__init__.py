"""OpenAI-compatible completions bridge over the shared engine context."""
