"""LocalChat: a local model chat TUI with an OpenAI-compatible completions server."""
