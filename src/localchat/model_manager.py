"""Model management helpers used by the TUI slash commands.

Pure logic for formatting model info and listing models.  Functions accept
the data they need so they stay decoupled from the Textual app.
"""

from __future__ import annotations

from localchat.config import ServerConfig
from localchat.inference.engine import EngineInfo
from localchat.models import ModelInfo, ModelRegistry
from localchat.server.resolver import model_to_name


# ─── /model (info) ──────────────────────────────────────────────────

def format_model_info(engine_info: EngineInfo, model_id: str | None) -> str:
    """Build the model-info display text shown by ``/model``."""
    if not model_id:
        return "No model loaded.\n[dim]Use /model list to see installed models[/]"
    parts = ["[bold]Model Info[/]"]
    parts.append(f"  Model: {model_id}")
    if engine_info.model_path:
        parts.append(f"  File: {engine_info.model_path}")
    if engine_info.n_ctx:
        parts.append(f"  Context: {engine_info.n_ctx} tokens")
    if engine_info.n_gpu_layers:
        parts.append(f"  GPU layers: {engine_info.n_gpu_layers}")
    return "\n".join(parts)


# ─── /model list ─────────────────────────────────────────────────────

def format_model_list(registry: ModelRegistry, current_model_id: str | None) -> str:
    """Format installed and downloadable models for display."""
    models = registry.model_list()
    if not models:
        return (
            f"No models found in {registry.model_dir}\n"
            "[dim]Run localchat --download to fetch the default model[/]"
        )

    lines = ["[bold]Models[/]"]
    for info in models:
        lines.append(_format_entry(info, registry, current_model_id))
    lines.append("\n[dim]Use /model switch <id> to load a model[/]")
    return "\n".join(lines)


def _format_entry(info: ModelInfo, registry: ModelRegistry, current_model_id: str | None) -> str:
    model_id = model_to_name(info, registry.prefix, registry.suffix)
    if not info.installed:
        return f"  [dim]{model_id} (not installed)[/]"
    marker = " [green]◀ active[/]" if model_id == current_model_id else ""
    return f"  {model_id}{marker}"


# ─── /server ─────────────────────────────────────────────────────────

def format_server_status(config: ServerConfig, running: bool, error: str | None = None) -> str:
    if not config.enabled:
        return "Completions server is disabled ([server] enabled = false)."
    if error:
        return f"[red]Completions server failed:[/] {error}"
    if not running:
        return f"Completions server is not running (port {config.port})."
    base = f"http://{config.host}:{config.port}/v1"
    return (
        "[bold]Completions Server[/]\n"
        f"  Listening: {base}\n"
        f"  Endpoints: GET {base}/models, POST {base}/completions"
    )
