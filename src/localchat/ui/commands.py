"""Command palette providers for LocalChat."""

from __future__ import annotations

from textual.command import Hit, Hits, Provider

from localchat.server.resolver import installed_models


class ModelSwitchProvider(Provider):
    """Command palette provider for switching between installed models."""

    async def search(self, query: str) -> Hits:
        matcher = self.matcher(query)
        current = self.app.context.model_id

        for model_id, info in installed_models(self.app.registry):
            if model_id == current:
                continue
            label = f"Switch to {model_id}"
            score = matcher.match(label)
            if score > 0:
                yield Hit(
                    score,
                    matcher.highlight(label),
                    self._make_callback(model_id),
                    text=label,
                    help=f"Load {info.filename} into the engine",
                )

    def _make_callback(self, model_id: str):
        """Create a callback that switches to the given model."""
        def callback() -> None:
            self.app.load_model(model_id)
        return callback
