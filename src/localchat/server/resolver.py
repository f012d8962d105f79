"""Map public model ids to installed registry entries and back."""

from __future__ import annotations

from localchat.models import ModelInfo, ModelRegistry


class ModelNamingError(ValueError):
    """A registry file name does not follow the ``<prefix><id><suffix>`` convention."""


def model_to_name(info: ModelInfo, prefix: str, suffix: str) -> str:
    """Derive the public id by stripping *prefix* and *suffix* from the file name."""
    filename = info.filename
    if not filename.startswith(prefix) or not filename.endswith(suffix):
        raise ModelNamingError(
            f"Model file {filename!r} does not match {prefix}<id>{suffix}"
        )
    model_id = filename[len(prefix) : len(filename) - len(suffix)]
    if not model_id:
        raise ModelNamingError(f"Model file {filename!r} has an empty id")
    return model_id


def model_file_name(model_id: str, prefix: str, suffix: str) -> str:
    """Inverse of :func:`model_to_name`."""
    return f"{prefix}{model_id}{suffix}"


def installed_models(registry: ModelRegistry) -> list[tuple[str, ModelInfo]]:
    """``(public id, info)`` for every installed model, in registry order."""
    return [
        (model_to_name(info, registry.prefix, registry.suffix), info)
        for info in registry.model_list()
        if info.installed
    ]


def find_model(registry: ModelRegistry, model_id: str | None) -> ModelInfo | None:
    """Return the installed model whose public id is *model_id*, or None."""
    if not model_id:
        return None
    for name, info in installed_models(registry):
        if name == model_id:
            return info
    return None
