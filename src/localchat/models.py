"""Installed-model registry and downloads.

The registry is the single source of truth for which models exist on disk.
Installed files follow the naming convention ``<prefix><id><suffix>``
(``ggml-<id>.gguf`` by default); only files matching it are listed.
Catalog entries describe models that can be fetched with ``--download``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from localchat.config import LocalChatConfig, resolve_model_dir

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelInfo:
    """A model known to the registry, installed or not."""

    filename: str
    path: Path
    installed: bool = True
    hf_repo: str = ""
    hf_file: str = ""


class ModelRegistry:
    """Enumerate installed model files plus downloadable catalog entries."""

    def __init__(
        self,
        model_dir: Path,
        prefix: str = "ggml-",
        suffix: str = ".gguf",
        catalog: list[ModelInfo] | None = None,
    ) -> None:
        self.model_dir = model_dir
        self.prefix = prefix
        self.suffix = suffix
        self._catalog = list(catalog or [])

    @classmethod
    def from_config(cls, config: LocalChatConfig) -> ModelRegistry:
        mc = config.model
        model_dir = resolve_model_dir(config)
        catalog: list[ModelInfo] = []
        if mc.hf_repo and mc.hf_file:
            stem = Path(mc.hf_file).name
            if stem.endswith(mc.file_suffix):
                stem = stem[: -len(mc.file_suffix)]
            else:
                stem = Path(stem).stem
            filename = f"{mc.file_prefix}{stem}{mc.file_suffix}"
            catalog.append(
                ModelInfo(
                    filename=filename,
                    path=model_dir / filename,
                    installed=False,
                    hf_repo=mc.hf_repo,
                    hf_file=mc.hf_file,
                )
            )
        return cls(model_dir, mc.file_prefix, mc.file_suffix, catalog)

    def _scan(self) -> list[ModelInfo]:
        if not self.model_dir.is_dir():
            return []
        found = []
        for path in sorted(self.model_dir.glob(f"{self.prefix}*{self.suffix}")):
            if path.is_file():
                found.append(ModelInfo(filename=path.name, path=path, installed=True))
        return found

    def model_list(self) -> list[ModelInfo]:
        """All known models: installed files first, then catalog entries."""
        installed = self._scan()
        names = {info.filename for info in installed}
        pending = [
            info for info in self._catalog
            if info.filename not in names
        ]
        return installed + pending

    def download(self, info: ModelInfo) -> Path:
        """Fetch a catalog entry from HuggingFace under its conventional name.

        Returns the installed path.  Raises ``ImportError`` when
        huggingface-hub is missing and ``ValueError`` for entries without a
        download source.
        """
        if info.installed and info.path.exists():
            return info.path
        if not (info.hf_repo and info.hf_file):
            raise ValueError(f"No download source for {info.filename}")

        from huggingface_hub import hf_hub_download

        self.model_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Downloading %s from %s", info.hf_file, info.hf_repo)
        downloaded = Path(
            hf_hub_download(
                repo_id=info.hf_repo,
                filename=info.hf_file,
                local_dir=str(self.model_dir),
            )
        )
        target = self.model_dir / info.filename
        if downloaded != target:
            downloaded.replace(target)
        return target
