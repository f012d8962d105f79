"""Configuration loading and management for LocalChat."""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_MODEL_DIR = Path.home() / ".local" / "share" / "localchat" / "models"


@dataclass
class ModelConfig:
    model_dir: str = "auto"  # "auto" = ~/.local/share/localchat/models
    default: str = ""  # public model id loaded at startup ("" = first installed)
    file_prefix: str = "ggml-"
    file_suffix: str = ".gguf"
    n_ctx: int = 2048
    n_gpu_layers: int = 0
    hf_repo: str = "Qwen/Qwen3-4B-GGUF"
    hf_file: str = "Qwen3-4B-Q4_K_M.gguf"


@dataclass
class GenerationConfig:
    """Sampling settings that are never taken from an API request."""

    top_k: int = 40
    n_batch: int = 128
    repeat_penalty: float = 1.18
    repeat_last_n: int = 64
    n_threads: int = 0  # 0 = os.cpu_count()
    chat_template: str = "### Human:\n{prompt}\n### Assistant:\n"


@dataclass
class ChatConfig:
    max_tokens: int = 4096
    temperature: float = 0.28
    top_p: float = 0.95


@dataclass
class ServerConfig:
    enabled: bool = True
    host: str = "127.0.0.1"
    port: int = 4891
    transcript_timeout: float = 10.0  # seconds to wait for the UI to record a request
    engine_timeout: float = 300.0  # seconds to wait for the engine to become free
    legacy_compat: bool = False  # bare error statuses, {} for unknown models
    report_finish_reason: bool = False  # False = always report "stop"


@dataclass
class UIConfig:
    theme: str = "textual-dark"


@dataclass
class LocalChatConfig:
    model: ModelConfig = field(default_factory=ModelConfig)
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    chat: ChatConfig = field(default_factory=ChatConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    ui: UIConfig = field(default_factory=UIConfig)


_SECTIONS = ("model", "generation", "chat", "server", "ui")


def load_config(config_path: str | Path | None = None) -> LocalChatConfig:
    """Load configuration from TOML file, falling back to defaults.

    Search order:
    1. Explicit config_path argument
    2. ~/.config/localchat/config.toml
    3. Built-in defaults

    ``LOCALCHAT_MODEL_DIR`` and ``LOCALCHAT_SERVER_PORT`` override the
    file values.
    """
    config = LocalChatConfig()

    # Load defaults from bundled config
    default_path = Path(__file__).parent / "config.default.toml"
    if default_path.exists():
        _merge_toml(config, default_path)

    # Load user config
    if config_path:
        user_path = Path(config_path)
    else:
        user_path = Path.home() / ".config" / "localchat" / "config.toml"

    if user_path.exists():
        _merge_toml(config, user_path)
    elif config_path:
        logger.warning("Config file %s not found, using defaults", user_path)

    env_model_dir = os.environ.get("LOCALCHAT_MODEL_DIR")
    if env_model_dir:
        config.model.model_dir = env_model_dir

    env_port = os.environ.get("LOCALCHAT_SERVER_PORT")
    if env_port:
        try:
            config.server.port = int(env_port)
        except ValueError:
            logger.warning("Ignoring invalid LOCALCHAT_SERVER_PORT=%r", env_port)

    return config


def _merge_toml(config: LocalChatConfig, path: Path) -> None:
    """Merge a TOML file into the config, overwriting only specified fields."""
    with open(path, "rb") as f:
        data = tomllib.load(f)

    for section in _SECTIONS:
        if section not in data:
            continue
        target = getattr(config, section)
        for key, value in data[section].items():
            if hasattr(target, key):
                setattr(target, key, value)
            else:
                logger.debug("Unknown config key [%s] %s in %s", section, key, path)


def resolve_model_dir(config: LocalChatConfig) -> Path:
    """Resolve the model directory from config, expanding 'auto'."""
    if config.model.model_dir == "auto":
        return DEFAULT_MODEL_DIR
    return Path(config.model.model_dir).expanduser()
