"""LocalChat entry point: CLI argument parsing, model setup, and app launch."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from localchat.config import LocalChatConfig, load_config


def _get_version() -> str:
    """Return the installed package version, or fall back to 'unknown'."""
    from importlib.metadata import PackageNotFoundError, version

    try:
        return f"localchat {version('localchat')}"
    except PackageNotFoundError:
        return "localchat (unknown version, not installed as package)"


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="localchat",
        description="LocalChat: chat with a local model and serve it over an "
        "OpenAI-compatible completions API",
    )
    parser.add_argument(
        "--version",
        "-V",
        action="version",
        version=_get_version(),
    )
    parser.add_argument(
        "--config",
        "-c",
        help="Path to config.toml file",
    )
    parser.add_argument(
        "--model-dir",
        help="Directory holding installed models (overrides config)",
    )
    parser.add_argument(
        "--model",
        "-m",
        help="Public id of the model to load at startup (e.g. 'Qwen3-4B-Q4_K_M')",
    )
    parser.add_argument(
        "--serve",
        action="store_true",
        help="Run only the completions server, without the TUI",
    )
    parser.add_argument(
        "--no-server",
        action="store_true",
        help="Do not start the completions server alongside the TUI",
    )
    parser.add_argument(
        "--port",
        type=int,
        help="Completions server port (default: 4891)",
    )
    parser.add_argument(
        "--download",
        action="store_true",
        help="Download the configured model and exit",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--log-file",
        metavar="PATH",
        help="Write all log messages (DEBUG level) to a file. "
        "Useful for watching API traffic while the TUI is running.",
    )

    args = parser.parse_args()

    # Setup logging
    level = logging.DEBUG if args.verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(name)s: %(message)s")

    if args.log_file:
        file_handler = logging.FileHandler(args.log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logging.getLogger().addHandler(file_handler)
        logging.getLogger().setLevel(logging.DEBUG)

    # Load config
    config = load_config(args.config)

    if args.serve and args.no_server:
        print("Error: --serve and --no-server cannot be used together.")
        sys.exit(1)

    # Override config with CLI args
    if args.model_dir:
        config.model.model_dir = args.model_dir
    if args.model:
        config.model.default = args.model
    if args.port:
        config.server.port = args.port
    if args.no_server:
        config.server.enabled = False

    from localchat.models import ModelRegistry

    registry = ModelRegistry.from_config(config)

    if args.download:
        sys.exit(_download_models(registry))

    initial_model = _pick_initial_model(registry, config)
    if initial_model is None:
        print(f"No installed models found in {registry.model_dir}.")
        print("Run localchat --download, or copy a model there named "
              f"{config.model.file_prefix}<id>{config.model.file_suffix}.")
        if not args.serve:
            sys.exit(1)

    # Build the shared engine context
    from localchat.inference.context import EngineContext

    context = EngineContext(loader=lambda path: _load_local_engine(config, path))

    # Build the completions server
    from localchat.headless import HeadlessTranscript, run_headless
    from localchat.server.app import create_app
    from localchat.server.notifier import TranscriptNotifier
    from localchat.server.orchestrator import CompletionOrchestrator

    notifier = TranscriptNotifier(timeout=config.server.transcript_timeout)
    orchestrator = CompletionOrchestrator(
        context=context,
        registry=registry,
        notifier=notifier,
        generation=config.generation,
        engine_timeout=config.server.engine_timeout,
    )
    api = create_app(orchestrator=orchestrator, registry=registry, config=config.server)

    # Headless mode: server only, transcript goes to stderr
    if args.serve:
        notifier.attach_inline(HeadlessTranscript())
        sys.exit(run_headless(api, config))

    # Launch the TUI
    from localchat.app import LocalChatApp

    server = None
    if config.server.enabled:
        from localchat.server.runner import ServerThread

        server = ServerThread(api, config.server)

    app = LocalChatApp(
        context=context,
        registry=registry,
        notifier=notifier,
        config=config,
        server=server,
        initial_model=initial_model,
    )
    app.run()


def _pick_initial_model(registry, config: LocalChatConfig) -> str | None:
    """The configured default if installed, else the first installed model."""
    from localchat.server.resolver import find_model, installed_models

    if config.model.default:
        if find_model(registry, config.model.default) is not None:
            return config.model.default
        logging.getLogger(__name__).warning(
            "Default model %r is not installed", config.model.default
        )
    installed = installed_models(registry)
    return installed[0][0] if installed else None


def _load_local_engine(config: LocalChatConfig, path: Path):
    from localchat.inference.local import LocalEngine

    return LocalEngine(
        model_path=str(path),
        n_ctx=config.model.n_ctx,
        n_gpu_layers=config.model.n_gpu_layers,
        n_batch=config.generation.n_batch,
        repeat_last_n=config.generation.repeat_last_n,
        n_threads=config.generation.n_threads,
    )


def _download_models(registry) -> int:
    """Download every catalog entry that is not installed yet."""
    pending = [info for info in registry.model_list() if not info.installed]
    if not pending:
        print("All configured models are already installed.")
        return 0

    for info in pending:
        print(f"Downloading {info.hf_file} from {info.hf_repo}...")
        try:
            path = registry.download(info)
        except ImportError:
            print("huggingface-hub is required for model download.")
            print("Install it: pip install huggingface-hub")
            return 1
        except Exception as e:
            print(f"Download failed: {e}")
            return 1
        print(f"Model ready at: {path}")
    return 0


if __name__ == "__main__":
    main()
