"""Tests for the /model and /server display helpers."""

from __future__ import annotations

from pathlib import Path

from localchat.config import ServerConfig
from localchat.inference.engine import EngineInfo
from localchat.model_manager import format_model_info, format_model_list, format_server_status
from localchat.models import ModelInfo, ModelRegistry


class TestFormatModelInfo:
    def test_no_model(self):
        text = format_model_info(EngineInfo(engine_type="none"), None)
        assert "No model loaded" in text

    def test_loaded_model(self):
        info = EngineInfo(
            engine_type="local",
            model_name="ggml-alpha.gguf",
            model_path="/m/ggml-alpha.gguf",
            n_ctx=2048,
            n_gpu_layers=-1,
        )
        text = format_model_info(info, "alpha")
        assert "Model: alpha" in text
        assert "/m/ggml-alpha.gguf" in text
        assert "2048 tokens" in text
        assert "GPU layers: -1" in text

    def test_cpu_only_hides_gpu_line(self):
        text = format_model_info(EngineInfo(engine_type="local", n_ctx=512), "alpha")
        assert "GPU" not in text


class TestFormatModelList:
    def test_marks_active(self, registry: ModelRegistry):
        text = format_model_list(registry, "alpha")
        lines = text.splitlines()
        assert any("alpha" in line and "active" in line for line in lines)
        assert any("beta-7b" in line and "active" not in line for line in lines)

    def test_not_installed(self, model_dir: Path):
        catalog = [ModelInfo("ggml-gamma.gguf", model_dir / "ggml-gamma.gguf", installed=False)]
        text = format_model_list(ModelRegistry(model_dir, catalog=catalog), None)
        assert "gamma (not installed)" in text

    def test_empty(self, tmp_path: Path):
        text = format_model_list(ModelRegistry(tmp_path), None)
        assert "No models found" in text
        assert "--download" in text


class TestFormatServerStatus:
    def test_disabled(self):
        assert "disabled" in format_server_status(ServerConfig(enabled=False), False)

    def test_not_running(self):
        assert "not running" in format_server_status(ServerConfig(port=5000), False)

    def test_failed(self):
        text = format_server_status(ServerConfig(), False, "Unable to serve on 127.0.0.1:4891")
        assert "failed" in text
        assert "127.0.0.1:4891" in text

    def test_running(self):
        text = format_server_status(ServerConfig(host="0.0.0.0", port=5000), True)
        assert "http://0.0.0.0:5000/v1" in text
        assert "/completions" in text
