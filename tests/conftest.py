"""
Pytest configuration and fixtures for PlugHost tests.
"""

import importlib
import json
import sys
import tempfile
import zipfile
from pathlib import Path
from typing import Any, Callable, Generator

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

PLUGIN_SOURCE = '''
from plughost.plugins.base import Plugin


class SamplePlugin(Plugin):
    def init(self, context):
        self.context = context
'''

HOST_CAPABILITIES_SOURCE = '''
from abc import abstractmethod

from plughost.plugins.base import Plugin


class Translator(Plugin):
    @abstractmethod
    def translate(self, text):
        ...


class OcrEngine(Plugin):
    @abstractmethod
    def recognize(self, image):
        ...
'''

TRANSLATOR_SOURCE = '''
from host_caps import Translator


class EchoTranslator(Translator):
    def init(self, context):
        pass

    def translate(self, text):
        return text
'''


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def sample_config(temp_dir: Path) -> "PlugHostConfig":
    """Create a configuration whose roots all live under the temp directory."""
    from plughost.core.config import (
        LoggingConfig,
        PlugHostConfig,
        PluginPathsConfig,
    )

    config = PlugHostConfig(
        logging=LoggingConfig(
            file_enabled=False,
            console_enabled=False,
            log_directory=temp_dir / "logs",
        ),
        paths=PluginPathsConfig(
            preinstalled_directory=temp_dir / "preinstalled",
            plugins_directory=temp_dir / "plugins",
            settings_directory=temp_dir / "settings",
            cache_directory=temp_dir / "cache",
            temp_directory=temp_dir / "tmp",
        ),
    )
    config.ensure_directories()
    return config


def _descriptor(plugin_id: str, version: str, name: str, entry: str) -> dict[str, Any]:
    return {
        "PluginID": plugin_id,
        "Name": name,
        "Author": "Test Author",
        "Version": version,
        "ExecuteFilePath": entry,
    }


@pytest.fixture
def make_plugin() -> Callable[..., Path]:
    """Factory writing a plugin directory with descriptor and entry file."""

    def _make(
        root: Path,
        folder: str,
        *,
        plugin_id: str = "sample-plugin-id",
        version: str = "1.0.0",
        name: str | None = None,
        entry: str = "main.py",
        source: str = PLUGIN_SOURCE,
        descriptor: dict[str, Any] | str | None = None,
        extra_files: dict[str, str] | None = None,
    ) -> Path:
        directory = root / folder
        directory.mkdir(parents=True)
        (directory / entry).write_text(source, encoding="utf-8")

        if descriptor is None:
            descriptor = _descriptor(plugin_id, version, name or folder, entry)
        content = descriptor if isinstance(descriptor, str) else json.dumps(descriptor)
        (directory / "plugin.json").write_text(content, encoding="utf-8")

        for relative, text in (extra_files or {}).items():
            path = directory / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        return directory

    return _make


@pytest.fixture
def make_package(temp_dir: Path) -> Callable[..., Path]:
    """Factory writing a zipped plugin package."""

    def _make(
        name: str,
        *,
        plugin_id: str = "sample-plugin-id",
        version: str = "1.0.0",
        source: str = PLUGIN_SOURCE,
        extension: str = ".spkg",
        include_descriptor: bool = True,
    ) -> Path:
        packages = temp_dir / "packages"
        packages.mkdir(exist_ok=True)
        package = packages / f"{name}{extension}"
        entry = f"{name}.py"

        with zipfile.ZipFile(package, "w") as archive:
            if include_descriptor:
                archive.writestr(
                    "plugin.json",
                    json.dumps(_descriptor(plugin_id, version, name.title(), entry)),
                )
            archive.writestr(entry, source)
            archive.writestr("i18n/en.json", json.dumps({"hello": "Hello"}))
        return package

    return _make


@pytest.fixture
def host_caps(temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Any:
    """Importable module of host capability interfaces (Translator, OcrEngine)."""
    host_dir = temp_dir / "host"
    host_dir.mkdir()
    (host_dir / "host_caps.py").write_text(HOST_CAPABILITIES_SOURCE, encoding="utf-8")
    monkeypatch.delitem(sys.modules, "host_caps", raising=False)
    monkeypatch.syspath_prepend(str(host_dir))
    return importlib.import_module("host_caps")


@pytest.fixture
def translator_source() -> str:
    return TRANSLATOR_SOURCE


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow running tests")
