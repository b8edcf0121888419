"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import os

import pytest
import sh
from hypothesis import Verbosity, settings

from devcluster.config import resolve_config

settings.register_profile("default", max_examples=100, verbosity=Verbosity.normal)
settings.register_profile("ci", max_examples=1000, verbosity=Verbosity.verbose)
settings.register_profile("dev", max_examples=10, verbosity=Verbosity.verbose)
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "default"))

# Modules that invoke external commands through ``sh``.
SH_MODULES = (
    "devcluster.utils",
    "devcluster.prerequisites",
    "devcluster.cluster",
    "devcluster.mesh",
    "devcluster.components",
)


def command_error(full_cmd: str, exit_code: int = 1, stderr: bytes = b"") -> sh.ErrorReturnCode:
    """Build the exception sh raises for a command exiting with *exit_code*."""
    exc_cls = getattr(sh, f"ErrorReturnCode_{exit_code}")
    return exc_cls(full_cmd, b"", stderr)


class FakeCommand:
    """Callable standing in for one ``sh.<name>`` command."""

    def __init__(self, fake: FakeSh, name: str) -> None:
        self._fake = fake
        self._name = name

    def __call__(self, *args, **kwargs):
        self._fake.calls.append((self._name, args, kwargs))
        handler = self._fake.handlers.get(self._name)
        if handler is not None:
            return handler(*args, **kwargs)
        return ""


class FakeSh:
    """Recording replacement for the ``sh`` module.

    Every ``sh.<cmd>(...)`` call is appended to ``calls`` as
    ``(cmd, args, kwargs)``. Per-command behaviour is set with :meth:`on`;
    ``which`` fails for names listed in ``missing``.
    """

    ErrorReturnCode = sh.ErrorReturnCode
    CommandNotFound = sh.CommandNotFound

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple, dict]] = []
        self.handlers: dict = {}
        self.missing: set[str] = set()
        self.clusters: list[str] = []
        self.on("which", self._which)
        self.on("kind", self._kind)

    def __getattr__(self, name: str) -> FakeCommand:
        if name.startswith("_"):
            raise AttributeError(name)
        return FakeCommand(self, name)

    def on(self, name: str, handler) -> None:
        self.handlers[name] = handler

    def fail(self, name: str, exit_code: int = 1, when=None) -> None:
        """Make *name* exit with *exit_code*, optionally only when ``when(args)`` holds."""
        previous = self.handlers.get(name)

        def _handler(*args, **kwargs):
            if when is None or when(args):
                raise command_error(" ".join((name, *map(str, args))), exit_code)
            if previous is not None:
                return previous(*args, **kwargs)
            return ""

        self.on(name, _handler)

    def invocations(self, name: str) -> list[tuple]:
        return [args for cmd, args, _ in self.calls if cmd == name]

    def command_lines(self) -> list[str]:
        return [" ".join((cmd, *map(str, args))) for cmd, args, _ in self.calls if cmd != "which"]

    def _which(self, cmd, *args, **kwargs):
        if cmd in self.missing:
            raise command_error(f"which {cmd}", 1)
        return f"/usr/bin/{cmd}\n"

    def _kind(self, *args, **kwargs):
        if args[:2] == ("get", "clusters"):
            return "".join(f"{c}\n" for c in self.clusters)
        if args[:2] == ("delete", "cluster"):
            name = args[args.index("--name") + 1]
            self.clusters = [c for c in self.clusters if c != name]
        return ""


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep DEVCLUSTER_* settings from the developer's shell out of tests."""
    for key in list(os.environ):
        if key.startswith("DEVCLUSTER_"):
            monkeypatch.delenv(key)


@pytest.fixture
def fake_sh(monkeypatch) -> FakeSh:
    fake = FakeSh()
    for module in SH_MODULES:
        monkeypatch.setattr(f"{module}.sh", fake)
    return fake


@pytest.fixture
def config(tmp_path):
    """Bring-up configuration rooted in a temporary directory."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    return resolve_config(scratch_root=tmp_path / "kind", bin_dir=bin_dir)


@pytest.fixture
def docker_ok(monkeypatch):
    """Docker SDK client whose daemon answers pings."""

    class _Client:
        def ping(self):
            return True

        def close(self):
            pass

    monkeypatch.setattr("devcluster.prerequisites.docker.from_env", lambda: _Client())
