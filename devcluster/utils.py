# /*
# Copyright 2026 The devcluster Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */

"""Utility functions for command checks, platform detection, and downloads."""

from __future__ import annotations

import os
import platform
import shutil
from pathlib import Path

import requests
import sh
from tenacity import RetryError, retry, retry_if_exception_type, stop_after_attempt, wait_fixed

from devcluster import logger
from devcluster.config import ToolsConfig
from devcluster.constants import DOWNLOAD_RETRY_WAIT_SECONDS

_ARCH_ALIASES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
}


class PrerequisiteError(RuntimeError):
    """A required host tool is missing or unusable."""


class DownloadError(RuntimeError):
    """A release artifact could not be fetched."""


def command_exists(cmd: str) -> bool:
    """Return True if *cmd* resolves on the system PATH."""
    try:
        sh.which(cmd)
    except sh.ErrorReturnCode:
        return False
    return True


def require_command(cmd: str) -> None:
    """Check if a command exists on the system PATH.

    Args:
        cmd: Name of the CLI command to check.

    Raises:
        PrerequisiteError: If the command is not found.
    """
    if not command_exists(cmd):
        raise PrerequisiteError(f"{cmd} is not installed. Please install {cmd} first.")


def detect_platform() -> tuple[str, str]:
    """Map the host to the ``(os, arch)`` pair used in release artifact names.

    Returns:
        Tuple such as ``("linux", "amd64")`` or ``("darwin", "arm64")``.
    """
    system = platform.system().lower()
    machine = platform.machine().lower()
    return system, _ARCH_ALIASES.get(machine, machine)


def istio_platform() -> tuple[str, str]:
    """Istio bundles name macOS ``osx`` rather than ``darwin``."""
    system, arch = detect_platform()
    return ("osx" if system == "darwin" else system), arch


def download_file(url: str, dest: Path, tools_cfg: ToolsConfig) -> Path:
    """Stream *url* into *dest*, retrying transient failures.

    Args:
        url: Artifact URL (plain unauthenticated GET).
        dest: Destination file path; parent directories must exist.
        tools_cfg: Tool settings with timeout and retry count.

    Returns:
        The destination path.

    Raises:
        DownloadError: If the artifact cannot be fetched after all retries.
    """

    @retry(
        stop=stop_after_attempt(tools_cfg.download_max_retries),
        wait=wait_fixed(DOWNLOAD_RETRY_WAIT_SECONDS),
        retry=retry_if_exception_type(requests.RequestException),
        reraise=True,
    )
    def _attempt() -> None:
        logger.debug("GET %s", url)
        with requests.get(url, stream=True, timeout=tools_cfg.http_timeout, allow_redirects=True) as resp:
            resp.raise_for_status()
            with open(dest, "wb") as f:
                for chunk in resp.iter_content(chunk_size=1 << 16):
                    f.write(chunk)

    try:
        _attempt()
    except (requests.RequestException, RetryError) as err:
        raise DownloadError(f"Failed to download {url}: {err}") from err
    return dest


def fetch_json(url: str, tools_cfg: ToolsConfig) -> dict:
    """GET a JSON document with the same retry policy as :func:`download_file`.

    Raises:
        DownloadError: If the document cannot be fetched or parsed.
    """

    @retry(
        stop=stop_after_attempt(tools_cfg.download_max_retries),
        wait=wait_fixed(DOWNLOAD_RETRY_WAIT_SECONDS),
        retry=retry_if_exception_type(requests.RequestException),
        reraise=True,
    )
    def _attempt() -> dict:
        logger.debug("GET %s", url)
        resp = requests.get(url, timeout=tools_cfg.http_timeout, headers={"Accept": "application/json"})
        resp.raise_for_status()
        return resp.json()

    try:
        return _attempt()
    except (requests.RequestException, RetryError, ValueError) as err:
        raise DownloadError(f"Failed to fetch {url}: {err}") from err


def install_binary(src: Path, name: str, bin_dir: Path) -> Path:
    """Install *src* as an executable named *name* in *bin_dir*.

    Uses ``sudo install`` when the directory is not writable by the current
    user.

    Args:
        src: Downloaded binary.
        name: Target file name.
        bin_dir: Install directory, expected to be on PATH.

    Returns:
        Path of the installed binary.

    Raises:
        PrerequisiteError: If *bin_dir* does not exist.
    """
    if not bin_dir.is_dir():
        raise PrerequisiteError(
            f"Install directory {bin_dir} does not exist; create it or set DEVCLUSTER_BIN_DIR"
        )
    dest = bin_dir / name
    if os.access(bin_dir, os.W_OK):
        shutil.copyfile(src, dest)
        dest.chmod(0o755)
    else:
        logger.info("%s is not writable, installing %s with sudo", bin_dir, name)
        sh.sudo("install", "-m", "0755", str(src), str(dest))
    return dest
