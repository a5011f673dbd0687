"""Thin adapter over the OpenSSH client tools.

Everything that reads or writes OpenSSH text formats (the ``ssh -T`` banner,
``known_hosts`` lines, ``~/.ssh/config`` blocks, ``*.pub`` files) lives here so
that a format change touches one module.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import os
import re
import subprocess
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

from ..lib.command import CmdResult, run_cmd
from .errors import CredentialAbsent, NetworkUnreachable

logger = logging.getLogger(__name__)

# GitHub (and most git hosts) refuse shell sessions, so the exit status of
# `ssh -T` is non-zero even on success. The greeting is the only signal.
AUTH_BANNER = "successfully authenticated"

PERSONAL_KEY_NAMES: Tuple[str, ...] = ("id_ed25519.pub", "id_ecdsa.pub", "id_rsa.pub")

Runner = Callable[..., CmdResult]


def display_path(path: Path) -> str:
    """Collapse $HOME to ~ the way hand-written ssh config does."""
    home = Path.home()
    try:
        return "~/" + str(path.relative_to(home))
    except ValueError:
        return str(path)


def ensure_ssh_dir(ssh_dir: Path, *, dry_run: bool = False) -> None:
    if dry_run:
        return
    ssh_dir.mkdir(parents=True, exist_ok=True)
    os.chmod(ssh_dir, 0o700)


# ---------------------------------------------------------------------------
# handshake
# ---------------------------------------------------------------------------


def handshake(
    host: str,
    *,
    user: str = "git",
    identity: Optional[Path] = None,
    timeout: float = 5.0,
    runner: Runner = run_cmd,
) -> bool:
    """Return True when the host greets us as an authenticated user."""

    argv = [
        "ssh",
        "-o",
        "BatchMode=yes",
        "-o",
        f"ConnectTimeout={int(timeout)}",
        "-o",
        "StrictHostKeyChecking=accept-new",
    ]
    if identity is not None:
        argv += ["-i", str(identity), "-o", "IdentitiesOnly=yes"]
    argv += ["-T", f"{user}@{host}"]

    try:
        r = runner(argv, check=False, detach_stdin=True, timeout=timeout * 2)
    except subprocess.TimeoutExpired as e:
        raise NetworkUnreachable(f"ssh to {host} timed out") from e
    except FileNotFoundError as e:
        raise CredentialAbsent("ssh client is not installed") from e

    return AUTH_BANNER in r.output


# ---------------------------------------------------------------------------
# public keys
# ---------------------------------------------------------------------------


def key_body(pub_line: str) -> Optional[str]:
    """Extract the base64 field from a ``type base64 [comment]`` line."""
    parts = pub_line.split()
    if len(parts) < 2:
        return None
    return parts[1]


def local_public_keys(ssh_dir: Path, names: Sequence[str] = PERSONAL_KEY_NAMES) -> List[Tuple[Path, str]]:
    found: List[Tuple[Path, str]] = []
    for name in names:
        p = ssh_dir / name
        if not p.is_file():
            continue
        body = key_body(p.read_text(encoding="utf-8", errors="ignore"))
        if body:
            found.append((p, body))
    return found


def generate_keypair(
    private_key: Path,
    *,
    comment: str,
    key_type: str = "ed25519",
    runner: Runner = run_cmd,
    dry_run: bool = False,
) -> None:
    ensure_ssh_dir(private_key.parent, dry_run=dry_run)
    runner(
        ["ssh-keygen", "-q", "-t", key_type, "-f", str(private_key), "-N", "", "-C", comment],
        detach_stdin=True,
        dry_run=dry_run,
    )


# ---------------------------------------------------------------------------
# known_hosts
# ---------------------------------------------------------------------------


def _host_token(host: str, port: int = 22) -> str:
    return host if port == 22 else f"[{host}]:{port}"


def _hashed_match(pattern: str, token: str) -> bool:
    # |1|base64(salt)|base64(hmac_sha1(salt, host))
    parts = pattern.split("|")
    if len(parts) != 4 or parts[1] != "1":
        return False
    try:
        salt = base64.b64decode(parts[2])
        expected = base64.b64decode(parts[3])
    except (ValueError, TypeError):
        return False
    digest = hmac.new(salt, token.encode("utf-8"), hashlib.sha1).digest()
    return hmac.compare_digest(digest, expected)


def known_host_present(known_hosts: Path, host: str, *, port: int = 22) -> bool:
    if not known_hosts.exists():
        return False

    token = _host_token(host, port)
    for raw in known_hosts.read_text(encoding="utf-8", errors="ignore").splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        fields = line.split()
        if fields[0].startswith("@"):
            fields = fields[1:]
        if not fields:
            continue
        for pattern in fields[0].split(","):
            if pattern == token or _hashed_match(pattern, token):
                return True
    return False


def keyscan(host: str, *, timeout: float = 5.0, runner: Runner = run_cmd) -> str:
    try:
        r = runner(["ssh-keyscan", "-T", str(int(timeout)), host], check=False, detach_stdin=True, timeout=timeout * 3)
    except subprocess.TimeoutExpired as e:
        raise NetworkUnreachable(f"ssh-keyscan {host} timed out") from e
    except FileNotFoundError as e:
        raise CredentialAbsent("ssh-keyscan is not installed") from e
    lines = [ln for ln in r.stdout.splitlines() if ln.strip() and not ln.startswith("#")]
    if not lines:
        raise NetworkUnreachable(f"ssh-keyscan returned no keys for {host}")
    return "\n".join(lines) + "\n"


def ensure_known_host(
    known_hosts: Path,
    host: str,
    *,
    scan: Callable[[str], str] = keyscan,
    dry_run: bool = False,
) -> bool:
    """Append the host's keys unless an entry already exists. Returns True if added."""

    if known_host_present(known_hosts, host):
        logger.debug("%s already present in %s", host, known_hosts)
        return False

    logger.info("Adding %s host keys to %s", host, known_hosts)
    if dry_run:
        return True

    entries = scan(host)
    ensure_ssh_dir(known_hosts.parent)
    if known_hosts.is_file():
        existing = known_hosts.read_text(encoding="utf-8")
        if existing and not existing.endswith("\n"):
            entries = "\n" + entries
    with known_hosts.open("a", encoding="utf-8") as f:
        f.write(entries)
    os.chmod(known_hosts, 0o600)
    return True


# ---------------------------------------------------------------------------
# ~/.ssh/config
# ---------------------------------------------------------------------------


def has_host_alias(config_text: str, alias: str) -> bool:
    rx = re.compile(r"^\s*Host\s+(.+)$", re.IGNORECASE)
    for line in config_text.splitlines():
        m = rx.match(line)
        if m and alias in m.group(1).split():
            return True
    return False


def render_host_alias(*, alias: str, hostname: str, identity_file: Path, label: str) -> str:
    return (
        "\n"
        f"# Deploy key for read-only access to {label}\n"
        f"Host {alias}\n"
        f"    HostName {hostname}\n"
        "    User git\n"
        f"    IdentityFile {display_path(identity_file)}\n"
        "    IdentitiesOnly yes\n"
    )


def ensure_host_alias(
    config_path: Path,
    *,
    alias: str,
    hostname: str,
    identity_file: Path,
    label: str,
    dry_run: bool = False,
) -> bool:
    """Append a Host block binding the deploy key. Returns True if written."""

    existing = config_path.read_text(encoding="utf-8") if config_path.exists() else ""
    if has_host_alias(existing, alias):
        return False

    logger.info("Adding Host %s to %s", alias, config_path)
    if dry_run:
        return True

    ensure_ssh_dir(config_path.parent)
    with config_path.open("a", encoding="utf-8") as f:
        f.write(render_host_alias(alias=alias, hostname=hostname, identity_file=identity_file, label=label))
    os.chmod(config_path, 0o600)
    return True
