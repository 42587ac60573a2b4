from __future__ import annotations

from pathlib import Path
import os

APP_NAME = "FrameOrders"


def workspace_root() -> Path:
    """Runtime data folder.

    Priority:
      1) FRAME_ORDERS_HOME (explicit override)
      2) When running from the repo (pyproject.toml present), use ./build/workspace
      3) Fallback: ~/FrameOrders
    """
    env = os.getenv("FRAME_ORDERS_HOME")
    if env:
        return Path(env).expanduser().resolve()

    repo = project_root()
    if (repo / "pyproject.toml").exists():
        return (repo / "build" / "workspace").resolve()

    return (Path.home() / APP_NAME).resolve()


def exports_dir() -> Path:
    d = workspace_root() / "exports"
    d.mkdir(parents=True, exist_ok=True)
    return d


def log_dir() -> Path:
    d = workspace_root() / "log"
    d.mkdir(parents=True, exist_ok=True)
    return d


def secrets_dir() -> Path:
    # Not created here: reading settings must not write to disk
    return workspace_root() / "secrets"


def project_root() -> Path:
    """Best-effort repo root when running from source.

    Once installed into site-packages this points inside the install location
    and should NOT be used for writable data paths.
    """
    p = Path(__file__).resolve()
    # .../src/frame_orders/paths.py -> parents[2] == repo root
    return p.parents[2] if len(p.parents) >= 3 else p.parent
