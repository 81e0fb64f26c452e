# src/tickler/connectors/matrix_client.py

from __future__ import annotations

import importlib.util
import json
import logging
import os
from pathlib import Path
from typing import Any

from nio import AsyncClient, AsyncClientConfig, LoginResponse

logger = logging.getLogger(__name__)

# E2EE needs python-olm (the matrix-nio[e2e] extra).
OLM_AVAILABLE = importlib.util.find_spec("olm") is not None


def _session_path(store_dir: Path) -> Path:
    return store_dir / "session.json"


def _load_session(path: Path) -> dict[str, str]:
    val: Any = json.loads(path.read_text("utf-8"))
    if not isinstance(val, dict):
        raise ValueError("Expected JSON object")
    missing = [k for k in ("access_token", "user_id", "device_id") if not val.get(k)]
    if missing:
        raise ValueError(f"session.json is missing {', '.join(missing)}")
    return {k: str(val[k]) for k in ("access_token", "user_id", "device_id")}


def _save_session(path: Path, resp: LoginResponse) -> None:
    tmp = path.with_suffix(".tmp")
    data = {"access_token": resp.access_token, "user_id": resp.user_id, "device_id": resp.device_id}
    tmp.write_text(json.dumps(data), "utf-8")
    os.replace(tmp, path)
    try:
        os.chmod(path, 0o600)
    except OSError:
        # Not critical on Windows or restricted FS.
        logger.debug("chmod failed for %s", path, exc_info=True)


async def create_matrix_client(settings) -> AsyncClient | None:
    """
    Create a Matrix AsyncClient for the reminder bot.

    The access token is kept in <matrix_store_path>/session.json so restarts do not
    need the password. Returns None when Matrix is not usable with these settings.
    """
    homeserver = (getattr(settings, "matrix_homeserver", "") or "").strip()
    user_id = (getattr(settings, "matrix_user_id", "") or "").strip()
    password = (getattr(settings, "matrix_password", "") or "").strip()
    store_dir = Path(getattr(settings, "matrix_store_path", Path(".local/tickler/matrix_store")))

    if not homeserver or not user_id:
        logger.error("Matrix is not configured: set TICKLER_MATRIX_HOMESERVER and TICKLER_MATRIX_USER_ID")
        return None

    store_dir.mkdir(parents=True, exist_ok=True)
    session_file = _session_path(store_dir)

    encryption_enabled = bool(OLM_AVAILABLE)
    if not encryption_enabled:
        logger.warning("python-olm not installed: E2EE disabled, encrypted rooms are ignored")

    client = AsyncClient(
        homeserver,
        user_id,
        store_path=str(store_dir) if encryption_enabled else None,
        config=AsyncClientConfig(encryption_enabled=encryption_enabled, store_sync_tokens=True),
    )

    if session_file.exists():
        try:
            session = _load_session(session_file)
            client.access_token = session["access_token"]
            client.user_id = session["user_id"]
            client.device_id = session["device_id"]
            if encryption_enabled:
                client.load_store()
            logger.info("Matrix session restored for %s", client.user_id)
            return client
        except Exception as e:
            logger.warning("Failed to restore Matrix session.json, will try password login: %r", e)

    if not password:
        logger.error(
            "Matrix session.json not found and password is not set. "
            "Set TICKLER_MATRIX_PASSWORD once to bootstrap a session."
        )
        await client.close()
        return None

    device_name = getattr(settings, "matrix_device_name", None) or f"{getattr(settings, 'app_name', 'tickler')} (Python)"
    logger.info("Logging in to Matrix (device_name=%r)...", device_name)
    resp = await client.login(password=password, device_name=device_name)
    if not isinstance(resp, LoginResponse):
        logger.error("Matrix login failed: %r", resp)
        await client.close()
        return None

    try:
        _save_session(session_file, resp)
        logger.info("Matrix session saved to %s (user=%s)", session_file, resp.user_id)
    except OSError as e:
        # Still usable for this run; next start will log in again.
        logger.error("Failed to write Matrix session.json (%s): %r", session_file, e)

    return client
