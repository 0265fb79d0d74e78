# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Server-side session lifecycle.

The manager is the only component that understands session contents. The
store persists opaque payloads; the client only ever holds a signed session
id. Concurrent requests carrying the same credential are not serialised: the
last ``persist`` wins.
"""

from __future__ import annotations

import hashlib
import json
import secrets
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

from itsdangerous import BadSignature, Signer

from gateway.domain.sessions import USER_KEY, Identity, Session, SessionStore
from gateway.shared.logging import logger, sid_prefix

_SIGNER_SALT = "gateway.session.cookie"


def _utcnow() -> datetime:
    return datetime.now(UTC)


def generate_session_id() -> str:
    return secrets.token_urlsafe(32)


class SessionManager:
    def __init__(
        self,
        store: SessionStore,
        *,
        secret: str,
        idle_timeout: int,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._idle_timeout = idle_timeout
        self._clock = clock
        self._signer = Signer(
            secret,
            salt=_SIGNER_SALT,
            key_derivation="hmac",
            digest_method=hashlib.sha256,
        )

    @property
    def idle_timeout(self) -> int:
        return self._idle_timeout

    # Credentials

    def sign(self, session_id: str) -> str:
        return self._signer.sign(session_id).decode("ascii")

    def unsign(self, credential: str | None) -> str | None:
        if not credential:
            return None
        try:
            return self._signer.unsign(credential).decode("ascii")
        except (BadSignature, UnicodeError):
            logger.warning("session: rejected credential with bad signature")
            return None

    # Lifecycle

    def new_session(self) -> Session:
        now = self._clock()
        return Session(
            id=generate_session_id(),
            created_at=now,
            last_accessed_at=now,
            expires_at=now + timedelta(seconds=self._idle_timeout),
            is_new=True,
        )

    async def resolve(self, credential: str | None) -> tuple[Session, bool]:
        """Load the session named by ``credential`` or allocate a fresh one.

        Only the signed id is taken from the client. Unknown, expired, or
        tampered credentials never name the new session.
        """
        session_id = self.unsign(credential)
        if session_id is None:
            return self.new_session(), True

        payload = await self._store.get(session_id)
        if payload is None:
            logger.debug(f"session: no live entry sid={sid_prefix(session_id)}")
            return self.new_session(), True

        session = self._decode(session_id, payload)
        if session is None:
            return self.new_session(), True

        logger.debug(f"session: resolved sid={sid_prefix(session_id)}")
        return session, False

    async def persist(self, session: Session) -> None:
        """Write the session back and extend its expiry by the idle timeout."""
        if session.invalidated:
            return
        now = self._clock()
        session.last_accessed_at = now
        session.expires_at = now + timedelta(seconds=self._idle_timeout)
        try:
            await self._store.set(session.id, self._encode(session), self._idle_timeout)
            if session.previous_id is not None:
                await self._store.delete(session.previous_id)
                session.previous_id = None
        except Exception:
            # A failed write is final for this request; write-back must not retry it.
            session.write_failed = True
            raise
        session.persisted = True
        session.modified = False
        logger.debug(f"session: persisted sid={sid_prefix(session.id)}")

    async def invalidate(self, session: Session) -> None:
        """Delete the stored entry; the caller must clear the client credential."""
        try:
            if session.previous_id is not None:
                await self._store.delete(session.previous_id)
                session.previous_id = None
            if not session.is_new or session.persisted:
                await self._store.delete(session.id)
        except Exception:
            session.write_failed = True
            raise
        session.data.clear()
        session.invalidated = True
        session.modified = False
        logger.info(f"session: invalidated sid={sid_prefix(session.id)}")

    def regenerate(self, session: Session) -> None:
        """Move the session to a fresh id; the old entry is removed on persist."""
        if not session.is_new or session.persisted:
            session.previous_id = session.id
        session.id = generate_session_id()
        session.is_new = True
        session.persisted = False
        session.modified = True

    async def sign_in(self, session: Session, identity: Identity) -> None:
        self.regenerate(session)
        session.set(USER_KEY, identity.to_session_value())
        await self.persist(session)
        logger.info(
            f"session: identity established account={identity.account_id} "
            f"sid={sid_prefix(session.id)}"
        )

    async def sign_out(self, session: Session) -> None:
        session.pop(USER_KEY)
        await self.invalidate(session)

    # Serialization

    def _encode(self, session: Session) -> str:
        return json.dumps(
            {
                "data": session.data,
                "created_at": session.created_at.isoformat(),
                "last_accessed_at": session.last_accessed_at.isoformat(),
                "expires_at": session.expires_at.isoformat(),
            },
            separators=(",", ":"),
        )

    def _decode(self, session_id: str, payload: str) -> Session | None:
        try:
            raw: dict[str, Any] = json.loads(payload)
            data = raw["data"]
            if not isinstance(data, dict):
                raise TypeError("session data is not an object")
            created_at = datetime.fromisoformat(raw["created_at"])
            expires_at = datetime.fromisoformat(raw["expires_at"])
            if created_at.tzinfo is None or expires_at.tzinfo is None:
                raise ValueError("naive session timestamps")
        except (ValueError, KeyError, TypeError):
            logger.warning(f"session: discarding corrupt payload sid={sid_prefix(session_id)}")
            return None

        now = self._clock()
        if expires_at <= now:
            logger.debug(f"session: expired at read sid={sid_prefix(session_id)}")
            return None

        return Session(
            id=session_id,
            data=data,
            created_at=created_at,
            last_accessed_at=now,
            expires_at=expires_at,
        )


__all__ = ["SessionManager", "generate_session_id"]
