"""
Voter session context.

Explicit, injectable replacement for ambient browser storage. Holds:
- the resolved voter identity
- an advisory "voted option" cache per post (durable, in client storage)
- session-scoped unlocked flags per post (memory only, lost on reload)

Nothing cached here authorizes anything. The access gate and the vote
ledger re-derive every security decision from the store.
"""

from typing import Optional

import structlog

from validtot.core.errors import StorageUnavailable
from validtot.schemas.identity import VoterIdentity
from validtot.services.identity import ClientStorage, MemoryStorage

logger = structlog.get_logger(__name__)

VOTE_KEY_PREFIX = "vote_"


class VoterSession:
    """Identity plus client-side caches for one viewing session."""

    def __init__(self, identity: VoterIdentity, storage: Optional[ClientStorage] = None):
        self.identity = identity
        self.storage: ClientStorage = storage if storage is not None else MemoryStorage()
        self._unlocked: set[str] = set()

    @property
    def account_id(self) -> Optional[str]:
        return self.identity.account_id

    @property
    def anonymous_token(self) -> str:
        return self.identity.anonymous_token

    # ========================================================================
    # Advisory vote cache
    # ========================================================================

    def cached_vote(self, post_id: str) -> Optional[int]:
        """Locally remembered choice. Advisory only."""
        try:
            raw = self.storage.get(f"{VOTE_KEY_PREFIX}{post_id}")
        except StorageUnavailable:
            return None
        if raw is None:
            return None
        try:
            return int(raw)
        except ValueError:
            logger.warning("cached_vote_corrupt", post_id=post_id)
            return None

    def remember_vote(self, post_id: str, option_index: int) -> None:
        try:
            self.storage.set(f"{VOTE_KEY_PREFIX}{post_id}", str(option_index))
        except StorageUnavailable as e:
            logger.warning("cached_vote_not_saved", post_id=post_id, error=str(e))

    def forget_vote(self, post_id: str) -> None:
        try:
            self.storage.delete(f"{VOTE_KEY_PREFIX}{post_id}")
        except StorageUnavailable as e:
            logger.warning("cached_vote_not_cleared", post_id=post_id, error=str(e))

    def sync_vote(self, post_id: str, ledger_option: Optional[int]) -> None:
        """Overwrite the advisory cache with what the ledger says."""
        cached = self.cached_vote(post_id)
        if cached == ledger_option:
            return
        if cached is not None:
            logger.info(
                "cached_vote_overwritten",
                post_id=post_id,
                cached=cached,
                ledger=ledger_option,
            )
        if ledger_option is None:
            self.forget_vote(post_id)
        else:
            self.remember_vote(post_id, ledger_option)

    # ========================================================================
    # Session-scoped unlocks
    # ========================================================================

    def is_unlocked(self, post_id: str) -> bool:
        return post_id in self._unlocked

    def mark_unlocked(self, post_id: str) -> None:
        self._unlocked.add(post_id)

    # ========================================================================
    # Identity changes
    # ========================================================================

    def with_identity(self, identity: VoterIdentity) -> "VoterSession":
        """
        Session for a new identity on the same device (sign-in, sign-out).

        Unlocks do not carry over. The advisory vote cache stays on the
        device but is re-verified against the ledger before it is shown.
        """
        return VoterSession(identity, self.storage)
