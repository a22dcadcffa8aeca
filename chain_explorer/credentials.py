"""
Credential store for keyed scan APIs.

Keys come from explicit overrides first, then environment variables
(a local .env file is loaded via python-dotenv). A key the upstream
rejected is remembered so later calls skip the keyed tier.
"""

import logging
import os
from typing import Optional

from dotenv import load_dotenv

from chain_explorer.config import ExplorerConfig


logger = logging.getLogger(__name__)


class CredentialStore:
    """Chain id -> API key, plus the set of keys known to be rejected."""

    def __init__(
        self,
        config: ExplorerConfig,
        keys: Optional[dict[str, str]] = None,
        load_env: bool = True,
    ) -> None:
        if load_env:
            load_dotenv()
        self._config = config
        self._overrides: dict[str, str] = dict(keys or {})
        self._rejected: set[str] = set()
        self._load_env = load_env

    def _env_names(self, chain_id: str) -> list[str]:
        chain = self._config.chains.get(chain_id)
        names = list(chain.api_key_env) if chain else []
        upper = chain_id.upper()
        for generic in (f"{upper}_API_KEY", f"{upper}SCAN_API_KEY"):
            if generic not in names:
                names.append(generic)
        return names

    def get(self, chain_id: str) -> str:
        """Return the key for a chain, stripped. Empty string when absent."""
        if chain_id in self._overrides:
            return self._overrides[chain_id].strip()
        if not self._load_env:
            return ""
        for name in self._env_names(chain_id):
            value = os.environ.get(name, "").strip()
            if value:
                return value
        return ""

    def has_key(self, chain_id: str) -> bool:
        return bool(self.get(chain_id))

    def set(self, chain_id: str, key: str) -> None:
        """Replace a chain's key. Clears any rejection."""
        self._overrides[chain_id] = key
        self._rejected.discard(chain_id)
        logger.info(f"[credentials] Key updated for {chain_id}")

    def mark_rejected(self, chain_id: str) -> None:
        if chain_id not in self._rejected:
            logger.warning(f"[credentials] API key for {chain_id} was rejected")
        self._rejected.add(chain_id)

    def mark_valid(self, chain_id: str) -> None:
        self._rejected.discard(chain_id)

    def is_rejected(self, chain_id: str) -> bool:
        return chain_id in self._rejected

    def usable(self, chain_id: str) -> bool:
        """True when a non-blank key exists and has not been rejected."""
        return self.has_key(chain_id) and not self.is_rejected(chain_id)
