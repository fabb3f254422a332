"""
Site Guard - Resolves the selected site before any database interaction.

Write paths (load, promote, archive) accept only a configured site code;
the fleet pseudo-site is a read-only aggregate and is rejected.
Read paths accept the fleet and resolve it to "all sites".
"""
import logging
from typing import Optional

from pif_app.config import PIFConfig, get_config
from pif_app.domain.exceptions import (
    SiteSelectionError,
    UnknownSiteError,
    ReadOnlySiteError,
)

logger = logging.getLogger(__name__)


class SiteGuard:
    """Validates site selections against the configured site list."""

    def __init__(self, config: Optional[PIFConfig] = None):
        self.config = config or get_config()

    def _normalize(self, site: Optional[str]) -> str:
        if site is None or not str(site).strip():
            raise SiteSelectionError()
        return str(site).strip()

    def _match(self, site: str) -> str:
        """Return the configured spelling of a site code (case-insensitive)."""
        for code in self.config.site_codes:
            if code.lower() == site.lower():
                return code
        raise UnknownSiteError(site, self.config.site_codes)

    def require_writable(self, site: Optional[str]) -> str:
        """
        Resolve a site for a write operation.

        Raises:
            SiteSelectionError: site missing or blank
            ReadOnlySiteError: site is the fleet pseudo-site
            UnknownSiteError: site is not configured
        """
        site = self._normalize(site)
        if self.config.is_fleet(site):
            logger.warning(f"Rejected write for read-only site '{site}'")
            raise ReadOnlySiteError(site)
        return self._match(site)

    def resolve_readable(self, site: Optional[str]) -> Optional[str]:
        """
        Resolve a site for a read operation.

        Returns:
            The site code, or None meaning every site (fleet view)
        """
        site = self._normalize(site)
        if self.config.is_fleet(site):
            return None
        return self._match(site)
