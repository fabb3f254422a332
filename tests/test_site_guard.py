"""
Tests for site selection on read and write paths.
"""
import pytest

from pif_app.domain.exceptions import (
    SiteSelectionError,
    UnknownSiteError,
    ReadOnlySiteError,
)
from pif_app.domain.services import SiteGuard


@pytest.fixture
def guard():
    return SiteGuard()


class TestRequireWritable:

    @pytest.mark.parametrize("site", [None, "", "   "])
    def test_blank_site_rejected(self, guard, site):
        with pytest.raises(SiteSelectionError) as exc_info:
            guard.require_writable(site)
        assert exc_info.value.code == "SITE_REQUIRED"

    @pytest.mark.parametrize("site", ["Fleet", "FLEET", "fleet"])
    def test_fleet_is_read_only(self, guard, site):
        with pytest.raises(ReadOnlySiteError) as exc_info:
            guard.require_writable(site)
        assert exc_info.value.code == "READ_ONLY_SITE"

    def test_unknown_site_rejected(self, guard):
        with pytest.raises(UnknownSiteError) as exc_info:
            guard.require_writable("XYZ")
        assert exc_info.value.code == "UNKNOWN_SITE"
        assert "ANO" in exc_info.value.message

    def test_site_errors_share_base_class(self, guard):
        with pytest.raises(SiteSelectionError):
            guard.require_writable("Fleet")

    def test_returns_configured_spelling(self, guard):
        assert guard.require_writable(" ano ") == "ANO"
        assert guard.require_writable("wf3") == "WF3"


class TestResolveReadable:

    def test_fleet_means_all_sites(self, guard):
        assert guard.resolve_readable("Fleet") is None

    def test_single_site(self, guard):
        assert guard.resolve_readable("ggn") == "GGN"

    def test_unknown_site_rejected(self, guard):
        with pytest.raises(UnknownSiteError):
            guard.resolve_readable("XYZ")
