# registry_scout/crawler/profile.py
"""Capture of the tabbed sections of a company profile page."""
from __future__ import annotations

from typing import List

from registry_scout.crawler.models import ImageArtifact
from registry_scout.crawler.navigation import NavigationController
from registry_scout.logger import get_logger

__all__ = ("ProfileExtractor",)

log = get_logger("profile")


class ProfileExtractor:
    """Visits every configured tab in order and captures its content region.

    Always yields one artifact per tab; a tab whose content never shows up
    gives an empty artifact instead of failing the crawl.
    """

    def __init__(self, nav: NavigationController) -> None:
        self.nav = nav

    async def extract(self) -> List[ImageArtifact]:
        selectors = self.nav.selectors
        tabs = list(selectors.profile_tabs.items())
        captures: List[ImageArtifact] = []
        for index, (name, tab_selector) in enumerate(tabs):
            mounted = await self.nav.hover_then_activate(
                selectors.tab_menu, tab_selector, require_content=False
            )
            data = await self.nav.capture(selectors.content_region) if mounted else ""
            if not data:
                log.warning("Empty capture for tab %s", name)
            captures.append(ImageArtifact(tab=name, data=data))
            if index < len(tabs) - 1:
                await self.nav.scroll_to_origin()
        return captures
