from __future__ import annotations

from datetime import datetime

from bs4 import BeautifulSoup

from .base import BaseSource
from .codeforces_page import parse_length
from .common import Contest, Platform, SourceDataInvalid, TimeRange
from . import register_source

_TIME_FORMAT = '%Y-%m-%d %H:%M:%S%z'


@register_source
class AtCoderPageSource(BaseSource):
    """Upcoming contests scraped from atcoder.jp."""

    SOURCE_NAME = "atcoder_page"
    SOURCE_DISPLAY = "AtCoder contests page"
    BASE_URL = "https://atcoder.jp"
    PLATFORMS = (Platform.ATCODER,)
    PRIORITY = {Platform.ATCODER: 30}

    def _fetch_contests(self, window: TimeRange) -> list[Contest]:
        resp = self._get(f"{self.BASE_URL}/contests/", params={'lang': 'en'})
        return self.parse_page(resp.text)

    def parse_page(self, page_content: str) -> list[Contest]:
        soup = BeautifulSoup(page_content, 'html.parser')
        section = soup.find(id='contest-table-upcoming')
        if section is None:
            # The section is omitted entirely when nothing is scheduled.
            if soup.find(id='contest-table-recent') or soup.find(id='contest-table-permanent'):
                return []
            raise SourceDataInvalid("contest tables not found on page")
        rows = section.select('tbody tr')
        return self._map_records(rows, self._row_to_contest)

    def _row_to_contest(self, row) -> Contest:
        cells = row.find_all('td')
        if len(cells) < 3:
            raise ValueError(f"expected at least 3 cells, got {len(cells)}")
        time_tag = cells[0].find('time')
        if time_tag is None:
            raise ValueError("start time element missing")
        start = datetime.strptime(time_tag.get_text(strip=True), _TIME_FORMAT)

        link = None
        for a in cells[1].find_all('a', href=True):
            if a['href'].startswith('/contests/'):
                link = a
        if link is None:
            raise ValueError("contest link missing")

        length = parse_length(cells[2].get_text(strip=True))
        return Contest.create(
            platform=Platform.ATCODER,
            name=link.get_text(strip=True),
            start_time=start,
            end_time=start + length if length else None,
            url=f"{self.BASE_URL}{link['href']}",
        )
