from __future__ import annotations

from datetime import datetime, timedelta, timezone

from bs4 import BeautifulSoup

from .base import BaseSource
from .common import Contest, Platform, SourceDataInvalid, TimeRange
from . import register_source

# Anonymous visitors see contest times in Moscow time.
_MOSCOW = timezone(timedelta(hours=3))
_START_FORMAT = '%b/%d/%Y %H:%M'


def parse_length(text: str) -> timedelta | None:
    """Parse ``HH:MM`` or ``DD:HH:MM`` contest lengths."""
    parts = [p for p in (text or '').strip().split(':') if p]
    if not parts or not all(p.isdigit() for p in parts):
        return None
    numbers = [int(p) for p in parts]
    if len(numbers) == 2:
        return timedelta(hours=numbers[0], minutes=numbers[1])
    if len(numbers) == 3:
        return timedelta(days=numbers[0], hours=numbers[1], minutes=numbers[2])
    return None


@register_source
class CodeforcesPageSource(BaseSource):
    """Upcoming-contest table scraped from the Codeforces contests page."""

    SOURCE_NAME = "codeforces_page"
    SOURCE_DISPLAY = "Codeforces contests page"
    BASE_URL = "https://codeforces.com"
    PLATFORMS = (Platform.CODEFORCES,)
    PRIORITY = {Platform.CODEFORCES: 30}

    def _fetch_contests(self, window: TimeRange) -> list[Contest]:
        resp = self._get(f"{self.BASE_URL}/contests", params={'complete': 'true'})
        return self.parse_page(resp.text)

    def parse_page(self, page_content: str) -> list[Contest]:
        soup = BeautifulSoup(page_content, 'html.parser')
        table = soup.select_one('div.contestList div.datatable table')
        if table is None:
            raise SourceDataInvalid("upcoming contests table not found")
        rows = table.select('tr[data-contestid]')
        return self._map_records(rows, self._row_to_contest)

    def _row_to_contest(self, row) -> Contest:
        cells = row.find_all('td')
        if len(cells) < 4:
            raise ValueError(f"expected at least 4 cells, got {len(cells)}")
        contest_id = row['data-contestid']
        # The name cell also holds "Enter »" / "Virtual participation" links.
        texts = list(cells[0].stripped_strings)
        if not texts:
            raise ValueError("empty contest name cell")
        name = texts[0]
        time_tag = cells[2].find('span', class_='format-time') or cells[2]
        start = datetime.strptime(time_tag.get_text(strip=True), _START_FORMAT)
        start = start.replace(tzinfo=_MOSCOW)
        length = parse_length(cells[3].get_text(strip=True))
        return Contest.create(
            platform=Platform.CODEFORCES,
            name=name,
            start_time=start,
            end_time=start + length if length else None,
            url=f"{self.BASE_URL}/contests/{contest_id}",
        )
