# quran_search/utils/downloader.py
"""
Downloads the offline dataset from the Al Quran Cloud API.
"""
import json
import time
from pathlib import Path
from typing import List, Optional
import logging

import backoff
import requests

from ..exceptions import DownloadError
from ..models import SurahInfo

logger = logging.getLogger(__name__)

TOTAL_SURAHS = 114


def _giveup(e: Exception) -> bool:
    # Client errors will not fix themselves on retry
    response = getattr(e, "response", None)
    return response is not None and 400 <= response.status_code < 500


class QuranDownloader:
    """
    Fetches surah lists and per-edition surah texts into the dataset layout
    read by CorpusLoader. Existing files are kept, so an interrupted run can
    be resumed.
    """

    def __init__(self, config, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()

    @property
    def api_base(self) -> str:
        return self.config.download.api_base.rstrip("/")

    def fetch(self, path: str):
        """GET an API path and return its `data` payload, with retries."""
        url = f"{self.api_base}/{path.lstrip('/')}"

        @backoff.on_exception(
            backoff.expo,
            requests.exceptions.RequestException,
            max_tries=self.config.download.max_retries + 1,
            giveup=_giveup,
            logger=logger
        )
        def _get():
            response = self.session.get(url, timeout=self.config.download.timeout)
            response.raise_for_status()
            return response

        try:
            response = _get()
            payload = response.json()
        except requests.exceptions.RequestException as e:
            raise DownloadError(f"Failed to fetch {url}: {e}") from e
        except ValueError as e:
            raise DownloadError(f"Invalid JSON from {url}: {e}") from e

        if not isinstance(payload, dict):
            raise DownloadError(f"Unexpected response shape from {url}")
        if payload.get("code") != 200:
            raise DownloadError(f"API error {payload.get('code')} for {url}: {payload.get('status')}")
        return payload["data"]

    def _write(self, path: Path, data):
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False)

    def download_surah_list(self) -> List[SurahInfo]:
        """Download surah metadata to surah-list.json."""
        logger.info("Downloading surah list...")
        surahs = [SurahInfo.from_dict(s) for s in self.fetch("surah")]
        self._write(self.config.surah_list_path, [s.to_dict() for s in surahs])
        logger.info(f"✓ {len(surahs)} surahs")
        return surahs

    def download_surah(self, number: int, edition: str) -> bool:
        """
        Download one surah of one edition.

        Returns:
            True if a file was written, False if it already existed
        """
        path = self.config.surah_dir / edition / f"{number}.json"
        if path.exists():
            return False

        data = self.fetch(f"surah/{number}/{edition}")
        surah = SurahInfo.from_dict(data).to_dict()
        surah["ayahs"] = [
            {
                "number": a["number"],
                "numberInSurah": a["numberInSurah"],
                "text": a["text"],
                "juz": a.get("juz"),
                "page": a.get("page"),
                "hizbQuarter": a.get("hizbQuarter"),
            }
            for a in data.get("ayahs", [])
        ]
        self._write(path, surah)
        return True

    def download_edition(self, edition: str) -> int:
        """Download every surah of an edition. Returns files written."""
        logger.info(f"Downloading surahs: {edition}")
        written = 0
        for number in range(1, TOTAL_SURAHS + 1):
            if self.download_surah(number, edition):
                written += 1
                if self.config.download.delay:
                    time.sleep(self.config.download.delay)
        logger.info(f"✓ {edition}: {written} new, {TOTAL_SURAHS - written} already present")
        return written

    def download_all(self, editions: Optional[List[str]] = None) -> dict:
        """Surah list plus every configured edition."""
        editions = editions or self.config.corpus.editions
        self.download_surah_list()
        return {edition: self.download_edition(edition) for edition in editions}
