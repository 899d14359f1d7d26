import hashlib
import logging
from typing import Optional

import requests

from kotla import config
from kotla.errors import TargetResolutionError

logger = logging.getLogger(__name__)

USER_AGENT = "kotla/1.0 (number of the day)"


class RemoteSeedSource:
    """Fetches the number of the day from ``GET {url}?ds=<date key>``.

    The endpoint answers ``{"numberOfTheDay": <int>}``. Range is not
    guaranteed; callers reduce it modulo the city count.
    """

    def __init__(self, url: str, timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch(self, date_string: str) -> int:
        try:
            resp = self.session.get(
                self.url,
                params={"ds": date_string},
                timeout=self.timeout,
                headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            )
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as exc:
            raise TargetResolutionError(f"Number of the day request failed for {date_string}: {exc}") from exc

        number = data.get("numberOfTheDay") if isinstance(data, dict) else None
        if isinstance(number, bool) or not isinstance(number, int):
            raise TargetResolutionError(f"Malformed number of the day for {date_string}: {data!r}")
        logger.info("Fetched number of the day for %s", date_string)
        return number


class LocalSeedSource:
    """Derives the number of the day from the date key alone.

    Everyone gets the same number for the same day; used when no seed
    server is configured.
    """

    def __init__(self, salt: str = "kotla"):
        self.salt = salt

    def fetch(self, date_string: str) -> int:
        digest = hashlib.sha256(f"{self.salt}|{date_string}".encode("utf-8")).hexdigest()
        return int(digest[:12], 16)


def default_seed_source():
    if config.seed_url:
        return RemoteSeedSource(config.seed_url, timeout=config.seed_timeout)
    logger.info("KOTLA_SEED_URL not set, deriving the number of the day locally")
    return LocalSeedSource()
