"""Remote tile source: requests tiles from a slippy map tile server."""

from __future__ import annotations

import logging

import requests

from shared.errors import TileFetchError
from shared.tile import Tile, decode_png
from shared.tile_math import TileAddress, normalize_tile_index

logger = logging.getLogger(__name__)

USER_AGENT = "maptiles/0.1 (offline map export)"


class RemoteSource:
    """Fetches ``{base_url}/{z}/{x}/{y}.png``.

    One attempt per call, no retry. A non-200 response is logged and
    treated as a miss; a transport failure raises TileFetchError.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 15.0,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        if session is None:
            session = requests.Session()
            session.headers["User-Agent"] = USER_AGENT
        self.session = session

    def tile_url(self, z: int, x: int, y: int) -> str:
        x, y = normalize_tile_index(z, x, y)
        return f"{self.base_url}/{TileAddress(z=z, x=x, y=y).path}"

    def get(self, z: int, x: int, y: int) -> Tile | None:
        url = self.tile_url(z, x, y)
        logger.debug("GET %s", url)
        try:
            resp = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise TileFetchError(f"request for {url} failed: {e}") from e

        if resp.status_code != 200:
            logger.warning("Tile server response is not ok for %s: HTTP %d %s",
                           url, resp.status_code, resp.reason)
            return None
        return decode_png(resp.content, url)

    def __repr__(self) -> str:
        return f"RemoteSource({self.base_url!r})"
