"""
HTTP key fetcher — downloads authorized_keys content.

No retries: a failed download fails the step.
"""

from __future__ import annotations

import logging
import urllib.error
import urllib.request

from provisioner import __version__
from provisioner.adapters.base import KeyFetcher
from provisioner.core.errors import ExternalToolError

logger = logging.getLogger(__name__)


class UrllibKeyFetcher(KeyFetcher):
    def is_available(self) -> bool:
        return True

    def fetch(self, url: str) -> str:
        logger.debug("Fetching %s", url)
        req = urllib.request.Request(
            url,
            headers={"User-Agent": f"provisioner/{__version__}"},
        )
        try:
            with urllib.request.urlopen(req) as resp:
                return resp.read().decode("utf-8", errors="replace")
        except urllib.error.HTTPError as e:
            raise ExternalToolError(
                tool="http",
                argv=["GET", url],
                exit_code=e.code,
                message=f"HTTP {e.code} {e.reason}",
            ) from e
        except (urllib.error.URLError, OSError) as e:
            raise ExternalToolError(
                tool="http",
                argv=["GET", url],
                message=str(getattr(e, "reason", e)),
            ) from e
