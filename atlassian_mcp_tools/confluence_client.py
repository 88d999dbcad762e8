"""
Confluence Client - Read-only access to the Confluence REST API
"""

import base64
import logging
import requests
from typing import Dict, List, Optional, Any

from .config import ConfluenceConfig

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 10


def confluence_site_url(host: str) -> str:
    """Return the site root (scheme + host, no trailing slash)."""
    site = host.strip().rstrip('/')
    if not site.startswith(('http://', 'https://')):
        site = f"https://{site}"
    return site


class ConfluenceClient:
    """Simple Confluence client for search and page retrieval."""

    def __init__(self, config: ConfluenceConfig):
        """
        Initialize Confluence client.

        Args:
            config: ConfluenceConfig with host and credentials
        """
        self.config = config
        self.base_url = f"{confluence_site_url(config.host)}/rest/api"

        if config.api_token:
            authorization = f"Bearer {config.api_token}"
        elif config.password:
            auth_string = f"{config.username}:{config.password}"
            authorization = f"Basic {base64.b64encode(auth_string.encode()).decode()}"
        else:
            raise ValueError(
                "No authentication method configured for Confluence. "
                "Please set CONFLUENCE_PASSWORD or CONFLUENCE_API_TOKEN"
            )

        self.headers = {
            'Authorization': authorization,
            'Content-Type': 'application/json',
            'Accept': 'application/json'
        }

    def _get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """GET a REST endpoint and return the decoded body."""
        url = f"{self.base_url}{endpoint}"
        response = requests.get(url, headers=self.headers, params=params, timeout=REQUEST_TIMEOUT)
        logger.debug(f"🌐 GET {endpoint} -> {response.status_code}")
        response.raise_for_status()
        return response.json()

    def search(self, cql: str, limit: int = 10, expand: Optional[List[str]] = None) -> List[Dict[str, Any]]:
        """
        Search content with CQL.

        Args:
            cql: CQL query string
            limit: Maximum number of results
            expand: Properties to expand on each result

        Returns:
            List of search result dictionaries
        """
        params = {'cql': cql, 'limit': limit}
        if expand:
            params['expand'] = ','.join(expand)
        return self._get('/search', params=params).get('results', [])

    def get_content(self, page_id: str, expand: Optional[List[str]] = None) -> Dict[str, Any]:
        """Get a page or blog post by id."""
        params = {'expand': ','.join(expand)} if expand else None
        return self._get(f'/content/{page_id}', params=params)
