"""
Jira Client - Core connection and authentication handler for Jira integration
"""

import base64
import logging
import requests
from typing import Dict, List, Optional, Any
from urllib.parse import urljoin

from .config import JiraConfig, is_cloud_host

logger = logging.getLogger(__name__)


def normalize_base_url(host: str) -> str:
    """Return ``https://host/`` for a bare host, keeping an explicit scheme."""
    base_url = host.strip()
    if not base_url.startswith(('http://', 'https://')):
        base_url = f"https://{base_url}"
    if not base_url.endswith('/'):
        base_url += '/'
    return base_url


def build_auth_header(config: JiraConfig) -> str:
    """
    Pick the Authorization header value for the configured credentials.

    An explicit auth_type wins. Otherwise an API token is sent with Basic auth
    to Atlassian Cloud and as a Bearer personal access token to Jira
    Server/Data Center; a password always uses Basic auth.
    """
    if config.api_token:
        auth_type = config.auth_type or ('basic' if is_cloud_host(config.host) else 'bearer')
        if auth_type == 'bearer':
            logger.info(f"Using personal access token (Bearer) for: {config.username}")
            return f"Bearer {config.api_token}"
        logger.info(f"Using API token with Basic auth for: {config.username}")
        secret = config.api_token
    elif config.password:
        logger.info(f"Using password authentication for: {config.username}")
        secret = config.password
    else:
        raise ValueError(
            "No authentication method configured. Please set JIRA_PASSWORD or JIRA_API_TOKEN"
        )

    token = base64.b64encode(f"{config.username}:{secret}".encode()).decode()
    return f"Basic {token}"


class JiraClient:
    """
    Core Jira client for handling authentication and read-only API operations.
    """

    def __init__(self, config: JiraConfig):
        """
        Initialize Jira client with connection settings.

        Args:
            config: JiraConfig with host and credentials
        """
        self.config = config
        self.jira_url = normalize_base_url(config.host)
        self.api_root = f"rest/api/{config.api_version}"
        self.verify_ssl = config.verify_ssl

        self.headers = {
            'Authorization': build_auth_header(config),
            'Content-Type': 'application/json',
            'Accept': 'application/json'
        }

    @property
    def is_cloud(self) -> bool:
        return is_cloud_host(self.config.host)

    def _make_request(self, method: str, endpoint: str, **kwargs) -> requests.Response:
        """
        Make HTTP request to Jira API.

        Args:
            method: HTTP method (GET, POST)
            endpoint: API endpoint (without base URL)
            **kwargs: Additional arguments for requests

        Returns:
            requests.Response object
        """
        url = urljoin(self.jira_url, endpoint)

        headers = self.headers.copy()
        if 'headers' in kwargs:
            headers.update(kwargs.pop('headers'))

        kwargs['headers'] = headers
        kwargs['verify'] = self.verify_ssl

        try:
            response = requests.request(method, url, **kwargs)
        except requests.exceptions.RequestException as e:
            logger.error(f"❌ Request failed: {method} {endpoint}: {e}")
            raise

        logger.debug(f"🌐 {method} {endpoint} -> {response.status_code}")
        if response.status_code >= 400:
            logger.debug(f"❌ Error {response.status_code}: {response.text}")

        return response

    def test_connection(self) -> Dict[str, Any]:
        """
        Check the credentials against the current-user endpoint.

        Returns:
            The authenticated user's profile
        """
        user_info = self.get_current_user()
        logger.info(f"✅ Connected to Jira as: {user_info.get('displayName', self.config.username)}")
        return user_info

    def get_issue(self,
                  issue_key: str,
                  fields: Optional[List[str]] = None,
                  expand: Optional[List[str]] = None) -> Dict[str, Any]:
        """
        Get specific issue details.

        Args:
            issue_key: Issue key (e.g., 'PROJ-123')
            fields: List of fields to include
            expand: List of additional data to expand

        Returns:
            Issue dictionary
        """
        params = {}
        if fields:
            params['fields'] = ','.join(fields)
        if expand:
            params['expand'] = ','.join(expand)

        response = self._make_request(
            'GET',
            f'{self.api_root}/issue/{issue_key}',
            params=params
        )
        response.raise_for_status()
        return response.json()

    def search_issues(self,
                      jql: str,
                      start_at: int = 0,
                      max_results: int = 50,
                      fields: Optional[List[str]] = None) -> Dict[str, Any]:
        """
        Search for issues using JQL.

        Args:
            jql: JQL query string
            start_at: Offset of the first result
            max_results: Maximum number of results to return
            fields: List of fields to include in response

        Returns:
            Search results dictionary with 'issues' and 'total'
        """
        data = {
            'jql': jql,
            'startAt': start_at,
            'maxResults': max_results
        }
        if fields:
            data['fields'] = fields

        response = self._make_request(
            'POST',
            f'{self.api_root}/search',
            json=data
        )
        response.raise_for_status()
        return response.json()

    def get_comments(self, issue_key: str) -> List[Dict[str, Any]]:
        """Get all comments of an issue."""
        response = self._make_request('GET', f'{self.api_root}/issue/{issue_key}/comment')
        response.raise_for_status()
        return response.json().get('comments', [])

    def get_issue_worklogs(self, issue_key: str) -> List[Dict[str, Any]]:
        """Get all worklogs of an issue."""
        response = self._make_request('GET', f'{self.api_root}/issue/{issue_key}/worklog')
        response.raise_for_status()
        return response.json().get('worklogs', [])

    def get_current_user(self) -> Dict[str, Any]:
        """Get the authenticated user."""
        response = self._make_request('GET', f'{self.api_root}/myself')
        response.raise_for_status()
        return response.json()

    def get_user(self, username: str) -> Dict[str, Any]:
        """
        Get a user profile.

        Args:
            username: Account id on Atlassian Cloud, user name on Server/Data Center
        """
        params = {'accountId': username} if self.is_cloud else {'username': username}
        response = self._make_request('GET', f'{self.api_root}/user', params=params)
        response.raise_for_status()
        return response.json()
