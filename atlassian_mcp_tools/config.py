"""
Configuration - Environment driven settings for the Jira and Confluence clients
"""

import os
import re
import logging
from pathlib import Path
from typing import Optional
from dataclasses import dataclass
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')

JIRA_ENV_HELP = (
    "Required environment variables:\n"
    "- JIRA_HOST: Your Jira instance host\n"
    "- JIRA_USERNAME: Your Jira username\n"
    "- JIRA_PASSWORD or JIRA_API_TOKEN: Your password or personal access token\n"
    "\n"
    "Optional variables:\n"
    "- JIRA_AUTH_TYPE: basic or bearer (detected from the host by default)\n"
    "- JIRA_API_VERSION: 2 (default)\n"
    "- JIRA_STRICT_SSL: true (default) or false"
)


def load_env_files() -> Optional[Path]:
    """Load .env from the package directory or its parents."""
    current_dir = Path(__file__).parent

    for candidate in (current_dir, current_dir.parent, current_dir.parent.parent):
        env_file = candidate / '.env'
        if env_file.exists():
            load_dotenv(env_file)
            logger.debug(f"✅ Loaded .env from: {env_file}")
            return env_file

    # Fallback to default load_dotenv (searches up from the working directory)
    load_dotenv()
    logger.debug("ℹ️  Using default .env search")
    return None


def _env_flag(name: str, default: bool = True) -> bool:
    value = os.getenv(name)
    if value is None or value == '':
        return default
    return value.strip().lower() not in ('0', 'false', 'no', 'off')


def is_cloud_host(host: str) -> bool:
    """Atlassian Cloud sites live under .atlassian.net."""
    return '.atlassian.net' in (host or '')


@dataclass
class JiraConfig:
    """Connection settings for a Jira instance."""
    host: str = ''
    username: str = ''
    password: str = ''
    api_token: Optional[str] = None
    auth_type: Optional[str] = None
    api_version: str = '2'
    verify_ssl: bool = True

    @classmethod
    def from_env(cls) -> 'JiraConfig':
        return cls(
            host=os.getenv('JIRA_HOST', ''),
            username=os.getenv('JIRA_USERNAME', ''),
            password=os.getenv('JIRA_PASSWORD', ''),
            api_token=os.getenv('JIRA_API_TOKEN') or None,
            auth_type=(os.getenv('JIRA_AUTH_TYPE') or '').lower() or None,
            api_version=os.getenv('JIRA_API_VERSION') or '2',
            verify_ssl=_env_flag('JIRA_STRICT_SSL'),
        )


@dataclass
class ConfluenceConfig:
    """Connection settings for a Confluence instance."""
    host: str = ''
    username: str = ''
    password: str = ''
    api_token: Optional[str] = None

    @classmethod
    def from_env(cls) -> 'ConfluenceConfig':
        return cls(
            host=os.getenv('CONFLUENCE_HOST', ''),
            username=os.getenv('CONFLUENCE_USERNAME') or os.getenv('JIRA_USERNAME', ''),
            password=os.getenv('CONFLUENCE_PASSWORD') or os.getenv('JIRA_PASSWORD', ''),
            api_token=os.getenv('CONFLUENCE_API_TOKEN') or None,
        )


def validate_jira_config(config: JiraConfig) -> Optional[str]:
    """
    Check that the Jira settings are usable.

    Returns:
        None when valid, otherwise a human readable reason
    """
    if not config.host:
        return "JIRA_HOST environment variable is not set"
    if not config.username:
        return "JIRA_USERNAME environment variable is not set (should be your email)"
    if not config.password and not config.api_token:
        return "Either JIRA_PASSWORD or JIRA_API_TOKEN environment variable must be set"
    if config.api_token and is_cloud_host(config.host):
        if not EMAIL_PATTERN.match(config.username):
            return ("For Atlassian Cloud, JIRA_USERNAME must be a valid email address "
                    "when using API token")
    return None


def validate_confluence_config(config: ConfluenceConfig) -> Optional[str]:
    """Confluence counterpart of validate_jira_config."""
    if not config.host:
        return "CONFLUENCE_HOST environment variable is not set"
    if not config.username:
        return "CONFLUENCE_USERNAME environment variable is not set (should be your email)"
    if not config.password and not config.api_token:
        return "Either CONFLUENCE_PASSWORD or CONFLUENCE_API_TOKEN environment variable must be set"
    if config.api_token and is_cloud_host(config.host):
        if not EMAIL_PATTERN.match(config.username):
            return ("For Atlassian Cloud, CONFLUENCE_USERNAME must be a valid email address "
                    "when using API token")
    return None
