"""Clients for the source host and the package registry."""

from cpts.adapters.base import RegistryClient, SourceHostClient, parse_github_repo
from cpts.adapters.github import GitHubClient
from cpts.adapters.packagist import PackagistClient

__all__ = [
    "GitHubClient",
    "PackagistClient",
    "RegistryClient",
    "SourceHostClient",
    "parse_github_repo",
]
