"""Dependency providers shared by the route handlers."""

from __future__ import annotations

from typing import Annotated

from litestar.datastructures import State
from litestar.params import Dependency

from cms.config import Settings
from cms.github import GitHubClient

SettingsDep = Annotated[Settings, Dependency(skip_validation=True)]
GitHubDep = Annotated[GitHubClient, Dependency(skip_validation=True)]


def provide_settings(state: State) -> Settings:
    return state.settings


def provide_github(state: State, settings: SettingsDep) -> GitHubClient:
    return GitHubClient(state.http_client, settings)
