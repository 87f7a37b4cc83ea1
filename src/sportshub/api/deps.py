"""Shared route dependencies for app-owned state.

Learn: The realtime registry and the roster lock table live on
app.state (created in create_app). Handlers get them through Depends()
like any other collaborator, never through a module global.
"""

from fastapi import Request

from sportshub.realtime.registry import RealtimeRegistry
from sportshub.services.locks import KeyedLock


def get_realtime(request: Request) -> RealtimeRegistry:
    return request.app.state.realtime


def get_roster_locks(request: Request) -> KeyedLock:
    return request.app.state.roster_locks
