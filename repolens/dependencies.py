"""
Request-scoped access to the objects built by create_app
"""

from fastapi import Request

from repolens.service import GitHubService


def get_service(request: Request) -> GitHubService:
    """Get the orchestrator wired into this application"""
    return request.app.state.service
