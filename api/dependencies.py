"""
FastAPI dependencies
"""

from fastapi import Request
from etl.pipeline import PipelineManager


def get_manager(request: Request) -> PipelineManager:
    """Pipeline manager attached to the application at creation time"""
    return request.app.state.manager
