"""
Data source catalog and connection endpoints
"""

from typing import List
from fastapi import APIRouter, Depends, Request
from api.dependencies import get_manager
from etl.pipeline import PipelineManager
from schemas.api import ConnectionStateResponse
from schemas.data_source import DataSource, DataSourceCreate, DataSourceUpdate, ConnectionResult
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/data-sources", tags=["Data Sources"])


def _state(source: DataSource) -> ConnectionStateResponse:
    return ConnectionStateResponse(
        source_id=source.id,
        connected=source.connected,
        last_connected_at=source.last_connected_at,
        last_error=source.last_error
    )


@router.get("", response_model=List[DataSource])
async def list_data_sources(manager: PipelineManager = Depends(get_manager)):
    return manager.get_all_data_sources()


@router.post("", response_model=DataSource, status_code=201)
async def create_data_source(data: DataSourceCreate, manager: PipelineManager = Depends(get_manager)):
    return manager.create_data_source(data)


@router.get("/{source_id}", response_model=DataSource)
async def get_data_source(source_id: str, manager: PipelineManager = Depends(get_manager)):
    return manager.get_data_source(source_id)


@router.patch("/{source_id}", response_model=DataSource)
async def update_data_source(
    source_id: str,
    update: DataSourceUpdate,
    manager: PipelineManager = Depends(get_manager)
):
    return await manager.update_data_source(source_id, update)


@router.delete("/{source_id}", status_code=204)
async def delete_data_source(source_id: str, manager: PipelineManager = Depends(get_manager)):
    await manager.delete_data_source(source_id)


@router.post("/{source_id}/connect", response_model=ConnectionStateResponse)
async def connect_data_source(
    source_id: str,
    request: Request,
    manager: PipelineManager = Depends(get_manager)
):
    """Open the connection; failures are reported in last_error, not as HTTP errors"""
    manager.get_data_source(source_id)
    connected = await manager.connector.connect_to_data_source(source_id)
    if not connected:
        logger.info(f"[{request.state.request_id}] connect to {source_id} failed")
    return _state(manager.get_data_source(source_id))


@router.post("/{source_id}/test", response_model=ConnectionResult)
async def test_data_source(source_id: str, manager: PipelineManager = Depends(get_manager)):
    manager.get_data_source(source_id)
    return await manager.connector.test_connection(source_id)


@router.post("/{source_id}/disconnect", response_model=ConnectionStateResponse)
async def disconnect_data_source(source_id: str, manager: PipelineManager = Depends(get_manager)):
    manager.get_data_source(source_id)
    await manager.connector.close_connection(source_id)
    return _state(manager.get_data_source(source_id))
