"""
Transformation rule catalog endpoints
"""

from typing import List
from fastapi import APIRouter, Depends
from api.dependencies import get_manager
from etl.pipeline import PipelineManager
from schemas.api import RuleTestRequest
from schemas.rules import (
    TransformationRule,
    TransformationRuleCreate,
    TransformationRuleUpdate,
    TransformationResult,
)

router = APIRouter(prefix="/rules", tags=["Transformation Rules"])


@router.get("", response_model=List[TransformationRule])
async def list_rules(manager: PipelineManager = Depends(get_manager)):
    return manager.get_all_transformation_rules()


@router.post("", response_model=TransformationRule, status_code=201)
async def create_rule(data: TransformationRuleCreate, manager: PipelineManager = Depends(get_manager)):
    return manager.create_transformation_rule(data)


@router.get("/{rule_id}", response_model=TransformationRule)
async def get_rule(rule_id: str, manager: PipelineManager = Depends(get_manager)):
    return manager.get_transformation_rule(rule_id)


@router.patch("/{rule_id}", response_model=TransformationRule)
async def update_rule(
    rule_id: str,
    update: TransformationRuleUpdate,
    manager: PipelineManager = Depends(get_manager)
):
    return manager.update_transformation_rule(rule_id, update)


@router.delete("/{rule_id}", status_code=204)
async def delete_rule(rule_id: str, manager: PipelineManager = Depends(get_manager)):
    manager.delete_transformation_rule(rule_id)


@router.post("/{rule_id}/test", response_model=TransformationResult)
async def test_rule(
    rule_id: str,
    sample: RuleTestRequest,
    manager: PipelineManager = Depends(get_manager)
):
    """Preview the rule against the first 100 sample records"""
    rule = manager.get_transformation_rule(rule_id)
    return await manager.engine.test_transformation(sample.records, rule)
