"""
Catalog document accepted by PipelineManager.initialize and the run_etl script
"""

from pydantic import BaseModel, Field
from typing import List
from pathlib import Path
from schemas.data_source import DataSource
from schemas.rules import TransformationRule
from schemas.jobs import Job


class Catalog(BaseModel):
    data_sources: List[DataSource] = Field(default_factory=list)
    transformation_rules: List[TransformationRule] = Field(default_factory=list)
    jobs: List[Job] = Field(default_factory=list)

    @classmethod
    def from_file(cls, path: str) -> "Catalog":
        """Load a catalog from a JSON file"""
        content = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(content)
