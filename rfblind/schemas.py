from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

from rfblind.algorithms.rf_blind import (
    MaskSelector,
    NamesSelector,
    PatternSelector,
)
from rfblind.config import cnf


class PatternTrainId(BaseModel):
    kind: Literal["pattern"] = "pattern"
    pattern: str

    def to_selector(self) -> PatternSelector:
        return PatternSelector(self.pattern)


class MaskTrainId(BaseModel):
    kind: Literal["mask"] = "mask"
    mask: list[bool]

    def to_selector(self) -> MaskSelector:
        return MaskSelector(tuple(self.mask))


class NamesTrainId(BaseModel):
    kind: Literal["names"] = "names"
    names: list[str]

    def to_selector(self) -> NamesSelector:
        return NamesSelector(tuple(self.names))


TrainId = Annotated[
    Union[PatternTrainId, MaskTrainId, NamesTrainId], Field(discriminator="kind")
]
train_id_adapter = TypeAdapter(TrainId)

# uploads are stored under the hex sha1 of their content
SHA1_PATTERN = r"^[0-9a-f]{40}$"
Sha1Hash = Annotated[str, Field(pattern=SHA1_PATTERN)]


class CSVUploadResponse(BaseModel):
    sha1_hash: str
    message: str
    filename: str
    file_size: int


class TreatmentValuesResponse(BaseModel):
    sha1_hash: str
    filename: str
    unique_values: list[str]
    sample_names: list[str]
    total_features: int
    total_samples: int
    message: str


class RFBlindRequest(BaseModel):
    sha1_hash: Sha1Hash
    positive_class: str
    train_id: TrainId
    mtry: Optional[int] = Field(default=None, ge=1)
    n_tree: int = Field(default=cnf.default_n_tree, ge=1)
    n_forest: int = Field(default=cnf.default_n_forest, ge=1)
    seed: Optional[int] = None


class RFBlindResponse(BaseModel):
    task_id: str
    sha1_hash: str
    positive_class: str
    message: str


class TaskStatus(BaseModel):
    task_id: str
    status: str
    result: dict[str, Any] = None
    error: str = None
