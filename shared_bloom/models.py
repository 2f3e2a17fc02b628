from typing import List
from pydantic import BaseModel, Field


class AddRequest(BaseModel):
    value: str = Field(..., min_length=1, max_length=4096, description="Value to record in the filter")


class AddResponse(BaseModel):
    key: str
    value: str
    added: bool = True


class ExistResponse(BaseModel):
    key: str
    value: str
    exists: bool = Field(..., description="False means definitely absent; True means possibly present")


class BitProbe(BaseModel):
    offset: int
    bit: int


class InspectResponse(BaseModel):
    key: str
    value: str
    m: int
    k: int
    bits: List[BitProbe]
    note: str = "Bits are read one by one and are not an atomic snapshot. Use /exists for membership."
