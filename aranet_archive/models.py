from pydantic import BaseModel, ConfigDict


class ArchiveRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: int
    temperature: float
    humidity: float
    pressure: float
    co2: float
