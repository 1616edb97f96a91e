from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class OracleRequest:
    prompt_text: str
    stage: str = "unknown"


@dataclass(frozen=True)
class OracleResponse:
    text: str


class OracleClient(Protocol):
    model_name: str

    async def complete(self, request: OracleRequest) -> OracleResponse: ...
