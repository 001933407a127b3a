import json
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any, Literal

from eth_utils.abi import event_signature_to_log_topic
from pydantic import BaseModel


class AbiInput(BaseModel):
    indexed: bool = False
    internalType: str | None = None
    name: str
    type: str


class AbiEvent(BaseModel):
    anonymous: bool = False
    inputs: Sequence[AbiInput]
    name: str
    type: Literal["event"]


def get_event_signature(event: AbiEvent) -> str:
    return f"{event.name}({','.join(event_input.type for event_input in event.inputs)})"


def get_event_topic0(event: AbiEvent) -> str:
    if event.anonymous:
        raise ValueError(f"anonymous event {event.name} has no topic0")
    return "0x" + event_signature_to_log_topic(get_event_signature(event)).hex()


AbiJson = Iterable[dict[str, Any]]
AbiSpec = AbiJson | Path


def _load_abi(abi: AbiSpec) -> AbiJson:
    if isinstance(abi, Path):
        return json.loads(abi.read_text())
    return abi


def get_events_from_abi(abi: AbiSpec) -> dict[str, AbiEvent]:
    abi = _load_abi(abi)
    return {entry["name"]: AbiEvent.model_validate(entry) for entry in abi if entry.get("type") == "event"}


def get_event_topic0s(abi: AbiSpec) -> dict[str, str]:
    """Map event name to topic0 for every non-anonymous event of the ABI."""
    return {
        name: get_event_topic0(event)
        for name, event in get_events_from_abi(abi).items()
        if not event.anonymous
    }
