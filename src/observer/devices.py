"""
Client device facts and the media device registry.
"""

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, List, Optional


class MediaDeviceKind(Enum):
    AUDIO_INPUT = "audioinput"
    AUDIO_OUTPUT = "audiooutput"
    VIDEO_INPUT = "videoinput"


@dataclass(frozen=True)
class OperationSystem:
    name: Optional[str] = None
    version: Optional[str] = None
    version_name: Optional[str] = None


@dataclass(frozen=True)
class Browser:
    name: Optional[str] = None
    version: Optional[str] = None


@dataclass(frozen=True)
class Platform:
    type: Optional[str] = None
    vendor: Optional[str] = None
    model: Optional[str] = None


@dataclass(frozen=True)
class Engine:
    name: Optional[str] = None
    version: Optional[str] = None


@dataclass
class ClientDevices:
    """Static facts about the host, detected once by the embedding application."""
    os: Optional[OperationSystem] = None
    browser: Optional[Browser] = None
    platform: Optional[Platform] = None
    engine: Optional[Engine] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            name: asdict(value)
            for name, value in (
                ("os", self.os),
                ("browser", self.browser),
                ("platform", self.platform),
                ("engine", self.engine),
            )
            if value is not None
        }


@dataclass(frozen=True)
class MediaDevice:
    id: str
    kind: MediaDeviceKind
    label: Optional[str] = None
    group_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "label": self.label,
            "groupId": self.group_id,
        }


class MediaDevices:
    """Registry of the media devices currently known to the client."""

    def __init__(self):
        self._devices: Dict[str, MediaDevice] = {}

    def add(self, device: MediaDevice) -> bool:
        """Add or replace a device. Returns True when the device was not known as given."""
        known = self._devices.get(device.id)
        self._devices[device.id] = device
        return known != device

    def remove(self, device_id: str) -> bool:
        return self._devices.pop(device_id, None) is not None

    def clear(self):
        self._devices.clear()

    def values(self, kind: Optional[MediaDeviceKind] = None) -> List[MediaDevice]:
        return [d for d in self._devices.values() if kind is None or d.kind is kind]

    @property
    def audio_inputs(self) -> List[MediaDevice]:
        return self.values(MediaDeviceKind.AUDIO_INPUT)

    @property
    def audio_outputs(self) -> List[MediaDevice]:
        return self.values(MediaDeviceKind.AUDIO_OUTPUT)

    @property
    def video_inputs(self) -> List[MediaDevice]:
        return self.values(MediaDeviceKind.VIDEO_INPUT)

    def __len__(self) -> int:
        return len(self._devices)
