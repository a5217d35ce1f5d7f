from __future__ import annotations

import hmac
import json
from dataclasses import replace
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Dict, List, Optional

from pydantic import TypeAdapter, ValidationError

from datastore.persistence import quarantine, write_atomic
from models.records import ById, ByName, Device, DeviceRef
from settings import get_settings

_DEVICES_ADAPTER = TypeAdapter(List[Device])


class DeviceRegistry:
    """Devices known to the platform and the users that own them."""

    def __init__(self, name: str, persistence_path: Optional[Path] = None) -> None:
        self.name = name
        self._devices: Dict[int, Device] = {}
        self._last_id = 0
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def register(self, name: str, password: str) -> Device:
        """Provision an unlinked device. Names are unique."""
        with self._lock:
            if any(device.name == name for device in self._devices.values()):
                raise ValueError(f"Device named {name!r} already exists.")
            self._last_id += 1
            device = Device(
                id=self._last_id,
                name=name,
                password=password,
                created_at=datetime.now(timezone.utc),
            )
            self._devices[device.id] = device
            self._persist()
            return replace(device)

    def resolve(self, ref: DeviceRef) -> Optional[Device]:
        with self._lock:
            if isinstance(ref, ById):
                device = self._devices.get(ref.device_id)
            elif isinstance(ref, ByName):
                device = next(
                    (item for item in self._devices.values() if item.name == ref.name),
                    None,
                )
            else:
                raise TypeError(f"Unsupported device reference: {ref!r}")
            return replace(device) if device is not None else None

    def find_by_credentials(self, name: str, password: str) -> Optional[Device]:
        device = self.resolve(ByName(name))
        if device is None:
            return None
        if not hmac.compare_digest(device.password.encode(), password.encode()):
            return None
        return device

    def link(self, device_id: int, user_id: str) -> Device:
        with self._lock:
            device = self._devices.get(device_id)
            if device is None:
                raise KeyError(f"Device {device_id} not found.")
            if device.user_id is not None:
                raise ValueError(f"Device {device_id} is already linked.")
            device.user_id = user_id
            self._persist()
            return replace(device)

    def list_for_user(self, user_id: str) -> list[Device]:
        with self._lock:
            devices = [replace(device) for device in self._devices.values() if device.is_owned_by(user_id)]
        return sorted(devices, key=lambda device: device.id)

    def delete(self, device_id: int) -> bool:
        with self._lock:
            removed = self._devices.pop(device_id, None)
            if removed is not None:
                self._persist()
            return removed is not None

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        devices = sorted(self._devices.values(), key=lambda device: device.id)
        payload = _DEVICES_ADAPTER.dump_python(devices, mode="json")
        write_atomic(self.persistence_path, json.dumps(payload, indent=2))

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        raw = self.persistence_path.read_text() or "[]"
        try:
            devices = _DEVICES_ADAPTER.validate_json(raw)
        except ValidationError as exc:
            quarantine(self.persistence_path, reason=f"invalid device registry file: {exc.error_count()} errors")
            devices = []

        for device in devices:
            self._devices[device.id] = device
            self._last_id = max(self._last_id, device.id)


@lru_cache
def build_default_registry(
    name: Optional[str] = None,
    path: Optional[str] = None,
) -> DeviceRegistry:
    settings = get_settings()
    registry_path = settings.devices_path if path is None else path
    persistence = Path(registry_path) if registry_path else None
    return DeviceRegistry(name=name or "devices", persistence_path=persistence)
