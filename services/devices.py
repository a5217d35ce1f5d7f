"""Linking devices to user accounts."""

from __future__ import annotations

import logging
from functools import lru_cache

from datastore.device_registry import DeviceRegistry, build_default_registry
from models.records import ById, Device, parse_device_ref
from services.errors import (
    DeviceAccessError,
    DeviceAlreadyLinkedError,
    InvalidCredentialsError,
)

logger = logging.getLogger(__name__)


class DeviceService:
    def __init__(self, registry: DeviceRegistry) -> None:
        self.registry = registry

    def link_device(self, user_id: str, name: str, password: str) -> Device:
        """Attach the device matching ``name``/``password`` to ``user_id``."""
        device = self.registry.find_by_credentials(name, password)
        if device is None:
            raise InvalidCredentialsError("Device not found or incorrect credentials")
        if device.user_id is not None:
            raise DeviceAlreadyLinkedError("Device is already registered to another user")

        try:
            linked = self.registry.link(device.id, user_id)
        except KeyError as exc:
            raise InvalidCredentialsError("Device not found or incorrect credentials") from exc
        except ValueError as exc:
            # Lost a race with another link request for the same device.
            raise DeviceAlreadyLinkedError("Device is already registered to another user") from exc

        logger.info("Device linked", extra={"device_id": linked.id, "user_id": user_id})
        return linked

    def list_devices(self, user_id: str) -> list[Device]:
        return self.registry.list_for_user(user_id)

    def delete_device(self, user_id: str, raw_device: str) -> None:
        ref = parse_device_ref(raw_device)
        device = self.registry.resolve(ref) if isinstance(ref, ById) else None
        if device is None or not device.is_owned_by(user_id):
            raise DeviceAccessError("Device not found or unauthorized")

        self.registry.delete(device.id)
        logger.info("Device deleted", extra={"device_id": device.id, "user_id": user_id})


@lru_cache
def build_default_device_service() -> DeviceService:
    return DeviceService(registry=build_default_registry())
