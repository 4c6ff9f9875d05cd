from typing import NewType, TypeGuard

DeviceName = NewType("DeviceName", str)
"""The unique name of a device, used as its storage key."""


def is_device_name(name: str) -> TypeGuard[DeviceName]:
    return isinstance(name, str) and len(name) > 0
