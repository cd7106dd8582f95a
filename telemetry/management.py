#!/usr/bin/env python3
"""
Host Management Interface

Name/attribute lookup over host-level metrics. Objects are registered
explicitly with one reader function per attribute; the platform is resolved
once per process by platform_management_server().

Object names follow the "domain:key=value[,key=value...]" form, e.g.
"os:type=OperatingSystem".
"""

import logging
import sys
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Tuple

import psutil

import config

logger = logging.getLogger(__name__)

OPERATING_SYSTEM = "os:type=OperatingSystem"
TOTAL_PHYSICAL_MEMORY_SIZE = "TotalPhysicalMemorySize"
FREE_PHYSICAL_MEMORY_SIZE = "FreePhysicalMemorySize"


class ManagementError(Exception):
    """Base class for management interface failures"""
    pass


class MalformedObjectNameError(ManagementError):
    """Object name does not follow domain:key=value form"""
    pass


class InstanceNotFoundError(ManagementError):
    """No object registered under the given name"""
    pass


class AttributeNotFoundError(ManagementError):
    """Object exists but does not expose the attribute"""
    pass


class AttributeReadError(ManagementError):
    """Platform call behind an attribute failed"""
    pass


@dataclass(frozen=True)
class ObjectName:
    """Parsed management object name"""
    domain: str
    properties: Tuple[Tuple[str, str], ...]

    @classmethod
    def parse(cls, name: str) -> "ObjectName":
        """
        Parse "domain:key=value[,key=value...]".

        Raises:
            MalformedObjectNameError: If the name is not well formed
        """
        if not isinstance(name, str) or ":" not in name:
            raise MalformedObjectNameError(f"Object name {name!r} has no domain separator")

        domain, _, props = name.partition(":")
        if not domain or not props:
            raise MalformedObjectNameError(f"Object name {name!r} needs a domain and key properties")

        pairs = {}
        for item in props.split(","):
            key, sep, value = item.partition("=")
            key, value = key.strip(), value.strip()
            if not sep or not key or not value:
                raise MalformedObjectNameError(f"Invalid key property {item!r} in {name!r}")
            if key in pairs:
                raise MalformedObjectNameError(f"Duplicate key {key!r} in {name!r}")
            pairs[key] = value

        return cls(domain=domain.strip(), properties=tuple(sorted(pairs.items())))

    def __str__(self) -> str:
        props = ",".join(f"{k}={v}" for k, v in self.properties)
        return f"{self.domain}:{props}"


class ManagedObject:
    """Management object exposing a fixed set of readable attributes"""

    def __init__(self, attributes: Dict[str, Callable[[], Any]]):
        self._attributes = dict(attributes)

    @property
    def attribute_names(self) -> Tuple[str, ...]:
        return tuple(self._attributes)

    def get_attribute(self, attribute: str) -> Any:
        reader = self._attributes.get(attribute)
        if reader is None:
            raise AttributeNotFoundError(f"No attribute {attribute!r}")
        try:
            return reader()
        except (psutil.Error, OSError, NotImplementedError) as e:
            raise AttributeReadError(f"Reading {attribute!r} failed: {e}") from e


class ManagementServer:
    """Registry of management objects keyed by object name"""

    def __init__(self):
        self._objects: Dict[ObjectName, ManagedObject] = {}
        self._lock = threading.Lock()

    def register(self, name: str, managed_object: ManagedObject) -> None:
        key = ObjectName.parse(name)
        with self._lock:
            self._objects[key] = managed_object

    def is_registered(self, name: str) -> bool:
        try:
            key = ObjectName.parse(name)
        except MalformedObjectNameError:
            return False
        return key in self._objects

    def get_attribute(self, name: str, attribute: str) -> Any:
        """
        Read an attribute of a registered object.

        Raises:
            MalformedObjectNameError: Name is not well formed
            InstanceNotFoundError: Nothing registered under the name
            AttributeNotFoundError: Object lacks the attribute
            AttributeReadError: Underlying platform call failed
        """
        key = ObjectName.parse(name)
        managed_object = self._objects.get(key)
        if managed_object is None:
            raise InstanceNotFoundError(f"No object registered as {key}")
        return managed_object.get_attribute(attribute)


def _total_physical_memory() -> int:
    return psutil.virtual_memory().total


def _free_physical_memory() -> int:
    return psutil.virtual_memory().free


def operating_system_object() -> ManagedObject:
    """Operating system object backed by psutil"""
    return ManagedObject({
        TOTAL_PHYSICAL_MEMORY_SIZE: _total_physical_memory,
        FREE_PHYSICAL_MEMORY_SIZE: _free_physical_memory,
    })


def resolve_platform() -> ManagementServer:
    """
    Build a management server for this platform.

    The operating system object is only registered when host introspection
    is enabled and psutil can read physical memory here.
    """
    server = ManagementServer()

    if not config.get_config("HOST_MEMORY_INTROSPECTION", True):
        logger.warning("Host memory introspection disabled by configuration")
        return server

    try:
        psutil.virtual_memory()
    except (psutil.Error, OSError, NotImplementedError, RuntimeError) as e:
        logger.warning(f"Host memory introspection unavailable on {sys.platform}: {e}")
        return server

    os_object = operating_system_object()
    server.register(OPERATING_SYSTEM, os_object)
    logger.debug(
        f"Registered {OPERATING_SYSTEM} {list(os_object.attribute_names)} "
        f"(psutil {psutil.__version__}, {sys.platform})"
    )
    return server


# Global management server instance
_platform_server = None
_platform_lock = threading.Lock()


def platform_management_server() -> ManagementServer:
    """Get or resolve the process-wide management server"""
    global _platform_server
    with _platform_lock:
        if _platform_server is None:
            _platform_server = resolve_platform()
        return _platform_server


def reset_platform_management_server() -> None:
    """Drop the resolved server so the next access resolves again"""
    global _platform_server
    with _platform_lock:
        _platform_server = None
