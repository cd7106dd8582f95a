#!/usr/bin/env python3
"""
Telemetry Exceptions
"""

from typing import Optional


class UnsupportedOperation(NotImplementedError):
    """
    Raised when a memory metric cannot be obtained on this platform.

    This is a permanent capability fact about the environment, not a
    transient failure. The underlying platform error is chained as
    ``__cause__``.

    Attributes:
        object_name: Management object that was queried
        attribute: Attribute that was queried
    """

    def __init__(self, object_name: str, attribute: str):
        self.object_name = object_name
        self.attribute = attribute
        super().__init__(f"({object_name}).{attribute} is unsupported on this platform.")

    @property
    def cause(self) -> Optional[BaseException]:
        return self.__cause__
