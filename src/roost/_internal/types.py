"""Shared type aliases used across roost modules."""

import re
from collections.abc import Callable
from typing import Any, TypeAlias

# Event listener: user-defined function with variable signature
Handler: TypeAlias = Callable[..., Any]

# What a listener is registered under: an exact event name or a regex
Pattern: TypeAlias = str | re.Pattern[str]

# Error continuation: receives the exception raised by a pipeline stage
NextHandler: TypeAlias = Callable[[Exception], Any]
