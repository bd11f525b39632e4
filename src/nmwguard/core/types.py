"""Type aliases used across NMW Guard."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

JsonDict = dict[str, Any]
WorkerId = str
PayPeriodId = str
PayComponents = Mapping[str, Any]
